"""
Tests for the IPL fan backend.

Service and store tests run against an in-memory mongomock database; route
tests drive the Flask app through its test client with the same database.
"""
