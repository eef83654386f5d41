"""
Persistence gateway over the MongoDB collections used by the app.

Documents go in and come out as plain dicts. The gateway adds no business
rules; it only names the collections and turns driver errors into
StorageError subclasses the routes know how to report.
"""
import logging
from contextlib import contextmanager

from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

logger = logging.getLogger(__name__)

USER = "User"
TEAM = "Team"
TEAM_ASSIGNMENT = "TeamAssignment"
PRODUCT = "Product"
CART_ITEM = "CartItem"

KINDS = (USER, TEAM, TEAM_ASSIGNMENT, PRODUCT, CART_ITEM)

# (kind, field, unique)
INDEXES = (
    (USER, "username", True),
    (TEAM, "name", True),
    (TEAM_ASSIGNMENT, "username", True),
    (PRODUCT, "team", False),
    (CART_ITEM, "username", False),
)


class StorageError(Exception):
    """Raised when the document store rejects or fails an operation."""


class StorageUnavailable(StorageError):
    """The document store could not be reached."""


class ConstraintViolation(StorageError):
    """A write broke a unique index."""


@contextmanager
def translate_errors():
    try:
        yield
    except DuplicateKeyError as e:
        raise ConstraintViolation(str(e)) from e
    except ConnectionFailure as e:
        raise StorageUnavailable(str(e)) from e
    except PyMongoError as e:
        raise StorageError(str(e)) from e


class Store:
    """Thin wrapper around a pymongo Database (or anything shaped like one)."""

    def __init__(self, db):
        self.db = db

    def _collection(self, kind):
        if kind not in KINDS:
            raise ValueError(f"Unknown record kind: {kind}")
        return self.db[kind]

    def find_one(self, kind, filter):
        with translate_errors():
            return self._collection(kind).find_one(filter)

    def find_many(self, kind, filter, sort=None):
        with translate_errors():
            cursor = self._collection(kind).find(filter)
            if sort:
                cursor = cursor.sort(sort, 1)
            return list(cursor)

    def insert(self, kind, record):
        """Insert a copy of record and return the new id as a string."""
        with translate_errors():
            result = self._collection(kind).insert_one(dict(record))
        return str(result.inserted_id)

    def upsert(self, kind, key_filter, record):
        with translate_errors():
            self._collection(kind).update_one(key_filter, {"$set": dict(record)}, upsert=True)

    def delete_one(self, kind, filter):
        with translate_errors():
            result = self._collection(kind).delete_one(filter)
        return result.deleted_count

    def ensure_indexes(self):
        for kind, field, unique in INDEXES:
            try:
                with translate_errors():
                    self._collection(kind).create_index(field, unique=unique)
            except StorageUnavailable as exc:
                logger.warning("Skipping index setup, store unavailable: %s", exc)
                return
            except StorageError as exc:
                logger.warning("Unable to ensure index %s.%s: %s", kind, field, exc)

    def ping(self):
        with translate_errors():
            self.db.list_collection_names()
