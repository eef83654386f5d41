import mongomock
import pytest

from app import create_app
from services import AccountService, CatalogService
from store import Store
from teams import SEED_TEAMS, TeamService
from tests.doubles import UnreachableDatabase


@pytest.fixture
def db():
    return mongomock.MongoClient()["IPL"]


@pytest.fixture
def store(db):
    store = Store(db)
    store.ensure_indexes()
    return store


@pytest.fixture
def accounts(store):
    return AccountService(store)


@pytest.fixture
def teams(store):
    service = TeamService(store, SEED_TEAMS)
    service.seed_catalog()
    return service


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def app(db):
    return create_app({"TESTING": True}, db=db)


@pytest.fixture
def test_client(app):
    return app.test_client()


@pytest.fixture
def offline_client():
    """Client for an app whose database cannot be reached."""
    app = create_app({"TESTING": True, "SEED_ON_STARTUP": False}, db=UnreachableDatabase())
    return app.test_client()
