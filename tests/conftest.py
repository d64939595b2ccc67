import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from friendzone.database.connection import ensure_indexes, mongo_db_dependency
from friendzone.main import app
from friendzone.repositories.relationship_store import RelationshipStore
from friendzone.services.friend_service import FriendGraphService
from friendzone.utils.security import create_access_token


@pytest.fixture(name="db")
async def db_fixture():
    """In-memory Motor database with the production indexes."""
    db = AsyncMongoMockClient()["friendzone_test"]
    await ensure_indexes(db)
    yield db


@pytest.fixture(name="store")
def store_fixture(db):
    return RelationshipStore(db)


@pytest.fixture(name="service")
def service_fixture(store):
    return FriendGraphService(store)


@pytest.fixture(name="make_user")
def make_user_fixture(db):
    """Factory inserting bare user documents; returns the new ObjectId."""
    counter = {"n": 0}

    async def _make(name=None):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        result = await db["users"].insert_one({
            "name": name,
            "email": f"{name}@example.com",
            "hashed_password": "",
            "friends": [],
            "pending_peers": [],
        })
        return result.inserted_id

    return _make


@pytest.fixture(name="client")
async def client_fixture(db):
    """HTTP client against the app with the database dependency overridden."""

    async def override_db():
        return db

    app.dependency_overrides[mongo_db_dependency] = override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    """Bearer headers for a user id, as issued by /login."""

    def _headers(user_id):
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
