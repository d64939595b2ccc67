import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from friendzone.core.config import settings
from friendzone.repositories.relationship_store import RelationshipStore
from friendzone.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo() -> None:
    global _client
    if _client is not None:
        return
    _client = AsyncIOMotorClient(settings.MONGODB_URL)
    db = _client[settings.MONGODB_DB]
    await db.command("ping")
    logger.info("Connected to MongoDB database %s", settings.MONGODB_DB)
    await ensure_indexes(db)


async def close_mongo_connection() -> None:
    global _client
    if _client is None:
        return
    _client.close()
    _client = None
    logger.info("MongoDB connection closed")


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await UserRepository(db).ensure_indexes()
    await RelationshipStore(db).ensure_indexes()


def get_database() -> AsyncIOMotorDatabase:
    if _client is None:
        raise RuntimeError("MongoDB client is not initialised; call connect_to_mongo() first")
    return _client[settings.MONGODB_DB]


async def mongo_db_dependency() -> AsyncIOMotorDatabase:
    return get_database()
