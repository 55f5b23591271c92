import logging
from contextlib import contextmanager
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, GEOSPHERE
from pymongo.errors import PyMongoError

from pet_directory.config import settings
from pet_directory.errors import StoreUnavailable

LOGGER = logging.getLogger("database")

BUSINESSES_COLLECTION = "businesses"
REVIEWS_COLLECTION = "reviews"
USERS_COLLECTION = "users"

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo() -> None:
    global _client, _database

    if _client is not None:
        return

    _client = AsyncIOMotorClient(settings.mongo_uri)
    await _client.admin.command("ping")
    _database = _client[settings.db_name]
    LOGGER.info("Connected to MongoDB database=%s", settings.db_name)

    if settings.mongo_ensure_indexes:
        await ensure_indexes(_database)


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
        LOGGER.info("MongoDB connection closed")

    _client = None
    _database = None


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    businesses = database[BUSINESSES_COLLECTION]
    reviews = database[REVIEWS_COLLECTION]
    users = database[USERS_COLLECTION]

    await businesses.create_index([("location.coordinates", GEOSPHERE)])
    await businesses.create_index([("owner_id", ASCENDING)])
    await businesses.create_index([("service_type", ASCENDING), ("is_open", ASCENDING)])
    await reviews.create_index([("business_id", ASCENDING), ("created_at", DESCENDING)])
    await reviews.create_index([("user_id", ASCENDING)])
    await users.create_index([("auth_uid", ASCENDING)], unique=True)


async def ping_mongo_detailed() -> tuple[bool, str | None]:
    if _client is None:
        return False, "MongoDB client is not initialized."

    try:
        await _client.admin.command("ping")
    except Exception as exc:
        return False, str(exc)

    return True, None


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("MongoDB connection has not been initialized.")
    return _database


@contextmanager
def translate_store_errors(operation: str):
    try:
        yield
    except PyMongoError as exc:
        raise StoreUnavailable(f"Store failure during {operation}: {exc}") from exc
