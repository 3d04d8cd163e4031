"""
Persistence gateway: collection access, index setup and document conversion.

Documents use string ids generated from ObjectId so that ids supplied by the
offline client during sync can be stored as-is.
"""
import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING

from services.errors import DatabaseUnavailable

logger = logging.getLogger(__name__)

USERS = "users"
FAMILIES = "families"
EXPENSES = "expenses"

# Fields never returned to a client, whatever the route
PRIVATE_FIELDS = ("deviceToken",)


def new_id() -> str:
    return str(ObjectId())


def users(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    return db[USERS]


def families(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    return db[FAMILIES]


def expenses(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    return db[EXPENSES]


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Unique constraints back the conflict checks and the sync deduplication."""
    logger.info("Ensuring MongoDB indexes...")
    await users(db).create_index([("username", ASCENDING)], unique=True)
    await users(db).create_index([("deviceToken", ASCENDING)], unique=True)
    await families(db).create_index([("code", ASCENDING)], unique=True)
    await families(db).create_index([("members", ASCENDING)])
    await expenses(db).create_index([("user", ASCENDING), ("dueDate", ASCENDING)])
    await expenses(db).create_index([("family", ASCENDING), ("dueDate", ASCENDING)])
    logger.info("MongoDB indexes ready.")


def to_public(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copies a stored document, renaming ``_id`` to ``id`` and dropping private fields."""
    if doc is None:
        return None
    public = {k: v for k, v in doc.items() if k not in PRIVATE_FIELDS}
    if '_id' in public:
        public['id'] = str(public.pop('_id'))
    return public


# --- Dependency Function ---
def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Dependency to get the MongoDB database from the request state."""
    db = getattr(request.state, "db", None)
    if db is None:
        logger.error("Database not found in application state. Check MongoDB connection.")
        raise DatabaseUnavailable("Database service not available.")
    return db
