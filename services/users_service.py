"""Service layer for user registration and profile maintenance."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from models.user import SettingsUpdate, User, UserSettings
from services import database
from services.auth_service import Credential, find_user_by_credential
from services.errors import ConflictError, NotFoundError, ValidationError
from utils.dates import now
from utils.uploads import remove_photo, save_photo

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20


async def _family_ids(db: AsyncIOMotorDatabase, user_id: str) -> List[str]:
    cursor = database.families(db).find({"members": user_id}, {"_id": 1})
    return [str(doc["_id"]) async for doc in cursor]


async def to_user(db: AsyncIOMotorDatabase, doc: Dict[str, Any]) -> User:
    """Public user view; memberships are resolved from the families collection."""
    public = database.to_public(doc)
    public["families"] = await _family_ids(db, public["id"])
    return User.model_validate(public)


async def create_user(
    db: AsyncIOMotorDatabase,
    username: Optional[str],
    device_token: Optional[str],
    photo: Optional[UploadFile],
) -> User:
    username = (username or "").strip()
    if not username or not device_token or photo is None or not photo.filename:
        raise ValidationError("Required fields: username, deviceToken, photo")
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )

    collection = database.users(db)
    if await collection.find_one({"username": username}, {"_id": 1}):
        raise ConflictError("Username already exists")
    if await collection.find_one({"deviceToken": device_token}, {"_id": 1}):
        raise ConflictError("This device already has an account")

    photo_path = await save_photo(photo)
    doc = {
        "_id": database.new_id(),
        "username": username,
        "photoPath": photo_path,
        "deviceToken": device_token,
        "lastLogin": now(),
        "importantDates": [],
        "history": [],
        "settings": UserSettings().model_dump(by_alias=True),
        "createdAt": now(),
    }
    try:
        await collection.insert_one(doc)
    except DuplicateKeyError:
        # Lost a race with a concurrent registration
        remove_photo(photo_path)
        logger.warning(f"Duplicate key while registering '{username}'.")
        raise ConflictError("Username or device already registered")
    except Exception:
        remove_photo(photo_path)
        raise

    logger.info(f"User '{username}' registered with id {doc['_id']}.")
    return await to_user(db, doc)


async def get_user_by_name(db: AsyncIOMotorDatabase, username: str, device_token: Optional[str]) -> User:
    if not device_token:
        raise ValidationError("deviceToken is required")
    doc = await database.users(db).find_one({"username": username})
    if doc is None or not Credential(str(doc["_id"]), device_token).matches(doc.get("deviceToken")):
        raise NotFoundError("User not found or invalid token")
    return await to_user(db, doc)


async def touch_last_login(db: AsyncIOMotorDatabase, credential: Credential) -> None:
    doc = await find_user_by_credential(db, credential)
    if doc is None:
        raise NotFoundError("User not found")
    await database.users(db).update_one({"_id": doc["_id"]}, {"$set": {"lastLogin": now()}})
    logger.info(f"Last login updated for user {credential.user_id}.")


async def update_settings(db: AsyncIOMotorDatabase, credential: Credential, settings: SettingsUpdate) -> UserSettings:
    doc = await find_user_by_credential(db, credential)
    if doc is None:
        raise NotFoundError("User not found")

    changes = {f"settings.{k}": v for k, v in settings.model_dump(by_alias=True, exclude_none=True).items()}
    if changes:
        await database.users(db).update_one({"_id": doc["_id"]}, {"$set": changes})
    merged = {**doc.get("settings", {}), **settings.model_dump(by_alias=True, exclude_none=True)}
    logger.info(f"Settings updated for user {credential.user_id}: {sorted(changes)}")
    return UserSettings.model_validate(merged)
