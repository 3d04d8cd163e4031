"""Service layer for family groups: creation, join codes and membership."""
import logging
import secrets
import string
from typing import Any, Dict, Iterable, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

import config
from models.family import Family
from models.user import UserSummary
from services import database
from services.auth_service import Principal
from services.errors import ConflictError, InternalError, NotFoundError, ValidationError
from services.history_service import make_history_entry
from utils.dates import now

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def member_profiles(db: AsyncIOMotorDatabase, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
    """Display identity (username, photo) for each of ``user_ids``, keyed by id."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    cursor = database.users(db).find({"_id": {"$in": ids}}, {"username": 1, "photoPath": 1})
    profiles = {}
    async for doc in cursor:
        profiles[str(doc["_id"])] = UserSummary.model_validate(database.to_public(doc))
    return profiles


async def create_family(db: AsyncIOMotorDatabase, principal: Principal, name: str) -> Family:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Family name is required")

    # The unique index on ``code`` rejects collisions; regenerate until one sticks
    for attempt in range(1, config.FAMILY_CODE_ATTEMPTS + 1):
        doc = {
            "_id": database.new_id(),
            "name": name,
            "code": generate_code(),
            "members": [principal.id],
            "history": [make_history_entry("Família criada", name, scope='family', user_id=principal.id)],
            "createdBy": principal.id,
            "createdAt": now(),
        }
        try:
            await database.families(db).insert_one(doc)
        except DuplicateKeyError:
            logger.warning(f"Family code collision on attempt {attempt}/{config.FAMILY_CODE_ATTEMPTS}, retrying.")
            continue
        logger.info(f"Family '{name}' created by user {principal.id} with code {doc['code']}.")
        return Family.model_validate(database.to_public(doc))

    logger.error(f"Could not generate a unique family code after {config.FAMILY_CODE_ATTEMPTS} attempts.")
    raise InternalError("Could not generate a unique family code")


async def join_family(db: AsyncIOMotorDatabase, principal: Principal, code: str) -> Family:
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("Family code is required")

    collection = database.families(db)
    family = await collection.find_one({"code": code})
    if family is None:
        raise NotFoundError("Family not found")
    if principal.id in family.get("members", []):
        raise ConflictError("You are already a member of this family")

    entry = make_history_entry("Membro entrou na família", principal.username, scope='family', user_id=principal.id)
    # Conditional on the user not being a member yet so concurrent joins cannot duplicate
    result = await collection.update_one(
        {"_id": family["_id"], "members": {"$ne": principal.id}},
        {"$push": {"members": principal.id, "history": entry}},
    )
    if result.matched_count == 0:
        raise ConflictError("You are already a member of this family")

    logger.info(f"User {principal.id} joined family {family['_id']}.")
    updated = await collection.find_one({"_id": family["_id"]})
    return Family.model_validate(database.to_public(updated))


async def list_families(db: AsyncIOMotorDatabase, principal: Principal) -> List[Family]:
    """Families the principal belongs to, with member display identities."""
    docs = [doc async for doc in database.families(db).find({"members": principal.id}).sort("createdAt", 1)]
    profiles = await member_profiles(db, (m for doc in docs for m in doc.get("members", [])))
    families: List[Family] = []
    for doc in docs:
        public: Dict[str, Any] = database.to_public(doc)
        public["memberProfiles"] = [profiles[m] for m in doc.get("members", []) if m in profiles]
        families.append(Family.model_validate(public))
    return families
