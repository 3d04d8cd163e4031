"""
Auth guard.

A device token is the only credential in this system. Each request resolves
its ``Credential`` into a ``Principal`` once, and that principal is passed
explicitly to every service call that needs to know who is acting.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from services import database
from services.errors import Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    user_id: str
    device_token: str

    def __repr__(self) -> str:
        return f"Credential(user_id={self.user_id!r}, device_token=***)"

    def matches(self, stored_token: Optional[str]) -> bool:
        """Constant-time comparison against the token stored for the user."""
        if not stored_token or not self.device_token:
            return False
        return hmac.compare_digest(self.device_token.encode("utf-8"), stored_token.encode("utf-8"))


@dataclass(frozen=True)
class Principal:
    id: str
    username: str
    photo_path: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Principal":
        return cls(id=str(doc["_id"]), username=doc["username"], photo_path=doc.get("photoPath"))


async def find_user_by_credential(db: AsyncIOMotorDatabase, credential: Credential) -> Optional[Dict[str, Any]]:
    """Returns the stored user document when id and token both match, else None."""
    if not credential.user_id:
        return None
    doc = await database.users(db).find_one({"_id": credential.user_id})
    if doc is None or not credential.matches(doc.get("deviceToken")):
        return None
    return doc


async def authenticate(db: AsyncIOMotorDatabase, credential: Credential) -> Principal:
    doc = await find_user_by_credential(db, credential)
    if doc is None:
        logger.warning(f"Rejected credential for user {credential.user_id}.")
        raise Unauthorized("Not authorized")
    return Principal.from_document(doc)


async def require_membership(db: AsyncIOMotorDatabase, principal: Principal, family_id: str) -> Dict[str, Any]:
    """Returns the family document if ``principal`` is one of its members."""
    family = await database.families(db).find_one({"_id": family_id, "members": principal.id})
    if family is None:
        logger.warning(f"User {principal.id} is not a member of family {family_id}.")
        raise Unauthorized("Not a member of this family")
    return family
