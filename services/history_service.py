"""Service layer for the activity history log and important-date reminders."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from models.records import HistoryCreate, HistoryEntry, ImportantDate, ImportantDateCreate
from services import database
from services.auth_service import Principal, require_membership
from services.errors import NotFoundError, ValidationError
from utils.dates import format_br_date, now, to_local_naive, to_storage_datetime

logger = logging.getLogger(__name__)

ACTION_MAX_LENGTH = 100
DETAILS_MAX_LENGTH = 200


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 1] + "…"


def make_history_entry(
    action: str,
    details: str = "",
    scope: str = 'user',
    user_id: Optional[str] = None,
    entry_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Builds the stored form of a history entry. ``user_id`` is only kept for family scope."""
    entry = {
        "id": entry_id or database.new_id(),
        "action": _clip(action, ACTION_MAX_LENGTH),
        "details": _clip(details or "", DETAILS_MAX_LENGTH),
        "timestamp": to_local_naive(timestamp) or now(),
        "scope": scope,
    }
    if scope == 'family':
        entry["user"] = user_id
    return entry


def make_important_date(
    title: str,
    when,
    notes: str = "",
    entry_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    return {
        "id": entry_id or database.new_id(),
        "title": title,
        "date": to_storage_datetime(when),
        "notes": notes or "",
        "createdAt": to_local_naive(created_at) or now(),
    }


def format_amount(amount: float) -> str:
    """Whole amounts without decimals (1200, not 1200.0), others as given (12.5)."""
    value = float(amount)
    return str(int(value)) if value.is_integer() else repr(value)


def money_details(description: str, amount: float) -> str:
    return f"{description} - R$ {format_amount(amount)}"


async def append_user_history(db: AsyncIOMotorDatabase, user_id: str, action: str, details: str) -> Dict[str, Any]:
    entry = make_history_entry(action, details)
    await database.users(db).update_one({"_id": user_id}, {"$push": {"history": entry}})
    logger.debug(f"History appended for user {user_id}: {action}")
    return entry


async def append_family_history(
    db: AsyncIOMotorDatabase, family_id: str, user_id: str, action: str, details: str
) -> Dict[str, Any]:
    entry = make_history_entry(action, details, scope='family', user_id=user_id)
    await database.families(db).update_one({"_id": family_id}, {"$push": {"history": entry}})
    logger.debug(f"History appended for family {family_id} by {user_id}: {action}")
    return entry


async def add_history(db: AsyncIOMotorDatabase, principal: Principal, payload: HistoryCreate) -> HistoryEntry:
    """Appends an entry to the user's history, or to a family's when scope is 'family'."""
    if payload.scope == 'family':
        if not payload.family_id:
            raise ValidationError("familyId is required for family-scoped history")
        await require_membership(db, principal, payload.family_id)
        entry = await append_family_history(db, payload.family_id, principal.id, payload.action, payload.details)
    else:
        entry = await append_user_history(db, principal.id, payload.action, payload.details)
    logger.info(f"History entry '{payload.action}' added (scope={payload.scope}) by user {principal.id}.")
    return HistoryEntry.model_validate(entry)


async def list_history(
    db: AsyncIOMotorDatabase, principal: Principal, family_id: Optional[str] = None
) -> List[HistoryEntry]:
    """Newest entries first."""
    if family_id:
        doc = await require_membership(db, principal, family_id)
    else:
        doc = await database.users(db).find_one({"_id": principal.id}, {"history": 1})
    # Latest appended first among equal timestamps (the sort is stable)
    entries = [HistoryEntry.model_validate(e) for e in reversed((doc or {}).get("history", []))]
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries


async def add_important_date(db: AsyncIOMotorDatabase, principal: Principal, payload: ImportantDateCreate) -> ImportantDate:
    entry = make_important_date(payload.title, payload.date, payload.notes)
    history = make_history_entry(
        "Data importante adicionada", f"{payload.title} - {format_br_date(payload.date)}"
    )
    await database.users(db).update_one(
        {"_id": principal.id},
        {"$push": {"importantDates": entry, "history": history}},
    )
    logger.info(f"Important date '{payload.title}' added for user {principal.id}.")
    return ImportantDate.model_validate(entry)


async def list_important_dates(db: AsyncIOMotorDatabase, principal: Principal) -> List[ImportantDate]:
    doc = await database.users(db).find_one({"_id": principal.id}, {"importantDates": 1})
    dates = [ImportantDate.model_validate(d) for d in (doc or {}).get("importantDates", [])]
    dates.sort(key=lambda d: d.date)
    return dates


async def delete_important_date(db: AsyncIOMotorDatabase, principal: Principal, date_id: str) -> None:
    doc = await database.users(db).find_one({"_id": principal.id}, {"importantDates": 1})
    to_remove = next((d for d in (doc or {}).get("importantDates", []) if d.get("id") == date_id), None)
    if to_remove is None:
        raise NotFoundError("Important date not found")

    history = make_history_entry(
        "Data importante removida", f"{to_remove['title']} - {format_br_date(to_remove.get('date'))}"
    )
    result = await database.users(db).update_one(
        {"_id": principal.id},
        {"$pull": {"importantDates": {"id": date_id}}, "$push": {"history": history}},
    )
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info(f"Important date {date_id} removed for user {principal.id}.")
