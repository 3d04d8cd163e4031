"""
Offline sync reconciler.

Merges records buffered by an offline client into server state. Every item
is written with a single conditional operation keyed by its client-supplied
id, so re-submitting a batch never duplicates records that already exist:

- expenses use the id as the document ``_id`` (duplicate key -> skip);
- important dates and history entries are pushed only if no embedded entry
  with that id is present in the target document.

Items without an id get a fresh one and are therefore always treated as new.
The reconciler is best-effort: a failing item is logged and skipped.
"""
import logging
from typing import Any, Dict, Set

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as SchemaValidationError
from pymongo.errors import DuplicateKeyError

from models.expense import Expense
from models.records import HistoryEntry, ImportantDate
from models.sync import SyncExpense, SyncHistoryEntry, SyncImportantDate, SyncRequest, SyncResult
from services import database
from services.auth_service import Principal
from services.expenses_service import expense_document, insert_expense
from services.history_service import make_history_entry, make_important_date

logger = logging.getLogger(__name__)


async def _member_family_ids(db: AsyncIOMotorDatabase, principal: Principal) -> Set[str]:
    cursor = database.families(db).find({"members": principal.id}, {"_id": 1})
    return {str(doc["_id"]) async for doc in cursor}


async def _sync_expense(
    db: AsyncIOMotorDatabase, principal: Principal, raw: Dict[str, Any], family_ids: Set[str]
) -> Expense:
    item = SyncExpense.model_validate(raw)
    if item.family_id and item.family_id not in family_ids:
        raise PermissionError(f"not a member of family {item.family_id}")
    doc = expense_document(item, principal.id, item.family_id, expense_id=item.id, created_at=item.created_at)
    return await insert_expense(db, doc)


async def _sync_important_date(db: AsyncIOMotorDatabase, principal: Principal, raw: Dict[str, Any]):
    item = SyncImportantDate.model_validate(raw)
    entry = make_important_date(item.title, item.date, item.notes, entry_id=item.id, created_at=item.created_at)
    result = await database.users(db).update_one(
        {"_id": principal.id, "importantDates.id": {"$ne": entry["id"]}},
        {"$push": {"importantDates": entry}},
    )
    return ImportantDate.model_validate(entry) if result.matched_count else None


async def _sync_history_entry(
    db: AsyncIOMotorDatabase, principal: Principal, raw: Dict[str, Any], family_ids: Set[str]
):
    item = SyncHistoryEntry.model_validate(raw)
    entry = make_history_entry(
        item.action, item.details, scope=item.scope, user_id=principal.id,
        entry_id=item.id, timestamp=item.timestamp,
    )
    if item.scope == 'family':
        if not item.family_id or item.family_id not in family_ids:
            raise PermissionError(f"not a member of family {item.family_id}")
        collection, target = database.families(db), item.family_id
    else:
        collection, target = database.users(db), principal.id

    result = await collection.update_one(
        {"_id": target, "history.id": {"$ne": entry["id"]}},
        {"$push": {"history": entry}},
    )
    return HistoryEntry.model_validate(entry) if result.matched_count else None


async def sync_data(db: AsyncIOMotorDatabase, principal: Principal, request: SyncRequest) -> SyncResult:
    logger.info(
        f"Sync for user {principal.id}: {len(request.expenses)} expenses, "
        f"{len(request.important_dates)} dates, {len(request.history)} history entries."
    )
    family_ids = await _member_family_ids(db, principal)
    result = SyncResult()
    skipped = 0

    for item_index, raw in enumerate(request.expenses):
        try:
            result.expenses.append(await _sync_expense(db, principal, raw, family_ids))
        except DuplicateKeyError:
            skipped += 1
            logger.debug(f"Expense #{item_index} ({raw.get('id')}) already exists, skipping.")
        except SchemaValidationError as e:
            logger.warning(f"Skipping expense #{item_index} due to validation error: {e}")
        except Exception as e:
            logger.warning(f"Skipping expense #{item_index}: {e}")

    for item_index, raw in enumerate(request.important_dates):
        try:
            created = await _sync_important_date(db, principal, raw)
        except SchemaValidationError as e:
            logger.warning(f"Skipping important date #{item_index} due to validation error: {e}")
            continue
        except Exception as e:
            logger.warning(f"Skipping important date #{item_index}: {e}")
            continue
        if created is None:
            skipped += 1
        else:
            result.dates.append(created)

    for item_index, raw in enumerate(request.history):
        try:
            created = await _sync_history_entry(db, principal, raw, family_ids)
        except SchemaValidationError as e:
            logger.warning(f"Skipping history entry #{item_index} due to validation error: {e}")
            continue
        except Exception as e:
            logger.warning(f"Skipping history entry #{item_index}: {e}")
            continue
        if created is None:
            skipped += 1
        else:
            result.history.append(created)

    logger.info(
        f"Sync finished for user {principal.id}. Created: {len(result.expenses)} expenses, "
        f"{len(result.dates)} dates, {len(result.history)} history entries. Skipped existing: {skipped}."
    )
    return result
