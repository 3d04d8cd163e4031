"""Service layer for handling expense-related logic."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as SchemaValidationError

from models.expense import Expense, ExpenseFields
from services import database
from services.auth_service import Principal, require_membership
from services.families_service import member_profiles
from services.errors import NotFoundError
from services.history_service import append_family_history, append_user_history, money_details
from utils.dates import now, to_local_naive, to_storage_datetime

logger = logging.getLogger(__name__)


def kind_label(kind: str) -> str:
    return "Despesa" if kind == 'expense' else "Receita"


def expense_document(
    fields: ExpenseFields,
    user_id: str,
    family_id: Optional[str] = None,
    expense_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Stored form of an expense. Ownership lives on the expense itself."""
    doc = fields.model_dump(by_alias=True, include=set(ExpenseFields.model_fields))
    # Convert date to datetime for MongoDB
    doc['dueDate'] = to_storage_datetime(fields.due_date)
    doc.update({
        "_id": expense_id or database.new_id(),
        "user": user_id,
        "family": family_id,
        "createdAt": to_local_naive(created_at) or now(),
    })
    return doc


def document_to_expense(doc: Dict[str, Any]) -> Expense:
    return Expense.model_validate(database.to_public(doc))


# --- Database Interaction Functions ---

async def find_expenses(db: AsyncIOMotorDatabase, query: Dict[str, Any]) -> List[Expense]:
    """Fetches expenses matching ``query``, sorted by due date ascending."""
    logger.debug(f"Fetching expenses matching {query}...")
    expenses = []
    cursor = database.expenses(db).find(query).sort('dueDate', 1)
    async for doc in cursor:
        try:
            expenses.append(document_to_expense(doc))
        except SchemaValidationError as e:
            logger.error(f"Data validation error for expense ID {doc.get('_id', 'N/A')}: {e}")
            # Skip invalid documents
            continue
    logger.debug(f"Fetched {len(expenses)} expenses.")
    return expenses


async def insert_expense(db: AsyncIOMotorDatabase, doc: Dict[str, Any]) -> Expense:
    await database.expenses(db).insert_one(doc)
    return document_to_expense(doc)


async def create_expense(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    fields: ExpenseFields,
    family_id: Optional[str] = None,
) -> Expense:
    if family_id:
        await require_membership(db, principal, family_id)

    expense = await insert_expense(db, expense_document(fields, principal.id, family_id))
    logger.info(f"{kind_label(expense.kind)} {expense.id} created by user {principal.id} (family={family_id}).")

    action = f"{kind_label(expense.kind)} adicionada"
    details = money_details(expense.description, expense.amount)
    await append_user_history(db, principal.id, action, details)
    if family_id:
        await append_family_history(db, family_id, principal.id, action, details)
    return expense


async def list_expenses(
    db: AsyncIOMotorDatabase, principal: Principal, family_id: Optional[str] = None
) -> List[Expense]:
    """
    Family expenses (with each contributor's display identity) when
    ``family_id`` is given, otherwise the user's personal expenses only.
    """
    if not family_id:
        return await find_expenses(db, {"user": principal.id, "family": None})

    await require_membership(db, principal, family_id)
    expenses = await find_expenses(db, {"family": family_id})
    profiles = await member_profiles(db, (e.user for e in expenses))
    for expense in expenses:
        expense.owner = profiles.get(expense.user)
    return expenses


async def delete_expense(db: AsyncIOMotorDatabase, principal: Principal, expense_id: str) -> None:
    collection = database.expenses(db)
    doc = await collection.find_one({"_id": expense_id, "user": principal.id})
    if doc is None:
        raise NotFoundError("Expense not found")

    result = await collection.delete_one({"_id": expense_id, "user": principal.id})
    if result.deleted_count == 0:
        raise NotFoundError("Expense not found")
    logger.info(f"Expense {expense_id} deleted by user {principal.id}.")

    await append_user_history(
        db,
        principal.id,
        f"{kind_label(doc.get('kind'))} removida",
        money_details(doc.get('description', ''), doc.get('amount', 0)),
    )
