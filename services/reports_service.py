"""
Weekly and monthly report aggregation.

Both reports cover only the current week/month of the server clock. The
grouping is done in plain loops over already-sorted expenses, so the chart
builders are pure functions over ``Expense`` lists.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from models.common import PAYMENT_TYPES
from models.expense import Expense
from services.auth_service import Principal, require_membership
from services.expenses_service import find_expenses
from utils.dates import month_bounds, sunday_index, week_bounds

logger = logging.getLogger(__name__)

WEEKDAY_LABELS = {
    'pt-BR': ('Dom', 'Seg', 'Ter', 'Qua', 'Qui', 'Sex', 'Sáb'),
    'en': ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'),
}


def weekday_labels(locale: Optional[str] = None) -> Sequence[str]:
    return WEEKDAY_LABELS.get(locale or config.REPORT_LOCALE, WEEKDAY_LABELS['pt-BR'])


def build_weekly_chart(expenses: List[Expense], locale: Optional[str] = None) -> Dict[str, List[Any]]:
    """Seven-slot sums per kind, Sunday first; days without records stay at 0."""
    expense_data = [0.0] * 7
    income_data = [0.0] * 7
    for expense in expenses:
        slot = sunday_index(expense.due_date)
        if expense.kind == 'expense':
            expense_data[slot] += expense.amount
        else:
            income_data[slot] += expense.amount
    return {
        "labels": list(weekday_labels(locale)),
        "expenseData": expense_data,
        "incomeData": income_data,
    }


def build_monthly_chart(expenses: List[Expense]) -> Dict[str, List[Any]]:
    """Sums per payment method in the fixed enumeration order."""
    totals = {payment_type: 0.0 for payment_type in PAYMENT_TYPES}
    for expense in expenses:
        if expense.payment_type in totals:
            totals[expense.payment_type] += expense.amount
    return {
        "labels": [payment_type.capitalize() for payment_type in PAYMENT_TYPES],
        "data": [totals[payment_type] for payment_type in PAYMENT_TYPES],
    }


async def _scope_query(db: AsyncIOMotorDatabase, principal: Principal, family_id: Optional[str]) -> Dict[str, Any]:
    if family_id:
        await require_membership(db, principal, family_id)
        return {"family": family_id}
    return {"user": principal.id}


async def weekly_report(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    family_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    start, end = week_bounds(today or date.today())
    query = await _scope_query(db, principal, family_id)
    query["dueDate"] = {"$gte": start, "$lt": end}
    expenses = await find_expenses(db, query)
    logger.info(f"Weekly report for user {principal.id} (family={family_id}): {len(expenses)} records from {start.date()}.")
    return {"expenses": expenses, "chartData": build_weekly_chart(expenses)}


async def monthly_report(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    family_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    start, end = month_bounds(today or date.today())
    query = await _scope_query(db, principal, family_id)
    query["dueDate"] = {"$gte": start, "$lt": end}
    expenses = await find_expenses(db, query)
    logger.info(f"Monthly report for user {principal.id} (family={family_id}): {len(expenses)} records from {start.date()}.")
    return {"expenses": expenses, "chartData": build_monthly_chart(expenses)}
