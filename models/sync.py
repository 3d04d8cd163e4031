"""Pydantic models for the offline sync endpoint"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from models.common import ApiModel, CredentialPayload, Scope, client_id_to_str
from models.expense import Expense, ExpenseFields
from models.records import HistoryEntry, ImportantDate


class SyncExpense(ExpenseFields):
    id: Optional[str] = None
    family_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator('id', 'family_id', mode='before')
    @classmethod
    def id_to_str(cls, value):
        return client_id_to_str(value)


class SyncImportantDate(ApiModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=50)
    date: date
    notes: str = Field("", max_length=200)
    created_at: Optional[datetime] = None

    @field_validator('id', mode='before')
    @classmethod
    def id_to_str(cls, value):
        return client_id_to_str(value)


class SyncHistoryEntry(ApiModel):
    id: Optional[str] = None
    action: str = Field(..., min_length=1, max_length=100)
    details: str = Field("", max_length=200)
    timestamp: Optional[datetime] = None
    scope: Scope = 'user'
    family_id: Optional[str] = None

    @field_validator('id', 'family_id', mode='before')
    @classmethod
    def id_to_str(cls, value):
        return client_id_to_str(value)


class SyncRequest(CredentialPayload):
    """
    Items are kept as raw dicts so that one malformed record is skipped
    by the reconciler instead of rejecting the whole batch.
    """
    expenses: List[Dict[str, Any]] = []
    important_dates: List[Dict[str, Any]] = []
    history: List[Dict[str, Any]] = []


class SyncResult(ApiModel):
    expenses: List[Expense] = []
    dates: List[ImportantDate] = []
    history: List[HistoryEntry] = []
