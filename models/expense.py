"""Pydantic models for Expense data"""
from pydantic import Field, field_validator
from datetime import date, datetime
from typing import Optional

from models.common import ApiModel, CredentialPayload, Kind, PaymentType, normalize_kind, normalize_payment_type
from models.user import UserSummary
from utils.dates import to_date


class ExpenseFields(ApiModel):
    """
    Fields describing a single expense or income record, shared by the
    create request, the sync payload and the stored document.
    """
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    kind: Kind
    due_date: date
    payment_type: PaymentType
    responsavel: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('kind', mode='before')
    @classmethod
    def coerce_kind(cls, value):
        return normalize_kind(value)

    @field_validator('payment_type', mode='before')
    @classmethod
    def coerce_payment_type(cls, value):
        return normalize_payment_type(value)

    @field_validator('due_date', mode='before')
    @classmethod
    def strip_time(cls, value):
        return to_date(value)


class ExpenseCreate(ExpenseFields, CredentialPayload):
    family_id: Optional[str] = None


class Expense(ExpenseFields):
    """
    Represents a stored expense or income transaction.
    ``owner`` is only populated on family listings.
    """
    id: str
    user: str
    family: Optional[str] = None
    created_at: Optional[datetime] = None
    owner: Optional[UserSummary] = None
