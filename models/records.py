"""Pydantic models for history entries and important dates (embedded records)"""
from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator

from models.common import ApiModel, CredentialPayload, Scope
from utils.dates import to_date


class HistoryEntry(ApiModel):
    """
    One line of the activity log, embedded in a user or a family document.
    Family-scoped entries carry the id of the member who acted.
    """
    id: str
    action: str
    details: str = ""
    timestamp: datetime
    scope: Scope = 'user'
    user: Optional[str] = None


class ImportantDate(ApiModel):
    """A reminder entry embedded in the user document."""
    id: str
    title: str
    date: date
    notes: str = ""
    created_at: datetime

    @field_validator('date', mode='before')
    @classmethod
    def strip_time(cls, value):
        return to_date(value)


class HistoryCreate(CredentialPayload):
    action: str = Field(..., min_length=1, max_length=100)
    details: str = Field("", max_length=200)
    scope: Scope = 'user'
    family_id: Optional[str] = None


class ImportantDateCreate(CredentialPayload):
    title: str = Field(..., min_length=1, max_length=50)
    date: date
    notes: str = Field("", max_length=200)
