"""Pydantic models for family groups"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.common import ApiModel, CredentialPayload
from models.records import HistoryEntry
from models.user import UserSummary


class FamilyCreate(CredentialPayload):
    name: str = Field(..., min_length=1, max_length=50)


class FamilyJoin(CredentialPayload):
    code: str = Field(..., min_length=1)


class Family(ApiModel):
    id: str
    name: str
    code: str
    members: List[str] = []
    history: List[HistoryEntry] = []
    created_by: str
    created_at: Optional[datetime] = None
    member_profiles: Optional[List[UserSummary]] = None
