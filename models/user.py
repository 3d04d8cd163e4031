"""Pydantic models for users and their settings"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.common import ApiModel
from models.records import HistoryEntry, ImportantDate


class UserSettings(ApiModel):
    weekly_report: bool = False
    monthly_report: bool = False
    dark_theme: bool = True


class SettingsUpdate(ApiModel):
    """Partial settings payload; omitted toggles keep their stored value."""
    weekly_report: Optional[bool] = None
    monthly_report: Optional[bool] = None
    dark_theme: Optional[bool] = None


class UserSummary(ApiModel):
    """Display identity attached to shared records."""
    id: str
    username: str
    photo_path: Optional[str] = None


class User(ApiModel):
    """
    Public view of a user. There is deliberately no device token field:
    whatever the stored document holds, it is never serialised back out.
    """
    id: str
    username: str
    photo_path: str
    last_login: Optional[datetime] = None
    important_dates: List[ImportantDate] = []
    history: List[HistoryEntry] = []
    families: List[str] = []
    settings: UserSettings = Field(default_factory=UserSettings)
    created_at: Optional[datetime] = None


class DeviceTokenBody(ApiModel):
    device_token: str = Field(..., min_length=1)


class SettingsRequest(DeviceTokenBody):
    settings: SettingsUpdate
