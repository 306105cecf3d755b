"""Reminder settings schemas."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from medreminder.services.time_matcher import normalize_time_string


class ReminderSettingsUpdate(BaseModel):
    """Partial update of a user's reminder settings."""
    reminder_times: Optional[Dict[str, str]] = None
    notifications_enabled: Optional[bool] = None
    low_supply_alerts_enabled: Optional[bool] = None

    @field_validator("reminder_times")
    @classmethod
    def validate_reminder_times(cls, value):
        if value is None:
            return value
        normalized = {}
        for session_label, time_value in value.items():
            formatted = normalize_time_string(time_value)
            if formatted is None:
                raise ValueError(f"Invalid time for {session_label}: {time_value!r} (expected HH:MM)")
            normalized[session_label] = formatted
        return normalized


class ReminderSettingsResponse(BaseModel):
    user_id: str
    reminder_times: Dict[str, str]
    notifications_enabled: bool
    low_supply_alerts_enabled: bool
    link_code: str
    linked_accounts: List[str] = []
    linked: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LinkAccountRequest(BaseModel):
    """Another user's link code, exchanged to link the two accounts."""
    link_code: str = Field(..., min_length=1, max_length=32)
