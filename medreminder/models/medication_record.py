"""Medication intake record model."""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from medreminder.utils.clock import utc_now


class MedicationRecord(SQLModel, table=True):
    """One dose taken (or skipped) at a session."""

    __tablename__ = "medication_records"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True, max_length=128)
    medication_id: str = Field(index=True, max_length=64)
    medication_name: str = Field(max_length=200)
    status: str = Field(default="taken", max_length=20)  # taken, skipped
    scheduled_time: str = Field(max_length=50)  # session label
    taken_at: datetime = Field(default_factory=utc_now, index=True)
    recorded_by: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utc_now)
