"""Medication model for SQLModel."""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from medreminder.utils.clock import utc_now


class Medication(SQLModel, table=True):
    """A prescribed medication and its remaining supply."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True, max_length=128)
    name: str = Field(max_length=200, min_length=1)
    dosage_per_time: float = Field(default=1)
    frequency: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    prescription_days: int = Field(default=14)
    total_pills: float = Field(default=0)
    remaining_pills: float = Field(default=0)
    taken_count: int = Field(default=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def daily_intake(self) -> float:
        """Pills consumed per day: one dose at each scheduled session."""
        sessions = len(self.frequency) if isinstance(self.frequency, list) else 0
        dosage = self.dosage_per_time or 0
        return sessions * dosage

    @property
    def remaining_days(self) -> Optional[float]:
        """Days of supply left, or None when nothing is taken daily."""
        intake = self.daily_intake
        if intake <= 0 or self.remaining_pills is None:
            return None
        return self.remaining_pills / intake
