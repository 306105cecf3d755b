"""Medication schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class MedicationCreate(BaseModel):
    """Schema for registering a medication."""
    name: str = Field(..., min_length=1, max_length=200)
    dosage_per_time: float = Field(1, gt=0)  # pills per administration
    frequency: List[str] = Field(..., min_length=1)  # session labels, e.g. ["朝", "晩"]
    prescription_days: int = Field(14, ge=1)
    notes: Optional[str] = Field(None, max_length=1000)


class MedicationResponse(BaseModel):
    id: str
    user_id: str
    name: str
    dosage_per_time: float
    frequency: List[str]
    prescription_days: int
    total_pills: float
    remaining_pills: float
    taken_count: int
    notes: Optional[str] = None
    remaining_days: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MedicationUpdate(BaseModel):
    """Partial edit; supply totals are recomputed from the result."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    dosage_per_time: Optional[float] = Field(None, gt=0)
    frequency: Optional[List[str]] = Field(None, min_length=1)
    prescription_days: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=1000)


class RecordBulkRequest(BaseModel):
    """Mark medications scheduled at ``timing`` as taken by the caller."""
    timing: str = Field(..., min_length=1, max_length=50)


class ExtendPrescriptionRequest(BaseModel):
    additional_days: int = Field(..., ge=1)


class NotificationOutcome(BaseModel):
    medication_id: Optional[str] = None
    status: str
    detail: str


class TakeResponse(BaseModel):
    """Updated medications and any low-supply alerts that were sent."""
    medications: List[MedicationResponse]
    alerts: List[NotificationOutcome] = []
