"""Ledger of low-supply alerts that have already been delivered."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from medreminder.utils.clock import utc_now


class LowSupplyAlertState(SQLModel, table=True):
    """Marks a medication whose low-supply alert was sent and not yet cleared."""

    __tablename__ = "low_supply_alert_states"

    medication_id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=128)
    remaining_days: float
    alerted_at: datetime = Field(default_factory=utc_now)
