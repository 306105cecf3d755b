"""Database models for the medication reminder service."""

from .line_connection import LineConnection
from .low_supply_alert import LowSupplyAlertState
from .medication import Medication
from .medication_record import MedicationRecord
from .user_settings import UserSettings

__all__ = ["LineConnection", "LowSupplyAlertState", "Medication", "MedicationRecord", "UserSettings"]
