"""Medication service: registration, editing, intake recording and prescription refills."""
from datetime import datetime, time, timedelta
from typing import List, Optional

import pytz
from sqlmodel import Session, select

from medreminder.models.low_supply_alert import LowSupplyAlertState
from medreminder.models.medication import Medication
from medreminder.models.medication_record import MedicationRecord
from medreminder.services.time_matcher import now_in_zone
from medreminder.utils.clock import utc_now
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


class MedicationNotFoundError(Exception):
    """The medication does not exist or belongs to another user."""


def pills_for_days(days: int, frequency: List[str], dosage_per_time: float) -> float:
    return days * len(frequency) * dosage_per_time


class MedicationService:
    """CRUD operations for a user's medications."""

    def __init__(self, session: Session, timezone_name: str = "Asia/Tokyo"):
        self.session = session
        self.timezone_name = timezone_name

    def create(
        self,
        user_id: str,
        name: str,
        frequency: List[str],
        dosage_per_time: float = 1,
        prescription_days: int = 14,
        notes: Optional[str] = None,
    ) -> Medication:
        """Register a medication with a full supply for ``prescription_days``."""
        total_pills = pills_for_days(prescription_days, frequency, dosage_per_time)
        medication = Medication(
            user_id=user_id,
            name=name,
            dosage_per_time=dosage_per_time,
            frequency=list(frequency),
            prescription_days=prescription_days,
            total_pills=total_pills,
            remaining_pills=total_pills,
            taken_count=0,
            notes=notes,
        )
        self.session.add(medication)
        self.session.commit()
        self.session.refresh(medication)
        return medication

    def list_for_user(self, user_id: str) -> List[Medication]:
        statement = select(Medication).where(Medication.user_id == user_id).order_by(Medication.created_at)
        return list(self.session.exec(statement).all())

    def get_owned(self, user_id: str, medication_id: str) -> Medication:
        medication = self.session.get(Medication, medication_id)
        if medication is None or medication.user_id != user_id:
            raise MedicationNotFoundError(f"Medication {medication_id} not found")
        return medication

    def _apply_take(self, medication: Medication, timing: str, now: datetime, recorded_by: Optional[str]):
        medication.remaining_pills = max(0, (medication.remaining_pills or 0) - medication.dosage_per_time)
        medication.taken_count = (medication.taken_count or 0) + 1
        medication.updated_at = now
        self.session.add(medication)
        self.session.add(
            MedicationRecord(
                user_id=medication.user_id,
                medication_id=medication.id,
                medication_name=medication.name,
                status="taken",
                scheduled_time=timing,
                taken_at=now,
                recorded_by=recorded_by,
                created_at=now,
            )
        )

    def record_taken(
        self, user_id: str, medication_id: str, timing: str, recorded_by: Optional[str] = None
    ) -> Medication:
        """Record one dose of a single medication."""
        medication = self.get_owned(user_id, medication_id)
        self._apply_take(medication, timing, utc_now(), recorded_by)
        self.session.commit()
        self.session.refresh(medication)
        return medication

    def record_bulk(self, user_id: str, timing: str, recorded_by: Optional[str] = None) -> List[Medication]:
        """
        Mark every medication scheduled at ``timing`` as taken.

        Medications already taken at ``timing`` today (in the configured
        time zone) are left untouched. Returns the medications updated.
        """
        now = utc_now()
        taken_today = self._taken_today(user_id, timing, now)

        updated = []
        for medication in self.list_for_user(user_id):
            if timing not in (medication.frequency or []) or medication.id in taken_today:
                continue
            self._apply_take(medication, timing, now, recorded_by)
            updated.append(medication)

        self.session.commit()
        for medication in updated:
            self.session.refresh(medication)
        logger.info("Recorded bulk intake", user_id=user_id, timing=timing, count=len(updated))
        return updated

    def extend_prescription(self, user_id: str, medication_id: str, additional_days: int) -> Medication:
        """Add ``additional_days`` worth of pills to both the total and the remaining count."""
        if additional_days <= 0:
            raise ValueError("additional_days must be positive")
        medication = self.get_owned(user_id, medication_id)
        additional_pills = pills_for_days(additional_days, medication.frequency or [], medication.dosage_per_time)

        medication.prescription_days = (medication.prescription_days or 0) + additional_days
        medication.total_pills = (medication.total_pills or 0) + additional_pills
        medication.remaining_pills = (medication.remaining_pills or 0) + additional_pills
        medication.updated_at = utc_now()
        self.session.add(medication)
        self.session.commit()
        self.session.refresh(medication)
        return medication

    def update(
        self,
        user_id: str,
        medication_id: str,
        name: Optional[str] = None,
        frequency: Optional[List[str]] = None,
        dosage_per_time: Optional[float] = None,
        prescription_days: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Medication:
        """
        Edit a medication and recompute its supply.

        The total is rebuilt from the prescription and the remaining count
        is the total minus every dose taken so far, never below zero.
        """
        medication = self.get_owned(user_id, medication_id)
        if name is not None:
            medication.name = name
        if frequency is not None:
            medication.frequency = list(frequency)
        if dosage_per_time is not None:
            medication.dosage_per_time = dosage_per_time
        if prescription_days is not None:
            medication.prescription_days = prescription_days
        if notes is not None:
            medication.notes = notes

        medication.total_pills = pills_for_days(
            medication.prescription_days, medication.frequency or [], medication.dosage_per_time
        )
        medication.remaining_pills = max(
            0, medication.total_pills - (medication.taken_count or 0) * medication.dosage_per_time
        )
        medication.updated_at = utc_now()
        self.session.add(medication)
        self.session.commit()
        self.session.refresh(medication)
        logger.info("Updated medication", user_id=user_id, medication_id=medication_id)
        return medication

    def delete(self, user_id: str, medication_id: str) -> int:
        """
        Delete a medication with its intake records and any outstanding
        low-supply alert. Returns the number of records removed.
        """
        medication = self.get_owned(user_id, medication_id)
        records = self.session.exec(
            select(MedicationRecord).where(MedicationRecord.medication_id == medication_id)
        ).all()
        for record in records:
            self.session.delete(record)

        alert_state = self.session.get(LowSupplyAlertState, medication_id)
        if alert_state is not None:
            self.session.delete(alert_state)

        self.session.delete(medication)
        self.session.commit()
        logger.info("Deleted medication", user_id=user_id, medication_id=medication_id, records=len(records))
        return len(records)

    def _taken_today(self, user_id: str, timing: str, now: datetime) -> set:
        tz = pytz.timezone(self.timezone_name)
        local_now = now_in_zone(self.timezone_name, now)
        local_midnight = tz.localize(datetime(local_now.year, local_now.month, local_now.day))
        next_midnight = tz.localize(datetime.combine(local_midnight.date() + timedelta(days=1), time()))
        start = local_midnight.astimezone(pytz.utc)
        end = next_midnight.astimezone(pytz.utc)
        statement = select(MedicationRecord.medication_id).where(
            MedicationRecord.user_id == user_id,
            MedicationRecord.scheduled_time == timing,
            MedicationRecord.status == "taken",
            MedicationRecord.taken_at >= start,
            MedicationRecord.taken_at < end,
        )
        return set(self.session.exec(statement).all())
