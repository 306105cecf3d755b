"""Persistence tests for every table and its timestamp defaults."""
from datetime import timedelta

from sqlmodel import select

from medreminder.models.line_connection import LineConnection
from medreminder.models.low_supply_alert import LowSupplyAlertState
from medreminder.models.medication import Medication
from medreminder.models.medication_record import MedicationRecord
from medreminder.models.user_settings import UserSettings
from medreminder.services.low_supply_evaluator import LowSupplyAlertLedger, LowSupplyTask
from medreminder.services.settings_service import SettingsService


def test_timestamp_defaults_are_aware_utc():
    stamps = [
        UserSettings(user_id="A").created_at,
        UserSettings(user_id="A").updated_at,
        LineConnection(line_user_id="U1", app_user_id="A").linked_at,
        Medication(user_id="A", name="ロキソニン", frequency=["朝"]).updated_at,
        MedicationRecord(user_id="A", medication_id="m1", medication_name="ロキソニン", scheduled_time="朝").taken_at,
        LowSupplyAlertState(medication_id="m1", user_id="A", remaining_days=2.0).alerted_at,
    ]

    for stamp in stamps:
        assert stamp.utcoffset() == timedelta(0)


def test_every_table_accepts_inserts(session):
    session.add(UserSettings(user_id="A"))
    session.add(LineConnection(line_user_id="U1", app_user_id="A"))
    session.add(Medication(id="m1", user_id="A", name="ロキソニン", frequency=["朝"]))
    session.add(MedicationRecord(user_id="A", medication_id="m1", medication_name="ロキソニン", scheduled_time="朝"))
    session.add(LowSupplyAlertState(medication_id="m1", user_id="A", remaining_days=2.0))
    session.commit()

    assert session.get(UserSettings, "A").linked_accounts == []
    assert session.get(LineConnection, "U1").app_user_id == "A"
    assert len(session.exec(select(MedicationRecord)).all()) == 1


def test_settings_created_on_first_access(session):
    settings = SettingsService(session).get_or_create("A")

    assert settings.user_id == "A"
    assert session.get(UserSettings, "A") is not None


def test_ledger_mark_persists_and_updates(session_factory, session):
    ledger = LowSupplyAlertLedger(session_factory)

    ledger.mark(LowSupplyTask("A", "m1", "ロキソニン", 2.0))
    ledger.mark(LowSupplyTask("A", "m1", "ロキソニン", 1.5))

    assert ledger.alerted_medication_ids("A") == {"m1"}
    assert session.get(LowSupplyAlertState, "m1").remaining_days == 1.5
