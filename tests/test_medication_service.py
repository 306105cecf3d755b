"""Tests for medication intake recording and refills."""
import pytest
from sqlmodel import select

from medreminder.models.low_supply_alert import LowSupplyAlertState
from medreminder.models.medication import Medication
from medreminder.models.medication_record import MedicationRecord
from medreminder.services.medication_service import MedicationNotFoundError, MedicationService, pills_for_days
from tests.conftest import add_medication


@pytest.fixture
def service(session):
    return MedicationService(session, "Asia/Tokyo")


def test_pills_for_days():
    assert pills_for_days(14, ["morning", "evening"], 1.5) == 42


class TestCreate:

    def test_full_supply_for_prescription(self, service):
        medication = service.create("A", "ロキソニン", ["morning", "noon", "evening"], dosage_per_time=2, prescription_days=7)

        assert medication.total_pills == 42
        assert medication.remaining_pills == 42
        assert medication.taken_count == 0
        assert medication.remaining_days == 7

    def test_list_is_scoped_to_user(self, service):
        service.create("A", "ロキソニン", ["morning"])
        service.create("B", "ムコスタ", ["morning"])

        assert [m.name for m in service.list_for_user("A")] == ["ロキソニン"]


class TestRecordTaken:

    def test_decrements_and_records(self, service, session):
        medication = add_medication(session, "A", remaining_pills=10, dosage_per_time=2)

        updated = service.record_taken("A", medication.id, "morning", recorded_by="caregiver")

        assert updated.remaining_pills == 8
        assert updated.taken_count == 1
        records = session.exec(select(MedicationRecord)).all()
        assert len(records) == 1
        assert records[0].recorded_by == "caregiver"

    def test_never_goes_negative(self, service, session):
        medication = add_medication(session, "A", remaining_pills=0.5)

        assert service.record_taken("A", medication.id, "morning").remaining_pills == 0

    def test_other_users_medication_is_not_found(self, service, session):
        medication = add_medication(session, "A")

        with pytest.raises(MedicationNotFoundError):
            service.record_taken("B", medication.id, "morning")


class TestRecordBulk:

    def test_only_medications_at_timing(self, service, session):
        morning = add_medication(session, "A", name="ロキソニン", frequency=["morning"])
        add_medication(session, "A", name="マイスリー", frequency=["bedtime"])

        updated = service.record_bulk("A", "morning")

        assert [m.id for m in updated] == [morning.id]

    def test_second_bulk_same_day_is_a_no_op(self, service, session):
        medication = add_medication(session, "A", remaining_pills=10)

        service.record_bulk("A", "morning")
        assert service.record_bulk("A", "morning") == []

        session.refresh(medication)
        assert medication.remaining_pills == 9
        assert medication.taken_count == 1

    def test_other_timing_still_recorded(self, service, session):
        medication = add_medication(session, "A", remaining_pills=10)

        service.record_bulk("A", "morning")
        updated = service.record_bulk("A", "evening")

        assert [m.id for m in updated] == [medication.id]
        assert updated[0].remaining_pills == 8


class TestExtendPrescription:

    def test_adds_days_to_total_and_remaining(self, service, session):
        medication = add_medication(session, "A", remaining_pills=2, total_pills=28)

        extended = service.extend_prescription("A", medication.id, 7)

        assert extended.prescription_days == 21
        assert extended.total_pills == 42
        assert extended.remaining_pills == 16

    def test_rejects_non_positive_days(self, service, session):
        medication = add_medication(session, "A")

        with pytest.raises(ValueError):
            service.extend_prescription("A", medication.id, 0)


class TestUpdate:

    def test_recomputes_supply_from_taken_doses(self, service, session):
        medication = service.create("A", "ロキソニン", ["morning", "evening"], prescription_days=14)
        service.record_taken("A", medication.id, "morning")
        service.record_taken("A", medication.id, "evening")

        updated = service.update("A", medication.id, frequency=["morning"], dosage_per_time=2, prescription_days=7)

        assert updated.total_pills == 14
        assert updated.remaining_pills == 10
        assert updated.remaining_days == 5

    def test_remaining_never_negative(self, service, session):
        medication = add_medication(session, "A", remaining_pills=0)
        medication.taken_count = 40
        session.add(medication)
        session.commit()

        updated = service.update("A", medication.id, prescription_days=7)

        assert updated.total_pills == 14
        assert updated.remaining_pills == 0

    def test_name_only_edit(self, service, session):
        medication = service.create("A", "ロキソニン", ["morning"], prescription_days=10)

        updated = service.update("A", medication.id, name="ロキソニンS")

        assert updated.name == "ロキソニンS"
        assert updated.total_pills == 10

    def test_other_users_medication_is_not_found(self, service, session):
        medication = add_medication(session, "A")

        with pytest.raises(MedicationNotFoundError):
            service.update("B", medication.id, name="x")


class TestDelete:

    def test_removes_records_and_alert_state(self, service, session):
        medication = add_medication(session, "A")
        kept = add_medication(session, "A", name="ムコスタ")
        service.record_taken("A", medication.id, "morning")
        service.record_taken("A", kept.id, "morning")
        session.add(LowSupplyAlertState(medication_id=medication.id, user_id="A", remaining_days=1.0))
        session.commit()
        medication_id = medication.id

        removed = service.delete("A", medication_id)

        assert removed == 1
        session.expire_all()
        assert session.get(Medication, medication_id) is None
        assert session.get(LowSupplyAlertState, medication_id) is None
        remaining = session.exec(select(MedicationRecord)).all()
        assert [record.medication_id for record in remaining] == [kept.id]

    def test_other_users_medication_is_not_found(self, service, session):
        medication = add_medication(session, "A")

        with pytest.raises(MedicationNotFoundError):
            service.delete("B", medication.id)
