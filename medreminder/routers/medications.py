"""Medication router: registration, editing, intake recording and refills.

The owner and the owner's linked caregiver accounts may use every route;
intake records name the caller in ``recorded_by``.
"""
from typing import Iterable, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from medreminder.db.config import get_session
from medreminder.middleware.auth import CurrentUser, ensure_can_act_for, get_current_user
from medreminder.models.medication import Medication
from medreminder.routers.dependencies import get_scheduler
from medreminder.scheduler import ReminderScheduler
from medreminder.schemas.medication import (
    ExtendPrescriptionRequest,
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
    NotificationOutcome,
    RecordBulkRequest,
    TakeResponse,
)
from medreminder.services.medication_service import MedicationNotFoundError, MedicationService
from medreminder.services.notification_service import SendResult
from medreminder.services.settings_service import SettingsService

router = APIRouter(tags=["Medications"])


def get_medication_service(
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> MedicationService:
    """Dependency for getting MedicationService instance."""
    return MedicationService(session, scheduler.settings.scheduler_timezone)


async def _alert_if_low(
    session: Session, scheduler: ReminderScheduler, user_id: str, medications: Iterable[Medication]
) -> List[NotificationOutcome]:
    settings = SettingsService(session).get_or_create(user_id)
    if not settings.low_supply_alerts_enabled:
        return []
    results: List[SendResult] = await scheduler.low_supply_evaluator.alert_for_medications(user_id, medications)
    return [
        NotificationOutcome(
            medication_id=result.data.get("medication_id"),
            status=result.status.value,
            detail=result.detail,
        )
        for result in results
    ]


def _responses(medications: Iterable[Medication]) -> List[MedicationResponse]:
    return [MedicationResponse.model_validate(medication) for medication in medications]


def _not_found(e: MedicationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{user_id}/medications", response_model=List[MedicationResponse])
async def list_medications(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
):
    ensure_can_act_for(user_id, current_user, session)
    return service.list_for_user(user_id)


@router.post("/{user_id}/medications", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    user_id: str,
    data: MedicationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
):
    """Register a medication with a full supply for its prescription days."""
    ensure_can_act_for(user_id, current_user, session)
    return service.create(
        user_id=user_id,
        name=data.name,
        frequency=data.frequency,
        dosage_per_time=data.dosage_per_time,
        prescription_days=data.prescription_days,
        notes=data.notes,
    )


@router.post("/{user_id}/medications/record-bulk", response_model=TakeResponse)
async def record_bulk(
    user_id: str,
    data: RecordBulkRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Mark every medication scheduled at a session as taken, then check supply."""
    ensure_can_act_for(user_id, current_user, session)
    updated = service.record_bulk(user_id, data.timing, recorded_by=current_user.user_id)
    alerts = await _alert_if_low(session, scheduler, user_id, updated)
    return TakeResponse(medications=_responses(updated), alerts=alerts)


@router.patch("/{user_id}/medications/{medication_id}", response_model=TakeResponse)
async def update_medication(
    user_id: str,
    medication_id: str,
    data: MedicationUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Edit a medication; the recomputed supply is checked right away."""
    ensure_can_act_for(user_id, current_user, session)
    try:
        medication = service.update(user_id, medication_id, **data.model_dump(exclude_unset=True))
    except MedicationNotFoundError as e:
        raise _not_found(e)
    alerts = await _alert_if_low(session, scheduler, user_id, [medication])
    return TakeResponse(medications=_responses([medication]), alerts=alerts)


@router.delete("/{user_id}/medications/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    user_id: str,
    medication_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
):
    """Delete a medication together with its intake records."""
    ensure_can_act_for(user_id, current_user, session)
    try:
        service.delete(user_id, medication_id)
    except MedicationNotFoundError as e:
        raise _not_found(e)


@router.post("/{user_id}/medications/{medication_id}/take", response_model=TakeResponse)
async def take_medication(
    user_id: str,
    medication_id: str,
    data: RecordBulkRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Record one dose of a single medication."""
    ensure_can_act_for(user_id, current_user, session)
    try:
        medication = service.record_taken(user_id, medication_id, data.timing, recorded_by=current_user.user_id)
    except MedicationNotFoundError as e:
        raise _not_found(e)
    alerts = await _alert_if_low(session, scheduler, user_id, [medication])
    return TakeResponse(medications=_responses([medication]), alerts=alerts)


@router.post("/{user_id}/medications/{medication_id}/extend", response_model=MedicationResponse)
async def extend_prescription(
    user_id: str,
    medication_id: str,
    data: ExtendPrescriptionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: MedicationService = Depends(get_medication_service),
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Add prescription days; a recovered supply re-arms the low-supply alert."""
    ensure_can_act_for(user_id, current_user, session)
    try:
        medication = service.extend_prescription(user_id, medication_id, data.additional_days)
    except MedicationNotFoundError as e:
        raise _not_found(e)
    await _alert_if_low(session, scheduler, user_id, [medication])
    return medication
