"""Reminder settings and caregiver account linking router."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from medreminder.db.config import get_session
from medreminder.middleware.auth import CurrentUser, ensure_same_user, get_current_user
from medreminder.models.user_settings import UserSettings
from medreminder.schemas.settings import LinkAccountRequest, ReminderSettingsResponse, ReminderSettingsUpdate
from medreminder.services.link_service import LinkService
from medreminder.services.settings_service import (
    AlreadyLinkedError,
    LinkCodeNotFoundError,
    SelfLinkError,
    SettingsService,
)

router = APIRouter(tags=["Settings"])


def _to_response(session: Session, settings: UserSettings) -> ReminderSettingsResponse:
    linked = LinkService(session).find_by_app_user(settings.user_id) is not None
    response = ReminderSettingsResponse.model_validate(settings)
    response.linked = linked
    return response


@router.get("/{user_id}/settings", response_model=ReminderSettingsResponse)
async def get_settings(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Get the user's reminder settings, creating the defaults on first access."""
    ensure_same_user(user_id, current_user)
    return _to_response(session, SettingsService(session).get_or_create(user_id))


@router.patch("/{user_id}/settings", response_model=ReminderSettingsResponse)
async def update_settings(
    user_id: str,
    update: ReminderSettingsUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Replace the reminder times map and update the notification toggles."""
    ensure_same_user(user_id, current_user)
    settings = SettingsService(session).update(
        user_id,
        reminder_times=update.reminder_times,
        notifications_enabled=update.notifications_enabled,
        low_supply_alerts_enabled=update.low_supply_alerts_enabled,
    )
    return _to_response(session, settings)


@router.post("/{user_id}/linked-accounts", response_model=ReminderSettingsResponse)
async def link_account(
    user_id: str,
    data: LinkAccountRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Link with the account that owns ``link_code``; the link is mutual."""
    ensure_same_user(user_id, current_user)
    try:
        settings = SettingsService(session).link_account(user_id, data.link_code)
    except LinkCodeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SelfLinkError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AlreadyLinkedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _to_response(session, settings)


@router.delete("/{user_id}/linked-accounts/{linked_user_id}", response_model=ReminderSettingsResponse)
async def unlink_account(
    user_id: str,
    linked_user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Remove a caregiver link on both sides."""
    ensure_same_user(user_id, current_user)
    return _to_response(session, SettingsService(session).unlink_account(user_id, linked_user_id))
