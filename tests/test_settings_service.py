"""Tests for reminder settings updates and caregiver account linking."""
import pytest

from medreminder.models.user_settings import UserSettings
from medreminder.services.notification_service import NotificationSender
from medreminder.services.reminder_dispatcher import ReminderDispatcher
from medreminder.services.settings_scanner import SettingsScanner
from medreminder.services.settings_service import (
    AlreadyLinkedError,
    LinkCodeNotFoundError,
    SelfLinkError,
    SettingsService,
)
from tests.conftest import LINE_USER_A, add_link, jst


@pytest.fixture
def service(session):
    return SettingsService(session)


class TestUpdate:

    def test_reminder_times_replace_the_whole_map(self, service):
        service.get_or_create("A")

        settings = service.update("A", reminder_times={"朝": "07:00"})

        assert settings.reminder_times == {"朝": "07:00"}

    def test_flags_only_update_keeps_times(self, service):
        service.update("A", reminder_times={"朝": "07:00"})

        settings = service.update("A", notifications_enabled=True)

        assert settings.reminder_times == {"朝": "07:00"}
        assert settings.notifications_enabled is True

    @pytest.mark.asyncio
    async def test_dropped_session_is_no_longer_reminded(self, service, session, session_factory, provider, settings):
        service.update("A", reminder_times={"朝": "08:00", "頓服": "21:00"}, notifications_enabled=True)
        add_link(session, "A", LINE_USER_A)
        dispatcher = ReminderDispatcher(
            SettingsScanner(session_factory), NotificationSender(session_factory, provider, settings), settings
        )

        service.update("A", reminder_times={"朝": "08:00"})
        report = await dispatcher.run(jst(21, 0))

        assert report.tasks == []
        assert provider.sent == []


class TestAccountLinking:

    def test_link_is_mutual(self, service, session):
        other = service.get_or_create("B")

        settings = service.link_account("A", other.link_code)

        assert settings.linked_accounts == ["B"]
        session.refresh(other)
        assert other.linked_accounts == ["A"]

    def test_unknown_code(self, service):
        with pytest.raises(LinkCodeNotFoundError):
            service.link_account("A", "NOPE1234")

    def test_own_code_is_rejected(self, service):
        own = service.get_or_create("A")

        with pytest.raises(SelfLinkError):
            service.link_account("A", own.link_code)

    def test_second_link_is_rejected(self, service):
        other = service.get_or_create("B")
        service.link_account("A", other.link_code)

        with pytest.raises(AlreadyLinkedError):
            service.link_account("A", other.link_code)

    def test_unlink_removes_both_sides(self, service, session):
        other = service.get_or_create("B")
        service.link_account("A", other.link_code)

        settings = service.unlink_account("A", "B")

        assert settings.linked_accounts == []
        session.refresh(other)
        assert other.linked_accounts == []

    def test_can_act_for(self, service):
        other = service.get_or_create("B")
        service.link_account("A", other.link_code)

        assert service.can_act_for("A", "A")
        assert service.can_act_for("A", "B")
        assert service.can_act_for("B", "A")
        assert not service.can_act_for("C", "A")
        assert not service.can_act_for("C", "missing")

    def test_stored_lists_are_plain_json(self, service, session):
        other = service.get_or_create("B")
        service.link_account("A", other.link_code)

        session.expire_all()
        assert session.get(UserSettings, "A").linked_accounts == ["B"]
