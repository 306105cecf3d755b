"""Account linking between LINE users and application users."""
from typing import Optional

from sqlmodel import Session, select

from medreminder.models.line_connection import LineConnection
from medreminder.models.user_settings import UserSettings
from medreminder.utils.clock import utc_now
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


class LinkService:
    """Create, resolve and remove LINE account links."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_app_user(self, app_user_id: str) -> Optional[LineConnection]:
        """Reverse lookup: the LINE link for an application user, if any."""
        statement = select(LineConnection).where(LineConnection.app_user_id == app_user_id).limit(1)
        return self.session.exec(statement).first()

    def find_by_line_user(self, line_user_id: str) -> Optional[LineConnection]:
        return self.session.get(LineConnection, line_user_id)

    def link_with_code(self, line_user_id: str, link_code: str) -> Optional[LineConnection]:
        """
        Link ``line_user_id`` to the user owning ``link_code``.

        Any previous link of this LINE user is replaced. Returns None when
        no user settings carry the code.
        """
        code = (link_code or "").strip()
        if not code:
            return None

        statement = select(UserSettings).where(UserSettings.link_code == code).limit(1)
        settings = self.session.exec(statement).first()
        if settings is None:
            return None

        connection = self.session.get(LineConnection, line_user_id)
        if connection is None:
            connection = LineConnection(line_user_id=line_user_id, app_user_id=settings.user_id)
        else:
            connection.app_user_id = settings.user_id
            connection.linked_at = utc_now()

        self.session.add(connection)
        self.session.commit()
        self.session.refresh(connection)
        logger.info("Linked LINE account", line_user_id=line_user_id, app_user_id=settings.user_id)
        return connection

    def unlink(self, line_user_id: str) -> bool:
        """Remove the link for ``line_user_id``. Deleting a missing link is a no-op."""
        connection = self.session.get(LineConnection, line_user_id)
        if connection is None:
            return False
        self.session.delete(connection)
        self.session.commit()
        logger.info("Unlinked LINE account", line_user_id=line_user_id)
        return True
