"""Link between a LINE user and an application user."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from medreminder.utils.clock import utc_now


class LineConnection(SQLModel, table=True):
    """
    One LINE account linked to one application user.

    The LINE user id is the primary key, so a LINE identity holds at most
    one active link. ``app_user_id`` is indexed for the reverse lookup used
    by outbound sends.
    """

    __tablename__ = "line_connections"

    line_user_id: str = Field(primary_key=True, max_length=64)
    app_user_id: str = Field(index=True, max_length=128)
    linked_at: datetime = Field(default_factory=utc_now)
