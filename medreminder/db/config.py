"""Database configuration for the medication reminder service."""
from typing import Callable, Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from medreminder.config import get_settings
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)

DATABASE_URL = get_settings().database_url

# SQLite needs check_same_thread disabled because the scheduler runs
# outside the request thread
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)

if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite database", url=DATABASE_URL)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()
else:
    logger.info("Using PostgreSQL database")


SessionFactory = Callable[[], Session]


def session_factory_for(bind: Engine) -> SessionFactory:
    """Return a callable that opens a new session on ``bind``."""
    def factory() -> Session:
        return Session(bind)
    return factory


default_session_factory: SessionFactory = session_factory_for(engine)


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session
