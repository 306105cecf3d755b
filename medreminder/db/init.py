"""Initialize database tables."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

# Imported for their side effect of registering tables on SQLModel.metadata
from medreminder.models.line_connection import LineConnection  # noqa: F401
from medreminder.models.low_supply_alert import LowSupplyAlertState  # noqa: F401
from medreminder.models.medication import Medication  # noqa: F401
from medreminder.models.medication_record import MedicationRecord  # noqa: F401
from medreminder.models.user_settings import UserSettings  # noqa: F401


def init_db(bind: Engine = None):
    """Create all tables in the database."""
    if bind is None:
        from medreminder.db.config import engine
        bind = engine
    SQLModel.metadata.create_all(bind)


if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
