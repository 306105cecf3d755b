"""Shared FastAPI dependencies."""
from medreminder.scheduler import ReminderScheduler, get_reminder_scheduler


def get_scheduler() -> ReminderScheduler:
    """Dependency returning the process-wide reminder scheduler."""
    return get_reminder_scheduler()
