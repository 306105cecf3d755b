"""Health endpoints."""
from fastapi import APIRouter, Depends

from medreminder import __version__
from medreminder.routers.dependencies import get_scheduler
from medreminder.scheduler import ReminderScheduler
from medreminder.utils.metrics import metrics_collector

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@router.get("/health/scheduler")
async def scheduler_health(scheduler: ReminderScheduler = Depends(get_scheduler)):
    """Scheduler state, registered jobs and counters."""
    return {
        "running": scheduler.is_running,
        "jobs": scheduler.get_jobs_info(),
        "metrics": metrics_collector.get_metrics(),
    }
