"""Main FastAPI application for the medication reminder service."""
from fastapi import FastAPI

from medreminder import __version__
from medreminder.db.init import init_db
from medreminder.middleware.cors import add_cors_middleware
from medreminder.routers import health_router, line_webhook_router, medications_router, settings_router
from medreminder.scheduler import get_reminder_scheduler, shutdown_scheduler
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Medication Reminder API",
    description="Medication tracking with LINE reminders and low-supply alerts",
    version=__version__,
)

add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Create tables and arm the reminder scheduler.

    A messaging provider that cannot be initialized aborts startup.
    """
    init_db()
    logger.info("Database tables initialized")

    armed = await get_reminder_scheduler().start()
    logger.info("Application startup complete", scheduler_armed=armed)


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_scheduler()


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "title": "Medication Reminder API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(health_router)
app.include_router(settings_router, prefix="/api")  # /api/{user_id}/settings
app.include_router(medications_router, prefix="/api")  # /api/{user_id}/medications
app.include_router(line_webhook_router)  # /line/webhook


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "medreminder.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
