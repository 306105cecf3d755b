"""CORS configuration for the web frontend."""
from fastapi.middleware.cors import CORSMiddleware

from medreminder.config import get_settings


def add_cors_middleware(app):
    """Allow the configured frontend (and local development) to call the API."""
    settings = get_settings()
    allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    if settings.frontend_url and settings.frontend_url not in allowed_origins:
        allowed_origins.append(settings.frontend_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
