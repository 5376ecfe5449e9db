# app/main.py
from fastapi import FastAPI

from app.api.routes import events, health, users
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import init_db_for_startup


def create_app() -> FastAPI:
    """
    Application factory for the calendar service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Calendar backend that stores one-time, daily and weekly events,\n"
            "expands them into concrete occurrences for any window (e.g. a week view),\n"
            "applies per-occurrence exceptions and rejects conflicting bookings."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(events.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        await init_db_for_startup()

    return app


app = create_app()
