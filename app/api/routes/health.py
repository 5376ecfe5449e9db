# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.config import get_settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(
        ...,
        description="Overall health status of the calendar service.",
        examples=["ok"],
    )
    app_name: str = Field(
        ...,
        description="Human-friendly name of the running application.",
        examples=["Calendar Service"],
    )
    environment: str = Field(
        ...,
        description="Current deployment environment (local/test/prod).",
        examples=["local"],
    )
    default_timezone: str = Field(
        ...,
        description="Timezone used for week views and naive datetimes when a request names none.",
        examples=["UTC"],
    )
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) at which this health check was generated.",
        examples=["2024-01-01T10:30:00Z"],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the calendar service",
    description=(
        "Lightweight endpoint to verify that the calendar backend is up and responding.\n\n"
        "It does not touch the database, so it stays green while storage is degraded."
    ),
    responses={
        200: {
            "description": "Service is healthy and responding as expected.",
            "content": {
                "application/json": {
                    "example": {
                        "status": "ok",
                        "app_name": "Calendar Service",
                        "environment": "local",
                        "default_timezone": "UTC",
                        "timestamp_utc": "2024-01-01T10:30:00Z",
                    }
                }
            },
        }
    },
)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        default_timezone=settings.DEFAULT_TIMEZONE,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
