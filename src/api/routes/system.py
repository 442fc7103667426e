"""Liveness endpoint for load balancers."""

from datetime import UTC, datetime

from fastapi import APIRouter

from src import __version__
from src.api.schemas import HealthResponse, HealthStatus

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check (Liveness)",
    description="Returns 200 if the service is running. Does not probe the engine.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(UTC),
        version=__version__,
    )
