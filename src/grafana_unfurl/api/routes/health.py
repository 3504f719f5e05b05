from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from grafana_unfurl import __version__
from grafana_unfurl.api.deps import get_sweeper
from grafana_unfurl.storage.sweeper import RetentionSweeper

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = __version__


class ReadinessResponse(BaseModel):
    status: str
    cleanup: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    sweeper: RetentionSweeper = Depends(get_sweeper),  # noqa: B008
) -> ReadinessResponse:
    """Ready once the retention sweeper is scheduled."""
    if not sweeper.running:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", cleanup="stopped")
    return ReadinessResponse(status="ready", cleanup="running")
