from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from grafana_unfurl.api.deps import get_unfurl_service
from grafana_unfurl.unfurl.service import UnfurlService

router = APIRouter()
logger = structlog.get_logger()


class CacheRequest(BaseModel):
    url: str


class CacheResponse(BaseModel):
    url: str


@router.post("/cache", response_model=CacheResponse, status_code=status.HTTP_200_OK)
async def cache_panel(
    body: CacheRequest,
    service: UnfurlService = Depends(get_unfurl_service),  # noqa: B008
) -> CacheResponse:
    """Render and cache the panel a Grafana URL points at."""
    cache_url = await service.cache_panel(body.url)
    logger.info("cache_request_completed", url=body.url)
    return CacheResponse(url=cache_url)
