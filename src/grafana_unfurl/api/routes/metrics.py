from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    """Prometheus exposition of the default registry."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
