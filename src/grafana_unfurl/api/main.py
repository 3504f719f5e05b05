from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from grafana_unfurl import __version__
from grafana_unfurl.api.routes import cache, health, metrics, slack
from grafana_unfurl.clients.slack import SlackClient
from grafana_unfurl.config import Settings, get_settings
from grafana_unfurl.core.errors import UnfurlError, format_error_message
from grafana_unfurl.grafana.client import GrafanaClient
from grafana_unfurl.grafana.render import PanelRenderer
from grafana_unfurl.storage.s3 import ImageCache
from grafana_unfurl.storage.sweeper import RetentionSweeper
from grafana_unfurl.unfurl.handlers import SlackHandlers
from grafana_unfurl.unfurl.resolver import PanelResolver
from grafana_unfurl.unfurl.selections import SelectionStore
from grafana_unfurl.unfurl.service import UnfurlService

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    sweeper: RetentionSweeper = app.state.sweeper
    sweeper.start()
    logger.info("startup_complete")
    yield
    await sweeper.stop()


async def unfurl_error_handler(request: Request, exc: UnfurlError) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": format_error_message(exc)})


def build_components(app: FastAPI, settings: Settings) -> None:
    """Wire the unfurl pipeline and attach it to ``app.state``."""
    cache_store = ImageCache(
        settings.s3_bucket,
        root=settings.s3_root,
        retention_seconds=settings.grafana_retention,
        endpoint_url=settings.s3_endpoint,
        region=settings.s3_region,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        signing_access_key_id=settings.s3_url_signing_access_key_id,
        signing_secret_access_key=settings.s3_url_signing_secret_access_key,
        timeout=settings.storage_timeout,
    )
    grafana = GrafanaClient(
        settings.grafana_url,
        headers=settings.grafana_headers,
        timeout=settings.http_timeout,
    )
    renderer = PanelRenderer(
        settings.grafana_url,
        width=settings.grafana_render_width,
        height=settings.grafana_render_height,
        headers=settings.grafana_headers,
        timeout=settings.grafana_render_timeout,
    )
    service = UnfurlService(
        settings.grafana_match_url,
        resolver=PanelResolver(grafana),
        renderer=renderer,
        cache=cache_store,
    )
    selections = SelectionStore(
        ttl_seconds=settings.selection_ttl,
        maxsize=settings.selection_max_pending,
    )
    slack_client = SlackClient(
        settings.slack_bot_token,
        base_url=settings.slack_base_url,
        timeout=settings.http_timeout,
    )

    app.state.settings = settings
    app.state.unfurl_service = service
    app.state.selections = selections
    app.state.slack_handlers = SlackHandlers(service, slack_client, selections)
    app.state.sweeper = RetentionSweeper(
        cache_store, interval_seconds=settings.grafana_cleanup_interval
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    prefix = settings.url_path.rstrip("/")

    app = FastAPI(
        title="Grafana Unfurl",
        version=__version__,
        docs_url=f"{prefix}/docs",
        openapi_url=f"{prefix}/openapi.json",
        lifespan=lifespan,
    )
    build_components(app, settings)
    app.add_exception_handler(UnfurlError, unfurl_error_handler)  # type: ignore[arg-type]

    app.include_router(cache.router, prefix=f"{prefix}/api", tags=["cache"])
    app.include_router(slack.router, prefix=f"{prefix}/api/slack", tags=["slack"])
    app.include_router(health.router, prefix=prefix, tags=["health"])
    app.include_router(metrics.router, prefix=prefix, tags=["metrics"])
    return app
