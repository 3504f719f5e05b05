from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from grafana_unfurl.core.errors import ParseError, UnfurlError
from grafana_unfurl.grafana.render import PanelRenderer
from grafana_unfurl.grafana.url import DashboardReference, PanelReference, parse_url
from grafana_unfurl.metrics import IMAGES_CACHED, UNFURLS
from grafana_unfurl.storage.s3 import PNG_CONTENT_TYPE, ImageCache
from grafana_unfurl.unfurl.messages import create_panel_attachment
from grafana_unfurl.unfurl.resolver import PanelPrompt, PanelResolver, ResolutionState

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class UnfurlResult:
    attachment: dict[str, Any] | None = None
    prompt: PanelPrompt | None = None


def _outcome(result: UnfurlResult) -> str:
    if result.attachment is not None:
        return "unfurled"
    if result.prompt is not None:
        return "prompted"
    return "skipped"


class UnfurlService:
    """Drives a shared URL through resolution, rendering and caching."""

    def __init__(
        self,
        match_url: str,
        *,
        resolver: PanelResolver,
        renderer: PanelRenderer,
        cache: ImageCache,
    ) -> None:
        self._match_url = match_url
        self._resolver = resolver
        self._renderer = renderer
        self._cache = cache

    def parse(self, raw_url: str) -> DashboardReference | PanelReference | None:
        return parse_url(self._match_url, raw_url)

    async def create_image(self, panel: PanelReference) -> str:
        """Render ``panel``, store the image and return a signed URL for it."""
        image = await self._renderer.render(panel)
        key = await self._cache.put(image, PNG_CONTENT_TYPE)
        url = await self._cache.signed_url(key)
        IMAGES_CACHED.inc()
        logger.info(
            "panel_cached",
            uid=panel.dashboard_uid,
            panel_id=panel.panel_id,
            key=key,
        )
        return url

    async def build_unfurl(self, raw_url: str, panel_id: int | None = None) -> UnfurlResult:
        """
        Unfurl a URL, letting errors propagate.

        Raises:
            ParseError, RenderError, StorageError
        """
        reference = self.parse(raw_url)
        if reference is None:
            return UnfurlResult()

        resolution = await self._resolver.resolve(reference, panel_id)
        if resolution.state is ResolutionState.PROMPTED:
            return UnfurlResult(prompt=resolution.prompt)
        if resolution.state is ResolutionState.ABANDONED or resolution.panel is None:
            return UnfurlResult()

        image_url = await self.create_image(resolution.panel)
        return UnfurlResult(
            attachment=create_panel_attachment(
                image_url, resolution.dashboard_title, resolution.panel_title
            )
        )

    async def unfurl(self, raw_url: str, panel_id: int | None = None) -> UnfurlResult:
        """Unfurl a URL; failures are logged and produce an empty result."""
        try:
            result = await self.build_unfurl(raw_url, panel_id)
        except UnfurlError as exc:
            logger.error(
                "unfurl_failed",
                url=raw_url,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            UNFURLS.labels(outcome="failed").inc()
            return UnfurlResult()
        UNFURLS.labels(outcome=_outcome(result)).inc()
        return result

    async def cache_panel(self, raw_url: str) -> str:
        """
        Cache the panel a URL points at and return its signed URL.

        Raises:
            ParseError: the URL does not match or does not name a panel
            RenderError, StorageError
        """
        reference = self.parse(raw_url)
        if reference is None:
            raise ParseError("Unable to parse URL or it does not match the configured matcher")
        if not isinstance(reference, PanelReference):
            raise ParseError("The URL does not link to a specific panel ID")
        return await self.create_image(reference)
