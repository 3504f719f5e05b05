from __future__ import annotations

import httpx
import structlog

from grafana_unfurl.core.errors import ErrorKind, RenderError
from grafana_unfurl.grafana.url import PanelReference, build_render_url
from grafana_unfurl.metrics import RENDER_FAILURES

logger = structlog.get_logger()

# Upstream error bodies can be large HTML pages, only a prefix reaches callers
MAX_ERROR_CHARS = 30


def _truncate(message: str) -> str:
    return f"{message[:MAX_ERROR_CHARS]}..."


class PanelRenderer:
    """Fetches rendered panel images from Grafana's render API."""

    def __init__(
        self,
        grafana_url: str,
        *,
        width: int,
        height: int,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._grafana_url = grafana_url
        self._width = width
        self._height = height
        self._headers = dict(headers or {})
        self._timeout = timeout

    def render_url(self, panel: PanelReference) -> str:
        return build_render_url(self._grafana_url, panel, width=self._width, height=self._height)

    async def render(self, panel: PanelReference) -> bytes:
        """
        Render a panel to PNG bytes.

        Redirects are not followed: Grafana answers with one when the
        configured credentials are rejected.

        Raises:
            RenderError: transport failure, timeout or non-2xx response
        """
        url = self.render_url(panel)
        logger.debug("render_requested", url=url)
        try:
            image = await self._fetch(url)
        except RenderError as exc:
            RENDER_FAILURES.labels(kind=exc.kind.value).inc()
            raise
        logger.debug("render_completed", url=url, size=len(image))
        return image

    async def _fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=False) as client:
                response = await client.get(url, headers=self._headers)
        except httpx.TimeoutException as exc:
            raise RenderError(
                f"Grafana timed out when rendering {url}: {_truncate(str(exc) or 'timeout')}",
                kind=ErrorKind.TIMEOUT,
            ) from exc
        except httpx.HTTPError as exc:
            raise RenderError(
                f"Grafana returned an error when rendering {url}: {_truncate(str(exc))}"
            ) from exc

        if not response.is_success:
            raise RenderError(
                f"Grafana returned an error when rendering {url}: "
                f"{_truncate(f'{response.status_code} {response.text}')}",
                {"status": response.status_code},
            )
        return response.content
