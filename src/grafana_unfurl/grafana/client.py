from __future__ import annotations

from typing import Any

import pydantic
import structlog
from circuitbreaker import CircuitBreakerError
from pydantic import BaseModel

from grafana_unfurl.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from grafana_unfurl.core.errors import MetadataFetchError
from grafana_unfurl.grafana.url import DashboardReference

logger = structlog.get_logger()

ROW_PANEL_TYPE = "row"


class GrafanaPanel(BaseModel):
    id: int
    title: str = ""
    type: str | None = None
    panels: list["GrafanaPanel"] = []


class GrafanaDashboard(BaseModel):
    id: int | None = None
    uid: str | None = None
    title: str
    panels: list[GrafanaPanel] = []

    def renderable_panels(self) -> list[GrafanaPanel]:
        """Panels that can be rendered, with collapsed row contents flattened."""
        result: list[GrafanaPanel] = []
        for panel in self.panels:
            if panel.type == ROW_PANEL_TYPE:
                result.extend(p for p in panel.panels if p.type != ROW_PANEL_TYPE)
            else:
                result.append(panel)
        return result

    def find_panel(self, panel_id: int) -> GrafanaPanel | None:
        return next((p for p in self.renderable_panels() if p.id == panel_id), None)


class GrafanaDashboardResponse(BaseModel):
    dashboard: GrafanaDashboard


class GrafanaClient(BaseHTTPClient):
    """Grafana HTTP API client for dashboard metadata."""

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(url, timeout=timeout)
        self._extra_headers = dict(headers or {})

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"} | self._extra_headers

    async def get_dashboard(self, reference: DashboardReference) -> GrafanaDashboard:
        """
        Fetch dashboard metadata by UID.

        Raises:
            MetadataFetchError: the request failed or the response was not a dashboard
        """
        path = f"/api/dashboards/uid/{reference.dashboard_uid}"
        try:
            data: dict[str, Any] = await self.get(path)
        except (PermanentHTTPError, RetryableHTTPError, CircuitBreakerError) as exc:
            raise MetadataFetchError(
                f"Unable to fetch Grafana dashboard {reference.dashboard_uid}: {exc}",
                {"uid": reference.dashboard_uid},
            ) from exc

        try:
            response = GrafanaDashboardResponse.model_validate(data)
        except pydantic.ValidationError as exc:
            raise MetadataFetchError(
                f"Unable to validate Grafana API response for {path}",
                {"errors": exc.error_count()},
            ) from exc

        logger.debug(
            "dashboard_fetched",
            uid=reference.dashboard_uid,
            title=response.dashboard.title,
            panels=len(response.dashboard.panels),
        )
        return response.dashboard
