"""
Panel resolution for shared dashboard links.

A link either names a panel, or points at a whole dashboard. In the second
case the dashboard metadata decides: a single panel is rendered directly,
several panels lead to a selection prompt, and no panels (or no metadata)
means the link is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from grafana_unfurl.core.errors import MetadataFetchError
from grafana_unfurl.grafana.client import GrafanaClient, GrafanaDashboard
from grafana_unfurl.grafana.url import DashboardReference, PanelReference
from grafana_unfurl.unfurl.messages import create_panel_selector
from grafana_unfurl.unfurl.selections import new_token

logger = structlog.get_logger()


class ResolutionState(str, Enum):
    RESOLVED = "resolved"
    PROMPTED = "prompted"
    ABANDONED = "abandoned"


@dataclass(frozen=True, slots=True)
class PanelPrompt:
    token: str
    attachment: dict[str, Any]


@dataclass(frozen=True, slots=True)
class Resolution:
    state: ResolutionState
    panel: PanelReference | None = None
    dashboard: GrafanaDashboard | None = None
    panel_title: str | None = None
    prompt: PanelPrompt | None = None

    @property
    def dashboard_title(self) -> str | None:
        return self.dashboard.title if self.dashboard else None


class PanelResolver:
    def __init__(self, grafana: GrafanaClient) -> None:
        self._grafana = grafana

    async def fetch_dashboard(self, reference: DashboardReference) -> GrafanaDashboard | None:
        """Fetch dashboard metadata; failures are logged and yield None."""
        try:
            return await self._grafana.get_dashboard(reference)
        except MetadataFetchError as exc:
            logger.error(
                "dashboard_fetch_failed",
                uid=reference.dashboard_uid,
                error=exc.message,
            )
            return None

    async def resolve(
        self,
        reference: DashboardReference,
        panel_id: int | None = None,
    ) -> Resolution:
        dashboard = await self.fetch_dashboard(reference)

        if panel_id is None and isinstance(reference, PanelReference):
            panel_id = reference.panel_id

        if panel_id is not None:
            panel = dashboard.find_panel(panel_id) if dashboard else None
            return Resolution(
                ResolutionState.RESOLVED,
                panel=reference.with_panel(panel_id),
                dashboard=dashboard,
                panel_title=panel.title if panel else None,
            )

        if dashboard is None:
            logger.warning(
                "link_abandoned",
                reason="no panel id and dashboard metadata unavailable",
                uid=reference.dashboard_uid,
            )
            return Resolution(ResolutionState.ABANDONED)

        panels = dashboard.renderable_panels()
        if not panels:
            logger.debug("link_abandoned", reason="dashboard has no panels", title=dashboard.title)
            return Resolution(ResolutionState.ABANDONED, dashboard=dashboard)

        if len(panels) == 1:
            (panel,) = panels
            return Resolution(
                ResolutionState.RESOLVED,
                panel=reference.with_panel(panel.id),
                dashboard=dashboard,
                panel_title=panel.title,
            )

        token = new_token()
        logger.debug("panel_selection_required", uid=reference.dashboard_uid, panels=len(panels))
        return Resolution(
            ResolutionState.PROMPTED,
            dashboard=dashboard,
            prompt=PanelPrompt(token, create_panel_selector(dashboard, token)),
        )
