"""
Grafana dashboard URL parsing.

Turns a link shared in chat into a DashboardReference (no panel known) or a
PanelReference, and builds the render-service URL for a panel. The order of
the render URL query parameters is part of the contract with Grafana's
image renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit

import structlog

from grafana_unfurl.core.errors import ParseError

logger = structlog.get_logger()

KNOWN_PARAMETERS = frozenset(
    {"orgId", "refresh", "from", "to", "viewPanel", "panelId", "theme", "tz"}
)
VARIABLE_PREFIX = "var-"
RENDER_THEME = "light"


@dataclass(frozen=True, slots=True)
class DashboardReference:
    hostname: str
    protocol: str
    base_path: str
    dashboard_uid: str
    dashboard_name: str
    org_id: int
    from_time: str | None
    to_time: str | None
    tz: str | None
    variables: dict[str, str]

    def with_panel(self, panel_id: int) -> PanelReference:
        values = {f.name: getattr(self, f.name) for f in fields(DashboardReference)}
        return PanelReference(**values, panel_id=panel_id)


@dataclass(frozen=True, slots=True)
class PanelReference(DashboardReference):
    panel_id: int


def _parse_int(value: str, name: str, raw_url: str) -> int:
    # viewPanel may be "panel-7" on newer Grafana releases
    text = value.removeprefix("panel-")
    if not (text.isascii() and text.isdigit()):
        raise ParseError(f"Parameter {name} must be numeric, got {value!r}", {"url": raw_url})
    return int(text)


def parse_url(match_url: str, raw_url: str) -> DashboardReference | PanelReference | None:
    """
    Parse a Grafana dashboard URL.

    Returns None when the URL does not start with ``match_url``: it belongs to
    another host and is not ours to handle.

    Raises:
        ParseError: the URL matches but is not a usable dashboard link
    """
    if not raw_url.startswith(match_url):
        logger.debug("url_not_matched", url=raw_url, match_url=match_url)
        return None

    parts = urlsplit(raw_url)
    # Drop the empty segment before the leading slash
    path_parts = parts.path.split("/")[1:]
    if "d" in path_parts:
        d_idx = path_parts.index("d")
    elif "d-solo" in path_parts:
        d_idx = path_parts.index("d-solo")
    else:
        raise ParseError(
            f"Unable to parse Grafana URL, it must contain a /d/ or /d-solo/. URL was {raw_url}"
        )

    query = parse_qsl(parts.query, keep_blank_values=True)
    unknown = [
        f"{key}={value}"
        for key, value in query
        if key not in KNOWN_PARAMETERS and not key.startswith(VARIABLE_PREFIX)
    ]
    if unknown:
        raise ParseError(f"Unknown parameters in URL: {unknown}", {"url": raw_url})

    params: dict[str, str] = {}
    variables: dict[str, str] = {}
    for key, value in query:
        if key.startswith(VARIABLE_PREFIX):
            variables[key] = value
        else:
            params.setdefault(key, value)

    base_path = ""
    if d_idx > 0:
        base_path = "/" + "/".join(path_parts[:d_idx])

    try:
        dashboard_uid = path_parts[d_idx + 1]
        dashboard_name = path_parts[d_idx + 2]
    except IndexError:
        dashboard_uid = dashboard_name = ""
    if not dashboard_uid or not dashboard_name:
        raise ParseError(f"No dashboard uid and name found in Grafana URL {raw_url}")

    org_id = params.get("orgId")
    if org_id is None:
        raise ParseError(f"No orgId found in Grafana URL {raw_url}")

    reference = DashboardReference(
        hostname=parts.hostname or "",
        protocol=parts.scheme,
        base_path=base_path,
        dashboard_uid=dashboard_uid,
        dashboard_name=dashboard_name,
        org_id=_parse_int(org_id, "orgId", raw_url),
        from_time=params.get("from") or None,
        to_time=params.get("to") or None,
        tz=params.get("tz") or None,
        variables=variables,
    )

    panel_id = params.get("viewPanel") or params.get("panelId")
    if panel_id:
        return reference.with_panel(_parse_int(panel_id, "panelId", raw_url))
    return reference


def build_render_url(
    grafana_url: str,
    panel: PanelReference,
    *,
    width: int,
    height: int,
) -> str:
    """Build the d-solo render URL for a panel under ``grafana_url``."""
    base = urljoin(grafana_url, f"render/d-solo/{panel.dashboard_uid}/{panel.dashboard_name}")
    query: list[tuple[str, str]] = [
        ("orgId", str(panel.org_id)),
        ("panelId", str(panel.panel_id)),
        ("theme", RENDER_THEME),
    ]
    if panel.from_time:
        query.append(("from", panel.from_time))
    if panel.to_time:
        query.append(("to", panel.to_time))
    query.append(("width", str(width)))
    query.append(("height", str(height)))
    if panel.tz:
        query.append(("tz", panel.tz))
    query.extend(panel.variables.items())
    return f"{base}?{urlencode(query)}"
