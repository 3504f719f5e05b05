import pytest
from grafana_unfurl.core.errors import MetadataFetchError
from grafana_unfurl.grafana.url import parse_url
from grafana_unfurl.unfurl.messages import PANEL_SELECT_ACTION
from grafana_unfurl.unfurl.resolver import PanelResolver, ResolutionState

from fakes import MATCH_URL, StubGrafana, dashboard

DASHBOARD_URL = "https://g.example/d/abc/dash?orgId=1"
PANEL_URL = "https://g.example/d/abc/dash?orgId=1&panelId=7"


@pytest.mark.asyncio
async def test_url_with_panel_resolves_with_titles():
    resolver = PanelResolver(StubGrafana(dashboard(3, 7)))

    resolution = await resolver.resolve(parse_url(MATCH_URL, PANEL_URL))

    assert resolution.state is ResolutionState.RESOLVED
    assert resolution.panel.panel_id == 7
    assert resolution.panel_title == "Panel title 7"
    assert resolution.dashboard_title == "My Dash"


@pytest.mark.asyncio
async def test_url_with_panel_resolves_when_metadata_fails():
    resolver = PanelResolver(StubGrafana(MetadataFetchError("boom")))

    resolution = await resolver.resolve(parse_url(MATCH_URL, PANEL_URL))

    assert resolution.state is ResolutionState.RESOLVED
    assert resolution.panel.panel_id == 7
    assert resolution.dashboard_title is None
    assert resolution.panel_title is None


@pytest.mark.asyncio
async def test_explicit_panel_id_overrides_url():
    resolver = PanelResolver(StubGrafana(dashboard(3, 7)))

    resolution = await resolver.resolve(parse_url(MATCH_URL, PANEL_URL), panel_id=3)

    assert resolution.panel.panel_id == 3


@pytest.mark.asyncio
async def test_single_panel_dashboard_resolves():
    resolver = PanelResolver(StubGrafana(dashboard(42)))

    resolution = await resolver.resolve(parse_url(MATCH_URL, DASHBOARD_URL))

    assert resolution.state is ResolutionState.RESOLVED
    assert resolution.panel.panel_id == 42
    assert resolution.panel_title == "Panel title 42"


@pytest.mark.asyncio
async def test_empty_dashboard_is_abandoned():
    resolver = PanelResolver(StubGrafana(dashboard()))

    resolution = await resolver.resolve(parse_url(MATCH_URL, DASHBOARD_URL))

    assert resolution.state is ResolutionState.ABANDONED
    assert resolution.panel is None


@pytest.mark.asyncio
async def test_metadata_failure_without_panel_is_abandoned():
    resolver = PanelResolver(StubGrafana(MetadataFetchError("boom")))

    resolution = await resolver.resolve(parse_url(MATCH_URL, DASHBOARD_URL))

    assert resolution.state is ResolutionState.ABANDONED


@pytest.mark.asyncio
async def test_multiple_panels_prompt_with_fresh_token():
    resolver = PanelResolver(StubGrafana(dashboard(1, 2, 3)))
    reference = parse_url(MATCH_URL, DASHBOARD_URL)

    first = await resolver.resolve(reference)
    second = await resolver.resolve(reference)

    assert first.state is ResolutionState.PROMPTED
    assert first.panel is None
    assert first.prompt.token != second.prompt.token
    section = first.prompt.attachment["blocks"][0]
    assert section["block_id"] == f"{PANEL_SELECT_ACTION}:{first.prompt.token}"
    assert [o["value"] for o in section["accessory"]["options"]] == ["1", "2", "3"]
