import pytest
import respx
from httpx import Response
from grafana_unfurl.core.errors import MetadataFetchError
from grafana_unfurl.grafana.client import GrafanaClient
from grafana_unfurl.grafana.url import parse_url

from fakes import GRAFANA_URL, MATCH_URL

API_URL = "http://grafana.internal:3000/api/dashboards/uid/abc"


def _reference():
    return parse_url(MATCH_URL, "https://g.example/d/abc/dash?orgId=1")


@pytest.mark.asyncio
async def test_get_dashboard_sends_configured_headers():
    client = GrafanaClient(GRAFANA_URL, headers={"Authorization": "Bearer glsa"})

    with respx.mock:
        route = respx.get(API_URL).mock(
            return_value=Response(
                200,
                json={
                    "meta": {"slug": "dash"},
                    "dashboard": {
                        "id": 4,
                        "uid": "abc",
                        "title": "Service Overview",
                        "panels": [{"id": 1, "title": "Latency"}, {"id": 2, "title": "Errors"}],
                    },
                },
            )
        )

        dashboard = await client.get_dashboard(_reference())

    assert dashboard.title == "Service Overview"
    assert [p.id for p in dashboard.renderable_panels()] == [1, 2]
    assert route.calls.last.request.headers["Authorization"] == "Bearer glsa"


@pytest.mark.asyncio
async def test_collapsed_rows_are_flattened():
    client = GrafanaClient(GRAFANA_URL)

    with respx.mock:
        respx.get(API_URL).mock(
            return_value=Response(
                200,
                json={
                    "dashboard": {
                        "title": "Rows",
                        "panels": [
                            {"id": 1, "title": "Top", "type": "timeseries"},
                            {"id": 10, "title": "Open row", "type": "row", "panels": []},
                            {
                                "id": 20,
                                "title": "Collapsed row",
                                "type": "row",
                                "panels": [{"id": 21, "title": "Hidden", "type": "stat"}],
                            },
                        ],
                    }
                },
            )
        )

        dashboard = await client.get_dashboard(_reference())

    assert [p.id for p in dashboard.renderable_panels()] == [1, 21]
    assert dashboard.find_panel(21).title == "Hidden"
    assert dashboard.find_panel(20) is None


@pytest.mark.asyncio
async def test_not_found_raises_metadata_error_without_retry():
    client = GrafanaClient(GRAFANA_URL)

    with respx.mock:
        route = respx.get(API_URL).mock(return_value=Response(404, json={"message": "not found"}))

        with pytest.raises(MetadataFetchError):
            await client.get_dashboard(_reference())

    assert route.call_count == 1


@pytest.mark.asyncio
async def test_invalid_response_raises_metadata_error():
    client = GrafanaClient(GRAFANA_URL)

    with respx.mock:
        respx.get(API_URL).mock(return_value=Response(200, json={"unexpected": True}))

        with pytest.raises(MetadataFetchError, match="Unable to validate"):
            await client.get_dashboard(_reference())
