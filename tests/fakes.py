"""Stand-ins for the Grafana, storage and Slack collaborators."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from grafana_unfurl.grafana.client import GrafanaDashboard
from grafana_unfurl.storage.s3 import StoredObject

MATCH_URL = "https://g.example/"
GRAFANA_URL = "http://grafana.internal:3000/"


def dashboard(*panel_ids: int, title: str = "My Dash") -> GrafanaDashboard:
    return GrafanaDashboard.model_validate(
        {
            "id": 1,
            "title": title,
            "panels": [{"id": pid, "title": f"Panel title {pid}"} for pid in panel_ids],
        }
    )


class StubGrafana:
    def __init__(self, result: GrafanaDashboard | Exception) -> None:
        self.result = result
        self.calls: list[str] = []

    async def get_dashboard(self, reference: Any) -> GrafanaDashboard:
        self.calls.append(reference.dashboard_uid)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class StubRenderer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.rendered: list[Any] = []

    async def render(self, panel: Any) -> bytes:
        self.rendered.append(panel)
        if self.error is not None:
            raise self.error
        return b"\x89PNG"


class StubCache:
    def __init__(self, root: str = "cache/") -> None:
        self.root = root
        self.retention_seconds = 3600
        self.objects: dict[str, bytes] = {}

    async def put(self, body: bytes, content_type: str = "image/png") -> str:
        key = f"{self.root}{len(self.objects):017d}.png"
        self.objects[key] = body
        return key

    async def signed_url(self, key: str) -> str:
        return f"https://s3.example/unfurl-bucket/{key}?X-Amz-Signature=abc"


class StubSlack:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    async def post_ephemeral(self, channel: str, user: str, *, text: str = " ", attachments=None):
        self._record("post_ephemeral", channel=channel, user=user, attachments=attachments)
        return {"ok": True}

    async def unfurl(self, channel: str, ts: str, unfurls: dict[str, Any]):
        self._record("unfurl", channel=channel, ts=ts, unfurls=unfurls)
        return {"ok": True}

    async def respond(self, response_url: str, message: dict[str, Any]) -> None:
        self._record("respond", response_url=response_url, message=message)

    def named(self, name: str) -> list[dict[str, Any]]:
        return [kwargs for call, kwargs in self.calls if call == name]


class InMemoryStore:
    """Sweepable store backed by a list of StoredObject."""

    def __init__(self, objects: list[StoredObject], root: str = "cache/", retention: int = 3600):
        self.root = root
        self.retention_seconds = retention
        self.objects = list(objects)
        self.deleted: list[str] = []
        self.failing: set[str] = set()
        self.delete_calls = 0

    async def list_objects(self, prefix: str | None = None) -> list[StoredObject]:
        return list(self.objects)

    async def delete_many(self, keys: list[str]) -> dict[str, str]:
        self.delete_calls += 1
        failed = {key: "AccessDenied" for key in keys if key in self.failing}
        self.deleted.extend(key for key in keys if key not in failed)
        self.objects = [o for o in self.objects if o.key not in self.deleted]
        return failed


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
