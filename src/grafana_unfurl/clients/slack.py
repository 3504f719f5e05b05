from __future__ import annotations

from typing import Any

import structlog
from circuitbreaker import CircuitBreakerError

from grafana_unfurl.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from grafana_unfurl.core.errors import SlackAPIError

logger = structlog.get_logger()


class SlackClient(BaseHTTPClient):
    """Slack Web API client with retry logic and circuit breaker."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://slack.com/api",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, timeout=timeout)
        self._token = token

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json; charset=utf-8",
            "Authorization": f"Bearer {self._token}",
        }

    async def _post(self, path: str, payload: dict[str, Any], what: str) -> dict[str, Any]:
        try:
            return await self.post(path, json=payload)
        except (PermanentHTTPError, RetryableHTTPError, CircuitBreakerError) as exc:
            raise SlackAPIError(f"Slack request {what} failed: {exc}") from exc

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._post(f"/{method}", payload, method)
        if not data.get("ok", False):
            raise SlackAPIError(
                f"Slack API call {method} failed",
                {"error": data.get("error", "unknown")},
            )
        return data

    async def post_ephemeral(
        self,
        channel: str,
        user: str,
        *,
        text: str = " ",
        attachments: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"channel": channel, "user": user, "text": text}
        if attachments:
            payload["attachments"] = attachments
        return await self._call("chat.postEphemeral", payload)

    async def unfurl(
        self,
        channel: str,
        ts: str,
        unfurls: dict[str, dict[str, Any]],
    ) -> dict[str, Any]:
        logger.debug("slack_unfurl", channel=channel, ts=ts, links=list(unfurls))
        return await self._call("chat.unfurl", {"channel": channel, "ts": ts, "unfurls": unfurls})

    async def respond(self, response_url: str, message: dict[str, Any]) -> None:
        """Post to an interaction response_url (replace, delete or follow up)."""
        await self._post(response_url, message, "response_url")
