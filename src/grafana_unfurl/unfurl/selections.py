"""
Pending panel selections.

When a shared dashboard has several panels the user is asked to pick one.
The prompt is tracked here under a random token until it is answered,
removed, or expires. Entries are bounded in number and lifetime.
"""

from __future__ import annotations

import asyncio
import base64
import secrets
import time
from dataclasses import dataclass
from typing import Callable

import structlog
from cachetools import TTLCache  # type: ignore[import-untyped]

from grafana_unfurl.core.errors import SelectionNotFoundError

logger = structlog.get_logger()

TOKEN_BYTES = 32


def new_token() -> str:
    return base64.b64encode(secrets.token_bytes(TOKEN_BYTES)).decode("ascii")


@dataclass(frozen=True, slots=True)
class PendingSelection:
    token: str
    encoded_url: str
    channel: str
    message_ts: str


class SelectionStore:
    """Expiring token -> PendingSelection map with atomic take/discard."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 86400,
        maxsize: int = 1000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def add(self, selection: PendingSelection) -> None:
        async with self._lock:
            if selection.token in self._entries:
                raise ValueError(f"Selection token already pending: {selection.token}")
            self._entries[selection.token] = selection
        logger.debug("selection_added", token=selection.token, pending=len(self._entries))

    async def take(self, token: str) -> PendingSelection:
        """
        Remove and return the selection for ``token``.

        Raises:
            SelectionNotFoundError: unknown, expired or already consumed token
        """
        async with self._lock:
            selection = self._entries.pop(token, None)
        if selection is None:
            raise SelectionNotFoundError(f"Unable to find panel prompt with key {token}")
        return selection

    async def restore(self, selection: PendingSelection) -> None:
        """Put back a taken selection so the prompt can be answered again."""
        async with self._lock:
            self._entries.setdefault(selection.token, selection)

    async def discard(self, token: str) -> None:
        await self.take(token)
        logger.debug("selection_removed", token=token)
