from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Mapping, Protocol, Sequence

import structlog

from grafana_unfurl.core.errors import StorageError
from grafana_unfurl.metrics import CLEANUP_DELETED, CLEANUP_FAILURES
from grafana_unfurl.storage.s3 import StoredObject, utcnow

logger = structlog.get_logger()


class SweepableStore(Protocol):
    root: str
    retention_seconds: int

    async def list_objects(self, prefix: str | None = None) -> Sequence[StoredObject]: ...

    async def delete_many(self, keys: Sequence[str]) -> Mapping[str, str]: ...


class RetentionSweeper:
    """
    Periodically deletes cached images older than the retention window.

    Only one sweep runs at a time: a tick that fires while a sweep is still
    in progress is skipped with a warning. A failing sweep is logged and
    the timer keeps running.
    """

    def __init__(
        self,
        store: SweepableStore,
        *,
        interval_seconds: float,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._sweeps: set[asyncio.Task[int | None]] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def start(self) -> None:
        if self.running:
            return
        logger.info("cleanup_scheduled", interval_seconds=self._interval)
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        for sweep in self._sweeps:
            sweep.cancel()
        await asyncio.gather(self._task, *self._sweeps, return_exceptions=True)
        self._task = None
        logger.info("cleanup_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            # ticks may overlap; run_once skips while a sweep holds the lock
            sweep = asyncio.create_task(self.run_once())
            self._sweeps.add(sweep)
            sweep.add_done_callback(self._sweeps.discard)

    async def run_once(self) -> int | None:
        """Run one sweep unless one is in progress. Returns the deleted count."""
        if self._lock.locked():
            logger.warning("cleanup_already_in_progress")
            return None
        async with self._lock:
            try:
                return await self.sweep()
            except Exception as exc:
                logger.error("cleanup_failed", error=str(exc), exc_info=True)
                return None

    async def sweep(self) -> int:
        """
        Delete every object whose LastModified precedes now - retention.

        All deletions are attempted; failures are reported together once
        every deletion has settled.

        Raises:
            StorageError: listing failed or at least one deletion failed
        """
        cutoff = self._clock() - timedelta(seconds=self._store.retention_seconds)
        objects = await self._store.list_objects()

        expired: list[str] = []
        for obj in objects:
            if obj.key is None:
                logger.warning("cleanup_object_without_key", object=repr(obj))
                continue
            if obj.key == self._store.root:
                continue
            if obj.last_modified is not None and obj.last_modified < cutoff:
                expired.append(obj.key)

        failed = await self._store.delete_many(expired) if expired else {}
        deleted = len(expired) - len(failed)
        CLEANUP_DELETED.inc(deleted)
        CLEANUP_FAILURES.inc(len(failed))
        logger.info("cleanup_completed", deleted=deleted, failed=len(failed))

        if failed:
            raise StorageError(
                f"Cleanup: {len(failed)} of {len(expired)} deletions failed",
                {"keys": sorted(failed)},
            )
        return deleted
