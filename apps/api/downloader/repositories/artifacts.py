"""Ephemeral artifact cache for locally produced download files."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from downloader.core.logging_safety import safe_log_identifier

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ArtifactEntry:
    """Metadata for one locally produced file awaiting pickup."""

    id: str
    file_path: Path
    filename: str
    mime: str
    created_at: float


class ArtifactCache:
    """Lock-guarded table of artifact entries with age-based eviction.

    Entries are only inserted once their file exists on disk. Eviction removes
    the file before the entry.
    """

    def __init__(self, *, retention_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self._retention_seconds = retention_seconds
        self._clock = clock
        self._entries: dict[str, ArtifactEntry] = {}
        self._lock = threading.Lock()
        self._sweep_lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def now(self) -> float:
        return self._clock()

    def put(self, entry: ArtifactEntry) -> None:
        with self._lock:
            self._entries[entry.id] = entry

    def get(self, artifact_id: str) -> ArtifactEntry | None:
        with self._lock:
            return self._entries.get(artifact_id)

    def sweep(self, now: float | None = None) -> list[str]:
        """Evict every entry at least ``retention_seconds`` old and return the evicted ids."""
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("artifacts.sweep_skipped reason=sweep_in_progress")
            return []

        try:
            current = self._clock() if now is None else now
            with self._lock:
                expired = [
                    entry
                    for entry in self._entries.values()
                    if current - entry.created_at >= self._retention_seconds
                ]

            evicted: list[str] = []
            for entry in expired:
                if not self._delete_file(entry):
                    continue
                with self._lock:
                    self._entries.pop(entry.id, None)
                evicted.append(entry.id)

            if evicted:
                logger.info("artifacts.swept evicted=%d remaining=%d", len(evicted), len(self))
            return evicted
        finally:
            self._sweep_lock.release()

    @staticmethod
    def _delete_file(entry: ArtifactEntry) -> bool:
        try:
            entry.file_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            # Keep the entry so the next tick retries the delete.
            logger.warning(
                "artifacts.delete_failed artifact_id=%s reason=%s",
                safe_log_identifier(entry.id, prefix="aid"),
                type(exc).__name__,
            )
            return False
        return True


async def run_sweeper(cache: ArtifactCache, *, interval_seconds: float) -> None:
    """Sweep ``cache`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(cache.sweep)
        except Exception:
            logger.exception("artifacts.sweep_failed")
