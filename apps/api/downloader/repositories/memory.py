"""In-memory job record store used for local development and tests."""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from downloader.repositories.base import JobEnvelope, JobStore, StoreUnavailable, apply_job_patch


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class _StoredJob:
    envelope: JobEnvelope
    expires_at: float


@dataclass(slots=True)
class InMemoryJobStore(JobStore):
    """Simple, deterministic persistence layer honouring the same TTL contract as Redis."""

    ttl_seconds: float = 259200
    clock: Callable[[], float] = time.monotonic
    wall_clock_ms: Callable[[], int] = _now_ms
    jobs: dict[str, _StoredJob] = field(default_factory=dict)
    job_write_count: int = 0
    unavailable: bool = False

    def _check_available(self) -> None:
        if self.unavailable:
            raise StoreUnavailable("In-memory job store marked unavailable")

    def _live(self, job_id: str) -> _StoredJob | None:
        stored = self.jobs.get(job_id)
        if stored is None:
            return None
        if stored.expires_at <= self.clock():
            del self.jobs[job_id]
            return None
        return stored

    async def get(self, job_id: str) -> JobEnvelope | None:
        self._check_available()
        stored = self._live(job_id)
        return copy.deepcopy(stored.envelope) if stored is not None else None

    async def set(self, job_id: str, envelope: JobEnvelope) -> JobEnvelope:
        self._check_available()
        self.jobs[job_id] = _StoredJob(
            envelope=copy.deepcopy(envelope),
            expires_at=self.clock() + self.ttl_seconds,
        )
        self.job_write_count += 1
        return envelope

    async def merge(self, job_id: str, patch: JobEnvelope) -> JobEnvelope | None:
        current = await self.get(job_id)
        if current is None:
            return None
        merged = apply_job_patch(current, patch, now_ms=self.wall_clock_ms())
        return await self.set(job_id, merged)

    async def ping(self) -> None:
        self._check_available()
