"""Job record store interface and merge-patch semantics."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

JobEnvelope = dict[str, Any]

_NESTED_MERGE_KEYS = ("progress", "result")
_IMMUTABLE_KEYS = ("jobId", "createdAt")


class StoreUnavailable(Exception):
    """Raised when the job record store backend cannot be reached."""


def job_key(job_id: str) -> str:
    return f"job:{job_id}"


def apply_job_patch(current: JobEnvelope, patch: JobEnvelope, *, now_ms: int) -> JobEnvelope:
    """Merge ``patch`` into ``current`` without discarding sibling fields.

    Top-level keys are overwritten, ``progress`` and ``result`` are merged field
    by field and ``error`` is replaced as a whole, so an explicit ``None`` clears
    it. ``jobId`` and ``createdAt`` never change and ``updatedAt`` never moves
    backwards.
    """
    merged = {**current, **patch}

    for key in _NESTED_MERGE_KEYS:
        if key not in patch:
            continue
        if patch[key] is None:
            merged[key] = current.get(key)
        else:
            merged[key] = {**(current.get(key) or {}), **patch[key]}

    for key in _IMMUTABLE_KEYS:
        if key in current:
            merged[key] = current[key]

    merged["updatedAt"] = max(now_ms, int(current.get("updatedAt") or 0))
    return merged


class JobStore(ABC):
    """TTL-bounded key/value persistence for job envelopes.

    Every write refreshes the configured TTL. Reads of expired or unknown keys
    return ``None``; backend failures raise :class:`StoreUnavailable`.
    """

    @abstractmethod
    async def get(self, job_id: str) -> JobEnvelope | None:
        """Return the stored envelope or ``None``."""

    @abstractmethod
    async def set(self, job_id: str, envelope: JobEnvelope) -> JobEnvelope:
        """Overwrite the envelope and refresh its TTL."""

    @abstractmethod
    async def merge(self, job_id: str, patch: JobEnvelope) -> JobEnvelope | None:
        """Read-modify-write ``patch`` into the envelope; ``None`` when the key is gone."""

    @abstractmethod
    async def ping(self) -> None:
        """Probe backend connectivity."""

    async def close(self) -> None:
        return None


__all__ = ["JobEnvelope", "JobStore", "StoreUnavailable", "apply_job_patch", "job_key"]
