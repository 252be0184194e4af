"""Redis-backed job record store."""

from __future__ import annotations

import json
import logging
import time

from redis.asyncio import Redis
from redis.exceptions import RedisError

from downloader.core.logging_safety import safe_log_identifier
from downloader.repositories.base import JobEnvelope, JobStore, StoreUnavailable, apply_job_patch, job_key

logger = logging.getLogger(__name__)


class RedisJobStore(JobStore):
    """Stores job envelopes as JSON strings under ``job:<id>`` with a TTL on every write.

    Only one background progression writes a given job, so ``merge`` is a plain
    read-modify-write without optimistic locking.
    """

    def __init__(self, client: Redis, *, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, *, ttl_seconds: int) -> "RedisJobStore":
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)

    async def get(self, job_id: str) -> JobEnvelope | None:
        try:
            raw = await self._client.get(job_key(job_id))
        except RedisError as exc:
            logger.warning(
                "job_store.get_failed job_id=%s reason=%s",
                safe_log_identifier(job_id, prefix="jid"),
                type(exc).__name__,
            )
            raise StoreUnavailable(str(exc) or "Redis get failed") from exc

        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, job_id: str, envelope: JobEnvelope) -> JobEnvelope:
        try:
            await self._client.set(job_key(job_id), json.dumps(envelope), ex=self._ttl_seconds)
        except RedisError as exc:
            logger.warning(
                "job_store.set_failed job_id=%s reason=%s",
                safe_log_identifier(job_id, prefix="jid"),
                type(exc).__name__,
            )
            raise StoreUnavailable(str(exc) or "Redis set failed") from exc
        return envelope

    async def merge(self, job_id: str, patch: JobEnvelope) -> JobEnvelope | None:
        current = await self.get(job_id)
        if current is None:
            return None
        merged = apply_job_patch(current, patch, now_ms=int(time.time() * 1000))
        return await self.set(job_id, merged)

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise StoreUnavailable(str(exc) or "Redis ping failed") from exc

    async def close(self) -> None:
        await self._client.aclose()
