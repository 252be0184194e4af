"""Transcription job service layer."""

from __future__ import annotations

import logging
import time
from typing import Any
from uuid import uuid4

from downloader.core.logging_safety import safe_log_identifier
from downloader.domain.job_fsm import ensure_transition
from downloader.errors import ApiError
from downloader.repositories.base import JobEnvelope, JobStore, StoreUnavailable
from downloader.schemas.job import Job, JobStatus, JobType

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class JobService:
    """Owns job envelope lifecycle semantics on top of a :class:`JobStore`."""

    def __init__(self, store: JobStore) -> None:
        self._store = store

    async def create(self, job_input: dict[str, Any]) -> str:
        now = _now_ms()
        job_id = str(uuid4())
        envelope: JobEnvelope = {
            "jobId": job_id,
            "type": JobType.TRANSCRIPTION.value,
            "status": JobStatus.QUEUED.value,
            "createdAt": now,
            "updatedAt": now,
            "input": job_input,
            "progress": {"stage": "queued", "pct": 0},
            "result": {"transcript": None, "segments": None, "language": None},
            "error": None,
        }

        try:
            await self._store.set(job_id, envelope)
        except StoreUnavailable as exc:
            logger.warning("job.create_failed reason=store_unavailable")
            raise ApiError(
                status_code=500,
                code="STORE_UNAVAILABLE",
                message="Job store is unavailable",
            ) from exc

        logger.info("job.created job_id=%s type=%s", safe_log_identifier(job_id, prefix="jid"), envelope["type"])
        return job_id

    async def get_envelope(self, job_id: str) -> JobEnvelope | None:
        return await self._store.get(job_id)

    async def advance(self, job_id: str, patch: JobEnvelope) -> JobEnvelope | None:
        """Merge ``patch`` into the job; returns ``None`` when the job is gone.

        A ``status`` in the patch is checked against the lifecycle rules first.
        """
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        current = await self._store.get(job_id)
        if current is None:
            logger.info("job.advance_skipped job_id=%s reason=not_found", safe_job_id)
            return None

        previous_status = JobStatus(current["status"])
        if "status" in patch:
            ensure_transition(previous_status, JobStatus(patch["status"]))

        updated = await self._store.merge(job_id, patch)
        if updated is None:
            logger.info("job.advance_skipped job_id=%s reason=expired", safe_job_id)
            return None

        logger.info(
            "job.advanced job_id=%s prev_status=%s new_status=%s",
            safe_job_id,
            previous_status.value,
            updated["status"],
        )
        return updated

    async def get_job(self, job_id: str) -> Job:
        try:
            envelope = await self._store.get(job_id)
        except StoreUnavailable as exc:
            raise ApiError(
                status_code=500,
                code="STORE_UNAVAILABLE",
                message="Job store is unavailable",
            ) from exc

        if envelope is None:
            raise ApiError(status_code=404, code="JOB_NOT_FOUND", message="Job not found")
        return Job.model_validate(envelope)
