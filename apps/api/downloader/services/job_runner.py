"""Background progression of transcription jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from downloader.adapters.transcription import TranscriptionEngine, TranscriptionError, is_transcript_empty
from downloader.core.logging_safety import safe_log_identifier
from downloader.domain.job_fsm import is_terminal
from downloader.errors import ApiError
from downloader.repositories.base import StoreUnavailable
from downloader.schemas.job import JobStatus
from downloader.services.jobs import JobService

logger = logging.getLogger(__name__)

_PROCESSING_PROGRESS = {"stage": "transcribing", "pct": 10}


def _failure_code(exc: Exception) -> str:
    if isinstance(exc, TranscriptionError):
        return exc.code
    if isinstance(exc, StoreUnavailable):
        return "STORE_UNAVAILABLE"
    if isinstance(exc, ApiError):
        return exc.code
    return "INTERNAL"


class JobRunner:
    """Schedules the two deferred progression steps of each job.

    Both steps of one job run inside a single task, so they apply in order.
    Tasks for different jobs are independent. Every failure inside a step is
    written back into the job as an ``error`` status instead of propagating.
    """

    def __init__(
        self,
        service: JobService,
        engine: TranscriptionEngine,
        *,
        start_delay_seconds: float,
        finish_delay_seconds: float,
    ) -> None:
        self._service = service
        self._engine = engine
        self._start_delay_seconds = start_delay_seconds
        self._finish_delay_seconds = finish_delay_seconds
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, job_id: str, job_input: dict[str, Any]) -> asyncio.Task[None]:
        task = asyncio.create_task(self.run(job_id, job_input), name=f"job-progression-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, job_id: str, job_input: dict[str, Any]) -> None:
        await asyncio.sleep(self._start_delay_seconds)
        if not await self._guarded(job_id, self._start(job_id)):
            return

        await asyncio.sleep(self._finish_delay_seconds)
        await self._guarded(job_id, self._finish(job_id, job_input))

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _guarded(self, job_id: str, step: Awaitable[bool]) -> bool:
        try:
            return await step
        except Exception as exc:
            await self._fail(job_id, exc)
            return False

    async def _start(self, job_id: str) -> bool:
        updated = await self._service.advance(
            job_id,
            {"status": JobStatus.PROCESSING.value, "progress": dict(_PROCESSING_PROGRESS)},
        )
        return updated is not None

    async def _finish(self, job_id: str, job_input: dict[str, Any]) -> bool:
        output = await self._engine.transcribe(job_input)
        if is_transcript_empty(output):
            raise TranscriptionError("Transcription produced no text", code="TRANSCRIPT_EMPTY")

        updated = await self._service.advance(
            job_id,
            {
                "status": JobStatus.DONE.value,
                "progress": {"stage": "done", "pct": 100},
                "result": {
                    "transcript": output.transcript,
                    "segments": output.segments,
                    "language": output.language,
                },
                "error": None,
            },
        )
        return updated is not None

    async def _fail(self, job_id: str, exc: Exception) -> None:
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        code = _failure_code(exc)
        logger.warning("job.step_failed job_id=%s code=%s reason=%s", safe_job_id, code, type(exc).__name__)

        try:
            current = await self._service.get_envelope(job_id)
            if current is None:
                return
            status = JobStatus(current["status"])
            if is_terminal(status):
                return
            if status is JobStatus.QUEUED:
                await self._service.advance(job_id, {"status": JobStatus.PROCESSING.value})
            await self._service.advance(
                job_id,
                {
                    "status": JobStatus.ERROR.value,
                    "progress": {"stage": "error"},
                    "error": {"code": code, "message": str(exc) or type(exc).__name__},
                },
            )
        except Exception:
            logger.exception("job.fail_write_failed job_id=%s code=%s", safe_job_id, code)
