"""Transcription job routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from downloader.routes.dependencies import get_job_runner, get_job_service
from downloader.schemas.error import ErrorResponse
from downloader.schemas.job import JobResponse, TranscribeAccepted, TranscribeRequest
from downloader.services.job_runner import JobRunner
from downloader.services.jobs import JobService

router = APIRouter(tags=["Jobs"])


@router.post(
    "/transcribe",
    response_model=TranscribeAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def transcribe(
    payload: TranscribeRequest,
    service: Annotated[JobService, Depends(get_job_service)],
    runner: Annotated[JobRunner, Depends(get_job_runner)],
) -> TranscribeAccepted:
    job_input = payload.model_dump(mode="json")
    job_id = await service.create(job_input)
    runner.schedule(job_id, job_input)
    return TranscribeAccepted(job_id=job_id)


@router.get(
    "/jobs/{jobId}",
    response_model=JobResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_job(
    job_id: Annotated[str, Path(alias="jobId")],
    service: Annotated[JobService, Depends(get_job_service)],
) -> JobResponse:
    return JobResponse(job=await service.get_job(job_id))
