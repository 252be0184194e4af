"""Liveness and backend health routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from downloader.repositories.base import JobStore, StoreUnavailable
from downloader.routes.dependencies import get_job_store
from downloader.schemas.error import ErrorDetail, ErrorResponse, HealthResponse

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"


@router.get(
    "/health/redis",
    response_model=HealthResponse,
    responses={500: {"model": ErrorResponse}},
)
async def store_health(store: Annotated[JobStore, Depends(get_job_store)]):
    try:
        await store.ping()
    except StoreUnavailable as exc:
        logger.warning("health.store_unavailable reason=%s", type(exc.__cause__ or exc).__name__)
        payload = ErrorResponse(error=ErrorDetail(message=str(exc) or "Job store is unavailable"))
        return JSONResponse(status_code=500, content=payload.model_dump(mode="json", exclude_none=True))
    return HealthResponse()
