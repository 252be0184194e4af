"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from downloader.adapters.extractor import YtDlpExtractor
from downloader.adapters.transcription import PlaceholderTranscriptionEngine, TranscriptionEngine
from downloader.core.config import Settings, get_settings
from downloader.errors import ApiError
from downloader.repositories.artifacts import ArtifactCache, run_sweeper
from downloader.repositories.base import JobStore
from downloader.repositories.memory import InMemoryJobStore
from downloader.repositories.redis_store import RedisJobStore
from downloader.routes import downloads_router, health_router, jobs_router
from downloader.schemas.error import DownloadErrorResponse, ErrorDetail, ErrorResponse
from downloader.services.job_runner import JobRunner
from downloader.services.jobs import JobService

logger = logging.getLogger(__name__)

_DOWNLOAD_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", "/download"),
}

_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def build_job_store(settings: Settings) -> JobStore:
    if settings.job_store_backend == "memory":
        return InMemoryJobStore(ttl_seconds=settings.job_ttl_seconds)
    return RedisJobStore.from_url(settings.redis_url, ttl_seconds=settings.job_ttl_seconds)


_TRANSCRIPTION_ENGINES: dict[str, type[TranscriptionEngine]] = {
    "placeholder": PlaceholderTranscriptionEngine,
}


def build_transcription_engine(settings: Settings) -> TranscriptionEngine:
    """Resolve engine adapter from configuration."""
    return _TRANSCRIPTION_ENGINES[settings.transcription_engine]()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return "Malformed JSON body"
    if not errors:
        return "Invalid request payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid request payload: {location or 'body'} {first.get('msg', '')}".strip()


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    sweeper = asyncio.create_task(
        run_sweeper(app.state.artifact_cache, interval_seconds=settings.artifact_sweep_interval_seconds),
        name="artifact-sweeper",
    )
    logger.info(
        "app.started job_store_backend=%s sweep_interval_seconds=%s retention_seconds=%s",
        settings.job_store_backend,
        settings.artifact_sweep_interval_seconds,
        settings.artifact_retention_seconds,
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await app.state.job_runner.shutdown()
        await app.state.job_store.close()
        logger.info("app.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Downloader API", version="1.0.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.job_store = build_job_store(settings)
    app.state.artifact_cache = ArtifactCache(retention_seconds=settings.artifact_retention_seconds)
    app.state.extractor = YtDlpExtractor(
        download_dir=settings.download_dir,
        binary=settings.ytdlp_binary,
        fallback_js_runtime=settings.fallback_js_runtime,
    )
    app.state.job_runner = JobRunner(
        JobService(app.state.job_store),
        build_transcription_engine(settings),
        start_delay_seconds=settings.transcribe_start_delay_seconds,
        finish_delay_seconds=settings.transcribe_finish_delay_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Each surface keeps its own 400 payload shape.
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        message = _validation_message(exc)
        if (request.method.upper(), route_path) in _DOWNLOAD_VALIDATION_PATHS:
            payload = DownloadErrorResponse(error=message, code="BAD_REQUEST")
        else:
            payload = ErrorResponse(error=ErrorDetail(code="BAD_REQUEST", message=message))
        return JSONResponse(status_code=400, content=payload.model_dump(mode="json", exclude_none=True))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        payload = ErrorResponse(error=ErrorDetail(code=code, message=message))
        return JSONResponse(
            status_code=exc.status_code,
            content=payload.model_dump(mode="json", exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("app.unhandled_error method=%s path=%s", request.method, request.url.path)
        payload = ErrorResponse(error=ErrorDetail(code="INTERNAL", message="Internal server error"))
        return JSONResponse(status_code=500, content=payload.model_dump(mode="json", exclude_none=True))

    app.include_router(health_router)
    app.include_router(downloads_router)
    app.include_router(jobs_router)

    return app
