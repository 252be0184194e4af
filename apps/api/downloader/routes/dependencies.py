"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from downloader.adapters.auth import AuthVerificationError, StaticTokenVerifier, TokenVerifier
from downloader.adapters.extractor import MediaExtractor
from downloader.core.config import Settings
from downloader.core.logging_safety import safe_log_identifier
from downloader.errors import DownloadApiError
from downloader.repositories.artifacts import ArtifactCache
from downloader.repositories.base import JobStore
from downloader.services.downloads import DownloadService
from downloader.services.job_runner import JobRunner
from downloader.services.jobs import JobService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _auth_error() -> DownloadApiError:
    return DownloadApiError(status_code=401, code="UNAUTHORIZED", message="Unauthorized")


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_verifier(settings: Annotated[Settings, Depends(get_app_settings)]) -> TokenVerifier:
    return StaticTokenVerifier(settings.token)


async def require_bearer_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> None:
    """Validate the shared-secret bearer token."""
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    if credentials is None or credentials.scheme != "Bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error()

    try:
        verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            str(exc) or "token_verification_failed",
        )
        raise _auth_error() from exc


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_artifact_cache(request: Request) -> ArtifactCache:
    return request.app.state.artifact_cache


def get_extractor(request: Request) -> MediaExtractor:
    return request.app.state.extractor


def get_job_runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


def get_job_service(store: Annotated[JobStore, Depends(get_job_store)]) -> JobService:
    return JobService(store)


def get_download_service(
    extractor: Annotated[MediaExtractor, Depends(get_extractor)],
    cache: Annotated[ArtifactCache, Depends(get_artifact_cache)],
) -> DownloadService:
    return DownloadService(extractor, cache)
