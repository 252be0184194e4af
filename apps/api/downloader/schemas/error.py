"""API error response schemas."""

from typing import Any, Literal

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str | None = None
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Envelope used by the job, health and fallback surfaces."""

    ok: Literal[False] = False
    error: ErrorDetail


class DownloadErrorResponse(BaseModel):
    """Flat payload used by the download and file surfaces."""

    error: str
    code: str
    details: Any | None = None


class HealthResponse(BaseModel):
    ok: Literal[True] = True
