"""Application exception types."""

from typing import Any

from downloader.schemas.error import DownloadErrorResponse, ErrorDetail, ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.code = code
        self.payload = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
        super().__init__(message)


class DownloadApiError(ApiError):
    """API error rendered with the flat ``{error, code, details}`` payload of the download surface."""

    def __init__(self, status_code: int, code: str, message: str, details: Any | None = None) -> None:
        super().__init__(status_code=status_code, code=code, message=message)
        self.payload = DownloadErrorResponse(error=message, code=code, details=details)


__all__ = ["ApiError", "DownloadApiError"]
