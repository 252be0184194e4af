"""Download service layer."""

import logging

from downloader.adapters.extractor import (
    ArtifactMissing,
    MediaExtractor,
    ProcessFailure,
    UnsupportedSourceError,
)
from downloader.core.logging_safety import redact_url_credentials, safe_log_identifier
from downloader.errors import DownloadApiError
from downloader.repositories.artifacts import ArtifactCache, ArtifactEntry
from downloader.schemas.download import DownloadResponse

logger = logging.getLogger(__name__)


class DownloadService:
    def __init__(self, extractor: MediaExtractor, cache: ArtifactCache) -> None:
        self._extractor = extractor
        self._cache = cache

    async def download(self, *, url: str, output_format: str) -> DownloadResponse:
        try:
            result = await self._extractor.extract(url, output_format)
        except UnsupportedSourceError as exc:
            logger.info("download.rejected url=%s reason=unsupported_source", redact_url_credentials(url))
            raise DownloadApiError(status_code=400, code="BAD_REQUEST", message=str(exc)) from exc
        except ProcessFailure as exc:
            raise DownloadApiError(
                status_code=500,
                code="DOWNLOAD_FAILED",
                message="Download failed",
                details={"exitCode": exc.exit_code, "stderr": exc.stderr_tail},
            ) from exc
        except ArtifactMissing as exc:
            raise DownloadApiError(
                status_code=500,
                code="ARTIFACT_MISSING",
                message="Download finished but the output file is missing",
            ) from exc

        entry = ArtifactEntry(
            id=result.file_id,
            file_path=result.file_path,
            filename=result.filename,
            mime=result.mime,
            created_at=self._cache.now(),
        )
        self._cache.put(entry)
        logger.info(
            "download.registered artifact_id=%s mime=%s",
            safe_log_identifier(entry.id, prefix="aid"),
            entry.mime,
        )
        return DownloadResponse(id=entry.id, filename=entry.filename, download_url=f"/files/{entry.id}")

    def get_file(self, artifact_id: str) -> ArtifactEntry:
        entry = self._cache.get(artifact_id)
        if entry is None or not entry.file_path.is_file():
            raise DownloadApiError(status_code=404, code="NOT_FOUND", message="File not found or expired")
        return entry
