"""Download and file routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from fastapi.responses import FileResponse

from downloader.routes.dependencies import get_download_service, require_bearer_token
from downloader.schemas.download import DownloadRequest, DownloadResponse
from downloader.schemas.error import DownloadErrorResponse
from downloader.services.downloads import DownloadService

router = APIRouter(tags=["Downloads"], dependencies=[Depends(require_bearer_token)])


@router.post(
    "/download",
    response_model=DownloadResponse,
    responses={
        400: {"model": DownloadErrorResponse},
        401: {"model": DownloadErrorResponse},
        500: {"model": DownloadErrorResponse},
    },
)
async def download(
    payload: DownloadRequest,
    service: Annotated[DownloadService, Depends(get_download_service)],
) -> DownloadResponse:
    return await service.download(url=payload.url, output_format=payload.format)


@router.get(
    "/files/{id}",
    response_class=FileResponse,
    responses={401: {"model": DownloadErrorResponse}, 404: {"model": DownloadErrorResponse}},
)
async def get_file(
    artifact_id: Annotated[str, Path(alias="id")],
    service: Annotated[DownloadService, Depends(get_download_service)],
) -> FileResponse:
    entry = service.get_file(artifact_id)
    return FileResponse(entry.file_path, media_type=entry.mime, filename=entry.filename)
