"""Download API schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DownloadFormat = Literal["mp3", "mp4"]


class DownloadRequest(BaseModel):
    url: str = Field(strict=True)
    format: DownloadFormat = "mp3"


class DownloadResponse(BaseModel):
    ok: Literal[True] = True
    id: str
    filename: str
    download_url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

