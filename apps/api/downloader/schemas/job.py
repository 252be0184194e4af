"""Job API schemas."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class JobType(str, Enum):
    TRANSCRIPTION = "transcription"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobProgress(_CamelModel):
    stage: str | None = None
    pct: int | None = Field(default=None, ge=0, le=100)


class TranscriptSegment(_CamelModel):
    start: float | None = None
    end: float | None = None
    text: str = ""


class JobResult(_CamelModel):
    transcript: str | None = None
    segments: list[TranscriptSegment] | None = None
    language: str | None = None


class JobError(_CamelModel):
    code: str
    message: str


class Job(_CamelModel):
    """Persisted envelope for one asynchronous unit of work."""

    job_id: str
    type: JobType
    status: JobStatus
    created_at: int
    updated_at: int
    input: dict[str, Any] = Field(default_factory=dict)
    progress: JobProgress = Field(default_factory=JobProgress)
    result: JobResult = Field(default_factory=JobResult)
    error: JobError | None = None


class TranscribeRequest(BaseModel):
    """Transcription request body; unknown fields are kept and stored verbatim."""

    url: str = Field(strict=True)

    model_config = ConfigDict(extra="allow")


class TranscribeAccepted(_CamelModel):
    ok: Literal[True] = True
    job_id: str


class JobResponse(BaseModel):
    ok: Literal[True] = True
    job: Job
