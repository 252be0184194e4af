"""Transcription engine interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class TranscriptionError(Exception):
    """Raised when an engine cannot produce a transcript."""

    def __init__(self, message: str, *, code: str = "TRANSCRIPTION_FAILED") -> None:
        self.code = code
        super().__init__(message)


@dataclass(slots=True)
class TranscriptionOutput:
    transcript: str
    segments: list[dict[str, Any]] = field(default_factory=list)
    language: str | None = None


def is_transcript_empty(output: TranscriptionOutput | None) -> bool:
    """A transcript is empty when its text is blank and every segment is blank."""
    if output is None:
        return True

    text_empty = not (output.transcript or "").strip()
    segments_empty = all(not _segment_text(segment).strip() for segment in output.segments or [])
    return text_empty and segments_empty


def _segment_text(segment: Any) -> str:
    if isinstance(segment, str):
        return segment
    if isinstance(segment, dict):
        return str(segment.get("text") or "")
    return ""


class TranscriptionEngine(ABC):
    """Provider-neutral transcription interface."""

    @abstractmethod
    async def transcribe(self, job_input: dict[str, Any]) -> TranscriptionOutput:
        """Transcribe the media referenced by ``job_input``."""


__all__ = ["TranscriptionEngine", "TranscriptionError", "TranscriptionOutput", "is_transcript_empty"]
