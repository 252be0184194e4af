"""Transcription engine adapters."""

from .base import TranscriptionEngine, TranscriptionError, TranscriptionOutput, is_transcript_empty
from .placeholder import PlaceholderTranscriptionEngine

__all__ = [
    "PlaceholderTranscriptionEngine",
    "TranscriptionEngine",
    "TranscriptionError",
    "TranscriptionOutput",
    "is_transcript_empty",
]
