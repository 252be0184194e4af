"""Media extraction adapters."""

from .base import ArtifactMissing, ExtractionResult, MediaExtractor, ProcessFailure, UnsupportedSourceError
from .ytdlp import YtDlpExtractor

__all__ = [
    "ArtifactMissing",
    "ExtractionResult",
    "MediaExtractor",
    "ProcessFailure",
    "UnsupportedSourceError",
    "YtDlpExtractor",
]
