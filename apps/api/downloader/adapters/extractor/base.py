"""Media extraction interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class UnsupportedSourceError(Exception):
    """Raised when a URL is outside the allow-listed media sources."""


class ProcessFailure(Exception):
    """Raised when the extraction process exits unsuccessfully."""

    def __init__(self, exit_code: int | None, stderr_tail: str) -> None:
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        super().__init__(f"Extraction process failed with exit code {exit_code}")


class ArtifactMissing(Exception):
    """Raised when the process reports success but no output file exists."""


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    file_id: str
    file_path: Path
    filename: str
    mime: str


class MediaExtractor(ABC):
    """Provider-neutral media extraction interface."""

    @abstractmethod
    async def extract(self, url: str, output_format: str) -> ExtractionResult:
        """Produce one local file for ``url`` or raise."""


__all__ = [
    "ArtifactMissing",
    "ExtractionResult",
    "MediaExtractor",
    "ProcessFailure",
    "UnsupportedSourceError",
]
