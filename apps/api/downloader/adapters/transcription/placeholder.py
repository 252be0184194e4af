"""Placeholder transcription engine for local development and tests."""

from typing import Any

from downloader.adapters.transcription.base import TranscriptionEngine, TranscriptionOutput


class PlaceholderTranscriptionEngine(TranscriptionEngine):
    """Returns a deterministic single-segment transcript naming the source URL."""

    async def transcribe(self, job_input: dict[str, Any]) -> TranscriptionOutput:
        url = str(job_input.get("url") or "").strip()
        text = f"Transcript placeholder for {url}"
        return TranscriptionOutput(
            transcript=text,
            segments=[{"start": 0.0, "end": 0.0, "text": text}],
            language=job_input.get("language") or "en",
        )


__all__ = ["PlaceholderTranscriptionEngine"]
