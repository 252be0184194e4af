"""yt-dlp subprocess orchestration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit
from uuid import uuid4

from downloader.adapters.extractor.base import (
    ArtifactMissing,
    ExtractionResult,
    MediaExtractor,
    ProcessFailure,
    UnsupportedSourceError,
)
from downloader.core.logging_safety import redact_argv, redact_url_credentials, safe_log_identifier

logger = logging.getLogger(__name__)

RUNTIME_MISSING_SIGNATURE = "No supported JavaScript runtime could be found"
STDERR_TAIL_CHARS = 1500

_ALLOWED_HOSTS = frozenset(
    {
        "youtube.com",
        "www.youtube.com",
        "m.youtube.com",
        "music.youtube.com",
        "youtu.be",
        "www.youtube-nocookie.com",
    }
)
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
_ACCEPT_LANGUAGE_HEADER = "Accept-Language:en-US,en;q=0.9"
_EXTRACTOR_ARGS = "youtube:player_client=web,android"


@dataclass(slots=True, frozen=True)
class _FormatSpec:
    extension: str
    mime: str
    args: tuple[str, ...]


_FORMATS: dict[str, _FormatSpec] = {
    "mp3": _FormatSpec(
        extension="mp3",
        mime="audio/mpeg",
        args=("-x", "--audio-format", "mp3"),
    ),
    "mp4": _FormatSpec(
        extension="mp4",
        mime="video/mp4",
        args=("-f", "bv*[ext=mp4]+ba[ext=m4a]/b[ext=mp4]/bv*+ba/b", "--merge-output-format", "mp4"),
    ),
}
# Audio first, then video, whatever format was requested.
_CANDIDATE_EXTENSIONS = ("mp3", "mp4")


@dataclass(slots=True, frozen=True)
class ProcessOutcome:
    exit_code: int | None
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ProcessCompletion:
    """Holds the single terminal outcome of one spawned process.

    The first ``finalize`` call wins; later completion signals are dropped.
    """

    __slots__ = ("_label", "_outcome")

    def __init__(self, label: str) -> None:
        self._label = label
        self._outcome: ProcessOutcome | None = None

    @property
    def outcome(self) -> ProcessOutcome | None:
        return self._outcome

    def finalize(self, outcome: ProcessOutcome) -> bool:
        if self._outcome is not None:
            logger.debug(
                "extractor.duplicate_completion_suppressed process=%s exit_code=%s",
                self._label,
                outcome.exit_code,
            )
            return False
        self._outcome = outcome
        return True


ProcessRunner = Callable[[list[str]], Awaitable[ProcessOutcome]]


async def run_process(argv: list[str]) -> ProcessOutcome:
    """Spawn ``argv`` and wait for it, capturing stderr.

    Spawn errors and process exit both settle through one ``finalize`` call.
    """
    completion = ProcessCompletion(label=argv[0] if argv else "?")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
    except OSError as exc:
        outcome = ProcessOutcome(exit_code=None, stderr=f"{type(exc).__name__}: {exc}")
    else:
        outcome = ProcessOutcome(
            exit_code=process.returncode,
            stderr=(stderr or b"").decode("utf-8", errors="replace"),
        )
    completion.finalize(outcome)
    return completion.outcome


def is_allowed_source_url(url: str) -> bool:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    return (parts.hostname or "").lower() in _ALLOWED_HOSTS


def build_ytdlp_args(
    *,
    binary: str,
    url: str,
    output_format: str,
    output_template: str,
    js_runtime: str | None = None,
) -> list[str]:
    """Return a yt-dlp argv list suitable for ``create_subprocess_exec``."""
    fmt = _FORMATS[output_format]
    argv = [
        binary,
        "--no-playlist",
        "--no-progress",
        "--user-agent",
        _USER_AGENT,
        "--add-header",
        _ACCEPT_LANGUAGE_HEADER,
        "--extractor-args",
        _EXTRACTOR_ARGS,
    ]
    if js_runtime:
        argv.extend(["--js-runtimes", js_runtime])
    argv.extend(fmt.args)
    argv.extend(["-o", output_template, url])
    return argv


def should_retry_with_fallback(outcome: ProcessOutcome, fallback_js_runtime: str | None) -> bool:
    return (
        not outcome.succeeded
        and bool(fallback_js_runtime)
        and RUNTIME_MISSING_SIGNATURE in outcome.stderr
    )


class YtDlpExtractor(MediaExtractor):
    """Runs yt-dlp once per request, with one retry on a missing JavaScript runtime."""

    def __init__(
        self,
        *,
        download_dir: Path,
        binary: str = "yt-dlp",
        fallback_js_runtime: str | None = None,
        runner: ProcessRunner = run_process,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ) -> None:
        self._download_dir = Path(download_dir)
        self._binary = binary
        self._fallback_js_runtime = fallback_js_runtime or None
        self._runner = runner
        self._id_factory = id_factory

    async def extract(self, url: str, output_format: str) -> ExtractionResult:
        url = url.strip()
        if not is_allowed_source_url(url):
            raise UnsupportedSourceError("Only YouTube URLs are supported")
        if output_format not in _FORMATS:
            raise UnsupportedSourceError(f"Unsupported output format: {output_format}")

        file_id = self._id_factory()
        self._download_dir.mkdir(parents=True, exist_ok=True)
        output_template = str(self._download_dir / f"{file_id}.%(ext)s")
        safe_file_id = safe_log_identifier(file_id, prefix="fid")

        primary_args = build_ytdlp_args(
            binary=self._binary,
            url=url,
            output_format=output_format,
            output_template=output_template,
        )
        outcome = await self._attempt(primary_args, attempt="primary", safe_file_id=safe_file_id)

        if should_retry_with_fallback(outcome, self._fallback_js_runtime):
            logger.info(
                "extractor.retry file_id=%s reason=js_runtime_missing fallback=%s",
                safe_file_id,
                self._fallback_js_runtime,
            )
            fallback_args = build_ytdlp_args(
                binary=self._binary,
                url=url,
                output_format=output_format,
                output_template=output_template,
                js_runtime=self._fallback_js_runtime,
            )
            outcome = await self._attempt(fallback_args, attempt="fallback", safe_file_id=safe_file_id)

        if not outcome.succeeded:
            self._discard_outputs(file_id, safe_file_id=safe_file_id)
            raise ProcessFailure(exit_code=outcome.exit_code, stderr_tail=outcome.stderr[-STDERR_TAIL_CHARS:])

        return self._locate_artifact(file_id, safe_file_id=safe_file_id)

    async def _attempt(self, argv: list[str], *, attempt: str, safe_file_id: str) -> ProcessOutcome:
        logger.info(
            "extractor.spawn file_id=%s attempt=%s argv=%s",
            safe_file_id,
            attempt,
            " ".join(redact_argv(argv)),
        )
        outcome = await self._runner(argv)
        if outcome.succeeded:
            logger.info("extractor.succeeded file_id=%s attempt=%s", safe_file_id, attempt)
        else:
            logger.warning(
                "extractor.failed file_id=%s attempt=%s exit_code=%s stderr=%s",
                safe_file_id,
                attempt,
                outcome.exit_code,
                redact_url_credentials(outcome.stderr),
            )
        return outcome

    def _locate_artifact(self, file_id: str, *, safe_file_id: str) -> ExtractionResult:
        for extension in _CANDIDATE_EXTENSIONS:
            candidate = self._download_dir / f"{file_id}.{extension}"
            if candidate.is_file():
                return ExtractionResult(
                    file_id=file_id,
                    file_path=candidate,
                    filename=candidate.name,
                    mime=_FORMATS[extension].mime,
                )

        logger.error("extractor.artifact_missing file_id=%s", safe_file_id)
        self._discard_outputs(file_id, safe_file_id=safe_file_id)
        raise ArtifactMissing(f"Extraction succeeded but no output file was found for {file_id}")

    def _discard_outputs(self, file_id: str, *, safe_file_id: str) -> None:
        """Remove whatever a failed run left under ``<file_id>.*``."""
        for leftover in self._download_dir.glob(f"{file_id}.*"):
            try:
                leftover.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning(
                    "extractor.cleanup_failed file_id=%s reason=%s",
                    safe_file_id,
                    type(exc).__name__,
                )
