"""yt-dlp orchestration tests: argv construction, fallback retry, finalize-once and artifact lookup."""

from __future__ import annotations

import logging
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from downloader.adapters.extractor import ArtifactMissing, ProcessFailure, UnsupportedSourceError
from downloader.adapters.extractor.ytdlp import (
    RUNTIME_MISSING_SIGNATURE,
    ProcessCompletion,
    ProcessOutcome,
    YtDlpExtractor,
    build_ytdlp_args,
    is_allowed_source_url,
    run_process,
)
from downloader.core.logging_safety import redact_url_credentials

_RUNTIME_MISSING = f"ERROR: [youtube] abc: {RUNTIME_MISSING_SIGNATURE}. Install deno or node."


class _ScriptedRunner:
    """Returns queued outcomes, writes any leftovers and the output file for successful attempts."""

    def __init__(
        self,
        outcomes: list[ProcessOutcome],
        *,
        produce_extension: str | None = "mp3",
        leftovers: tuple[str, ...] = (),
    ) -> None:
        self._outcomes = list(outcomes)
        self._produce_extension = produce_extension
        self._leftovers = leftovers
        self.calls: list[list[str]] = []

    async def __call__(self, argv: list[str]) -> ProcessOutcome:
        self.calls.append(list(argv))
        outcome = self._outcomes.pop(0)
        template = argv[argv.index("-o") + 1]
        for suffix in self._leftovers:
            Path(template.replace(".%(ext)s", suffix)).write_bytes(b"partial")
        if outcome.succeeded and self._produce_extension:
            Path(template.replace("%(ext)s", self._produce_extension)).write_bytes(b"media")
        return outcome


class _ExtractorCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.download_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _extractor(self, runner: _ScriptedRunner, *, fallback: str | None = None) -> YtDlpExtractor:
        return YtDlpExtractor(
            download_dir=self.download_dir,
            fallback_js_runtime=fallback,
            runner=runner,
            id_factory=lambda: "file-1",
        )


class ArgvTests(unittest.TestCase):
    def test_common_core_flags(self) -> None:
        argv = build_ytdlp_args(
            binary="yt-dlp",
            url="https://youtu.be/abc",
            output_format="mp3",
            output_template="/tmp/x/file-1.%(ext)s",
        )

        self.assertEqual(argv[0], "yt-dlp")
        self.assertIn("--no-playlist", argv)
        self.assertIn("--user-agent", argv)
        self.assertIn("--add-header", argv)
        self.assertEqual(argv[argv.index("--extractor-args") + 1].split(":")[0], "youtube")
        self.assertEqual(argv[argv.index("-o") + 1], "/tmp/x/file-1.%(ext)s")
        self.assertEqual(argv[-1], "https://youtu.be/abc")
        self.assertNotIn("--js-runtimes", argv)

    def test_audio_and_video_format_flags(self) -> None:
        mp3 = build_ytdlp_args(binary="yt-dlp", url="u", output_format="mp3", output_template="t")
        mp4 = build_ytdlp_args(binary="yt-dlp", url="u", output_format="mp4", output_template="t")

        self.assertEqual(mp3[mp3.index("--audio-format") + 1], "mp3")
        self.assertIn("-x", mp3)
        self.assertEqual(mp4[mp4.index("--merge-output-format") + 1], "mp4")
        self.assertNotIn("-x", mp4)

    def test_fallback_runtime_flag(self) -> None:
        argv = build_ytdlp_args(
            binary="yt-dlp",
            url="u",
            output_format="mp3",
            output_template="t",
            js_runtime="node",
        )

        self.assertEqual(argv[argv.index("--js-runtimes") + 1], "node")

    def test_allow_list(self) -> None:
        allowed = [
            "https://youtu.be/abc",
            "https://www.youtube.com/watch?v=abc",
            "http://m.youtube.com/watch?v=abc",
            "https://music.youtube.com/watch?v=abc",
        ]
        rejected = [
            "https://example.com/x",
            "ftp://youtu.be/abc",
            "https://youtube.com.evil.test/watch?v=abc",
            "not a url",
            "",
        ]
        for url in allowed:
            with self.subTest(url=url):
                self.assertTrue(is_allowed_source_url(url))
        for url in rejected:
            with self.subTest(url=url):
                self.assertFalse(is_allowed_source_url(url))


class RetryPolicyTests(_ExtractorCase):
    async def test_runtime_missing_with_fallback_retries_exactly_once(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(1, _RUNTIME_MISSING), ProcessOutcome(0, "")])

        result = await self._extractor(runner, fallback="node").extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 2)
        self.assertNotIn("--js-runtimes", runner.calls[0])
        self.assertEqual(runner.calls[1][runner.calls[1].index("--js-runtimes") + 1], "node")
        self.assertEqual(result.file_path, self.download_dir / "file-1.mp3")

    async def test_runtime_missing_without_fallback_does_not_retry(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(1, _RUNTIME_MISSING)])

        with self.assertRaises(ProcessFailure) as context:
            await self._extractor(runner, fallback=None).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 1)
        self.assertEqual(context.exception.exit_code, 1)

    async def test_other_failure_does_not_retry_even_with_fallback(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(1, "ERROR: Video unavailable")])

        with self.assertRaises(ProcessFailure):
            await self._extractor(runner, fallback="node").extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 1)

    async def test_fallback_failure_is_terminal(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(1, _RUNTIME_MISSING), ProcessOutcome(2, _RUNTIME_MISSING)])

        with self.assertRaises(ProcessFailure) as context:
            await self._extractor(runner, fallback="node").extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 2)
        self.assertEqual(context.exception.exit_code, 2)

    async def test_failure_reports_bounded_stderr_tail(self) -> None:
        stderr = "x" * 3000 + "END"
        runner = _ScriptedRunner([ProcessOutcome(1, stderr)])

        with self.assertRaises(ProcessFailure) as context:
            await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(context.exception.stderr_tail), 1500)
        self.assertTrue(context.exception.stderr_tail.endswith("END"))

    async def test_failure_log_redacts_credentials(self) -> None:
        stderr = "ERROR: fetching https://rr1.googlevideo.com/videoplayback?id=1&sig=SECRET123&token=TOPSECRET"
        runner = _ScriptedRunner([ProcessOutcome(1, stderr)])

        with self.assertLogs("downloader.adapters.extractor.ytdlp", level=logging.WARNING) as captured:
            with self.assertRaises(ProcessFailure):
                await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        output = "\n".join(captured.output)
        self.assertNotIn("SECRET123", output)
        self.assertNotIn("TOPSECRET", output)
        self.assertIn("sig=REDACTED", output)


class ArtifactLookupTests(_ExtractorCase):
    async def test_unsupported_source_never_spawns(self) -> None:
        runner = _ScriptedRunner([])

        with self.assertRaises(UnsupportedSourceError):
            await self._extractor(runner).extract("https://example.com/x", "mp3")

        self.assertEqual(runner.calls, [])

    async def test_success_without_output_file_raises_artifact_missing(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(0, "")], produce_extension=None)

        with self.assertRaises(ArtifactMissing):
            await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 1)

    async def test_audio_extension_is_preferred_over_video(self) -> None:
        (self.download_dir / "file-1.mp4").write_bytes(b"video")
        runner = _ScriptedRunner([ProcessOutcome(0, "")], produce_extension="mp3")

        result = await self._extractor(runner).extract("https://youtu.be/abc", "mp4")

        self.assertEqual(result.filename, "file-1.mp3")
        self.assertEqual(result.mime, "audio/mpeg")

    async def test_video_artifact_metadata(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(0, "")], produce_extension="mp4")

        result = await self._extractor(runner).extract("https://youtu.be/abc", "mp4")

        self.assertEqual(result.file_id, "file-1")
        self.assertEqual(result.filename, "file-1.mp4")
        self.assertEqual(result.mime, "video/mp4")


class FailedRunCleanupTests(_ExtractorCase):
    def _remaining(self) -> list[str]:
        return sorted(path.name for path in self.download_dir.iterdir())

    async def test_process_failure_removes_partial_download(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(1, "ERROR: interrupted")], leftovers=(".webm.part",))

        with self.assertRaises(ProcessFailure):
            await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(self._remaining(), [])

    async def test_missing_artifact_removes_unexpected_output(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(0, "")], produce_extension=None, leftovers=(".webm",))

        with self.assertRaises(ArtifactMissing):
            await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(self._remaining(), [])

    async def test_failed_fallback_removes_leftovers_from_both_attempts(self) -> None:
        runner = _ScriptedRunner(
            [ProcessOutcome(1, _RUNTIME_MISSING), ProcessOutcome(1, "ERROR: still failing")],
            leftovers=(".f140.m4a.part",),
        )

        with self.assertRaises(ProcessFailure):
            await self._extractor(runner, fallback="node").extract("https://youtu.be/abc", "mp3")

        self.assertEqual(len(runner.calls), 2)
        self.assertEqual(self._remaining(), [])

    async def test_cleanup_leaves_other_downloads_alone(self) -> None:
        (self.download_dir / "other-id.mp3").write_bytes(b"media")
        runner = _ScriptedRunner([ProcessOutcome(1, "ERROR: interrupted")], leftovers=(".webm.part",))

        with self.assertRaises(ProcessFailure):
            await self._extractor(runner).extract("https://youtu.be/abc", "mp3")

        self.assertEqual(self._remaining(), ["other-id.mp3"])

    async def test_surrounding_whitespace_is_stripped_before_spawning(self) -> None:
        runner = _ScriptedRunner([ProcessOutcome(0, "")])

        await self._extractor(runner).extract("  https://youtu.be/abc\n", "mp3")

        self.assertEqual(runner.calls[0][-1], "https://youtu.be/abc")


class ProcessRunnerTests(unittest.IsolatedAsyncioTestCase):
    async def test_exit_code_and_stderr_are_captured(self) -> None:
        outcome = await run_process(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
        )

        self.assertEqual(outcome.exit_code, 3)
        self.assertEqual(outcome.stderr, "boom")
        self.assertFalse(outcome.succeeded)

    async def test_successful_process(self) -> None:
        outcome = await run_process([sys.executable, "-c", "pass"])

        self.assertTrue(outcome.succeeded)

    async def test_spawn_error_is_a_single_failure_outcome(self) -> None:
        outcome = await run_process(["/nonexistent/definitely-not-yt-dlp"])

        self.assertIsNone(outcome.exit_code)
        self.assertFalse(outcome.succeeded)
        self.assertIn("FileNotFoundError", outcome.stderr)

    async def test_each_run_settles_through_a_single_finalize(self) -> None:
        argv_cases = {
            "exit": [sys.executable, "-c", "import sys; sys.exit(2)"],
            "spawn_error": ["/nonexistent/definitely-not-yt-dlp"],
        }
        for label, argv in argv_cases.items():
            with self.subTest(label=label):
                with patch.object(ProcessCompletion, "finalize", autospec=True, return_value=True) as finalize:
                    await run_process(argv)
                self.assertEqual(finalize.call_count, 1)

    def test_completion_is_finalized_once(self) -> None:
        completion = ProcessCompletion(label="yt-dlp")

        self.assertTrue(completion.finalize(ProcessOutcome(1, "first")))
        self.assertFalse(completion.finalize(ProcessOutcome(0, "second")))
        self.assertEqual(completion.outcome, ProcessOutcome(1, "first"))


class RedactionTests(unittest.TestCase):
    def test_credential_params_are_redacted(self) -> None:
        text = "GET https://host/path?a=1&api_key=k1&Signature=s2&auth=a3&key=k4 failed"

        redacted = redact_url_credentials(text)

        for secret in ("k1", "s2", "a3", "k4"):
            self.assertNotIn(f"={secret}", redacted)
        self.assertIn("a=1", redacted)
        self.assertTrue(redacted.endswith(" failed"))

    def test_urls_without_credentials_are_untouched(self) -> None:
        text = "https://www.youtube.com/watch?v=abc&t=10"

        self.assertEqual(redact_url_credentials(text), text)


if __name__ == "__main__":
    unittest.main()
