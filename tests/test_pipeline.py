#!/usr/bin/env python3
"""
End-to-end pipeline runs with a scripted AssemblyAI session and fake
yt-dlp / ffmpeg collaborators.
"""

import sys
import tempfile
from datetime import date
from pathlib import Path
from unittest import mock

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "tests"))

import unittest

from sona.core.assemblyai import AssemblyAIClient
from sona.core.constants import ErrorCode, Stage
from sona.core.error_codes import (
    ConversionFailed, DownloadFailed, PipelineError, SourceNotFound,
    TranscriptionFailed, UploadFailed,
)
from sona.core.models import RunOptions, SourceKind, VideoMetadata
from sona.core.pipeline import TranscriptionPipeline

from fake_http import FakeResponse, FakeSession, status

TODAY = date(2026, 1, 15)


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.temp_root = self.tmp / "work"
        self.output_root = self.tmp / "sona"
        self.downloads = []
        self.conversions = []
        self.metadata = None

    def tearDown(self):
        self._tmp.cleanup()

    # ── fakes ─────────────────────────────────────────────────────────

    def fake_download(self, url, output_dir, cookies_path=None):
        self.downloads.append(url)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / "source.mp3"
        path.write_bytes(b"downloaded-audio")
        return path

    def fake_metadata(self, url, cookies_path=None):
        return self.metadata

    def fake_normalize(self, input_path, output_dir):
        self.conversions.append(Path(input_path))
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / "converted.mp3"
        path.write_bytes(b"converted-audio")
        return path

    def make_pipeline(self, session, **overrides):
        client = AssemblyAIClient("test-key-123456", poll_interval=0,
                                  max_poll_attempts=5, session=session,
                                  sleep=lambda _s: None)
        kwargs = dict(
            output_root=self.output_root,
            temp_root=self.temp_root,
            downloader=self.fake_download,
            metadata_fetcher=self.fake_metadata,
            normalizer=self.fake_normalize,
            prober=lambda _p: 12.5,
            today=lambda: TODAY,
        )
        kwargs.update(overrides)
        return TranscriptionPipeline(client, **kwargs)

    def local_clip(self, name="clip.mp3") -> Path:
        path = self.tmp / name
        path.write_bytes(b"local-audio")
        return path

    def assertWorkspaceClean(self):
        if self.temp_root.exists():
            self.assertEqual(list(self.temp_root.iterdir()), [])

    def output_files(self) -> list:
        if not self.output_root.exists():
            return []
        return sorted(p.name for p in self.output_root.iterdir())


class TestSuccessfulRuns(PipelineTestCase):

    def test_local_file(self):
        clip = self.local_clip()
        session = FakeSession(poll_responses=[
            status("processing"),
            status("completed", text="hello world"),
        ])
        result = self.make_pipeline(session).run(str(clip))

        expected = self.output_root / "clip-20260115.txt"
        self.assertEqual(result.destination_path, expected)
        self.assertEqual(result.source_kind, SourceKind.LOCAL)
        self.assertEqual(result.source_label, "clip")
        self.assertEqual(expected.read_text(encoding="utf-8"), "hello world")
        self.assertEqual(self.conversions, [clip])
        self.assertEqual(session.uploaded_bytes, b"converted-audio")
        self.assertTrue(clip.exists())
        self.assertWorkspaceClean()

    def test_local_file_without_conversion(self):
        clip = self.local_clip("memo.wav")
        session = FakeSession()
        self.make_pipeline(session).run(str(clip), RunOptions(convert_local=False))

        self.assertEqual(self.conversions, [])
        self.assertEqual(session.uploaded_bytes, b"local-audio")
        self.assertTrue(clip.exists())
        self.assertEqual(self.output_files(), ["memo-20260115.txt"])

    def test_youtube_with_title(self):
        self.metadata = VideoMetadata(title="My Great Video: Part 1", duration=1342)
        seen = []
        pipeline = self.make_pipeline(FakeSession())
        pipeline.on_metadata = seen.append
        result = pipeline.run("https://www.youtube.com/watch?v=abc123")

        self.assertEqual(result.destination_path.name, "my-great-video-part-1-20260115.txt")
        self.assertEqual(self.downloads, ["https://www.youtube.com/watch?v=abc123"])
        self.assertEqual(seen, [self.metadata])
        self.assertWorkspaceClean()

    def test_youtube_falls_back_to_video_id(self):
        session = FakeSession(poll_responses=[status("completed", text="hi")])
        result = self.make_pipeline(session).run("https://youtu.be/abc123")

        self.assertEqual(result.destination_path, self.output_root / "abc123-20260115.txt")
        self.assertEqual(result.destination_path.read_text(encoding="utf-8"), "hi")

    def test_metadata_failure_does_not_stop_run(self):
        def broken_metadata(url, cookies_path=None):
            raise RuntimeError("yt-dlp crashed")

        pipeline = self.make_pipeline(FakeSession(), metadata_fetcher=broken_metadata)
        result = pipeline.run("https://youtu.be/abc123")
        self.assertEqual(result.destination_path.name, "abc123-20260115.txt")

    def test_explicit_output_path(self):
        target = self.tmp / "custom" / "dir" / "notes.txt"
        result = self.make_pipeline(FakeSession()).run(
            str(self.local_clip()), RunOptions(output_path=target))

        self.assertEqual(result.destination_path, target)
        self.assertEqual(target.read_text(encoding="utf-8"), "hello world")
        self.assertEqual(self.output_files(), [])

    def test_same_day_rerun_overwrites(self):
        clip = self.local_clip()
        self.make_pipeline(FakeSession(poll_responses=[
            status("completed", text="first version")])).run(str(clip))
        self.make_pipeline(FakeSession(poll_responses=[
            status("completed", text="second")])).run(str(clip))

        self.assertEqual(self.output_files(), ["clip-20260115.txt"])
        self.assertEqual((self.output_root / "clip-20260115.txt").read_text(encoding="utf-8"),
                         "second")

    def test_duration_probe_failure_does_not_stop_run(self):
        def broken_prober(path):
            raise RuntimeError("ffprobe crashed")

        result = self.make_pipeline(FakeSession(), prober=broken_prober).run(
            str(self.local_clip()))
        self.assertEqual(result.destination_path.read_text(encoding="utf-8"), "hello world")
        self.assertWorkspaceClean()

    def test_model_is_forwarded(self):
        session = FakeSession()
        self.make_pipeline(session).run(str(self.local_clip()), RunOptions(model="universal"))
        self.assertEqual(session.calls_to("submit")[0]["json"]["speech_model"], "universal")

    def test_stage_notifications(self):
        stages = []
        pipeline = self.make_pipeline(FakeSession())
        pipeline.on_stage = lambda stage, _msg: stages.append(stage)
        pipeline.run("https://youtu.be/abc123")
        self.assertEqual(stages, [Stage.DOWNLOAD, Stage.DOWNLOAD, Stage.TRANSCRIPTION])


class TestFailedRuns(PipelineTestCase):

    def test_upload_failure(self):
        session = FakeSession(upload_response=FakeResponse(500, text="internal error"))
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(session).run(str(self.local_clip()))

        err = ctx.exception
        self.assertEqual(err.stage, Stage.TRANSCRIPTION)
        self.assertIsInstance(err.cause, UploadFailed)
        self.assertEqual(err.cause.status_code, 500)
        self.assertTrue(err.retryable)
        self.assertEqual(session.calls_to("submit"), [])
        self.assertEqual(self.output_files(), [])
        self.assertWorkspaceClean()

    def test_job_error(self):
        session = FakeSession(poll_responses=[
            status("processing"),
            status("error", error="bad audio"),
        ])
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(session).run("https://youtu.be/abc123")

        err = ctx.exception
        self.assertIsInstance(err.cause, TranscriptionFailed)
        self.assertEqual(err.cause.error_message, "bad audio")
        self.assertEqual(err.message, "transcription failed: bad audio")
        self.assertEqual(self.output_files(), [])
        self.assertWorkspaceClean()

    def test_poll_timeout(self):
        session = FakeSession(poll_responses=[status("queued")])
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(session).run(str(self.local_clip()))
        self.assertEqual(ctx.exception.code, ErrorCode.POLL_TIMEOUT)
        self.assertEqual(len(session.calls_to("poll")), 5)
        self.assertWorkspaceClean()

    def test_missing_local_file(self):
        session = FakeSession()
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(session).run(str(self.tmp / "missing.mp3"))

        err = ctx.exception
        self.assertEqual(err.stage, Stage.SOURCE)
        self.assertIsInstance(err.cause, SourceNotFound)
        self.assertEqual(session.calls, [])
        self.assertWorkspaceClean()

    def test_download_failure(self):
        def failing_download(url, output_dir, cookies_path=None):
            output_dir.mkdir(parents=True, exist_ok=True)
            (output_dir / "source.part").write_bytes(b"half")
            raise DownloadFailed("yt-dlp exited with status 1: Video unavailable")

        session = FakeSession()
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(session, downloader=failing_download).run("https://youtu.be/abc123")

        self.assertEqual(ctx.exception.stage, Stage.DOWNLOAD)
        self.assertTrue(ctx.exception.message.startswith("download failed: "))
        self.assertEqual(session.calls, [])
        self.assertWorkspaceClean()

    def test_conversion_failure(self):
        def failing_normalize(input_path, output_dir):
            raise ConversionFailed("ffmpeg failed (rc=1): Invalid data")

        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(FakeSession(), normalizer=failing_normalize).run(
                str(self.local_clip()))
        self.assertEqual(ctx.exception.stage, Stage.CONVERT)
        self.assertEqual(ctx.exception.code, ErrorCode.CONVERSION_FAILED)
        self.assertWorkspaceClean()

    def test_output_directory_not_creatable(self):
        self.output_root.write_text("not a directory", encoding="utf-8")
        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(FakeSession()).run(str(self.local_clip()))

        err = ctx.exception
        self.assertEqual(err.stage, Stage.OUTPUT)
        self.assertEqual(err.code, ErrorCode.OUTPUT_FAILED)
        self.assertTrue(err.message.startswith("output failed: cannot create output directory"))
        self.assertEqual(self.output_root.read_text(encoding="utf-8"), "not a directory")
        self.assertWorkspaceClean()

    def test_failed_write_leaves_no_partial_transcript(self):
        target = self.tmp / "out" / "notes.txt"
        with mock.patch("os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(PipelineError) as ctx:
                self.make_pipeline(FakeSession()).run(
                    str(self.local_clip()), RunOptions(output_path=target))

        self.assertEqual(ctx.exception.stage, Stage.OUTPUT)
        self.assertEqual(ctx.exception.code, ErrorCode.OUTPUT_FAILED)
        self.assertFalse(target.exists())
        self.assertEqual(list(target.parent.iterdir()), [])
        self.assertWorkspaceClean()

    def test_unexpected_exception_is_wrapped(self):
        def exploding_download(url, output_dir, cookies_path=None):
            raise RuntimeError("disk on fire")

        with self.assertRaises(PipelineError) as ctx:
            self.make_pipeline(FakeSession(), downloader=exploding_download).run(
                "https://youtu.be/abc123")
        self.assertEqual(ctx.exception.code, ErrorCode.UNEXPECTED)
        self.assertIsInstance(ctx.exception.cause, RuntimeError)
        self.assertWorkspaceClean()

    def test_interrupt_still_cleans_up(self):
        def interrupted_download(url, output_dir, cookies_path=None):
            output_dir.mkdir(parents=True, exist_ok=True)
            (output_dir / "source.part").write_bytes(b"half")
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            self.make_pipeline(FakeSession(), downloader=interrupted_download).run(
                "https://youtu.be/abc123")
        self.assertWorkspaceClean()


if __name__ == "__main__":
    unittest.main()
