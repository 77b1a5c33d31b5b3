"""
Transcription pipeline.
Runs one source through the full flow: acquire → convert → transcribe → write.
"""

import logging
from contextlib import ExitStack, contextmanager
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from sona.core.assemblyai import AssemblyAIClient
from sona.core.cleanup import temp_workspace, remove_temporary_assets
from sona.core.constants import DEFAULT_OUTPUT_ROOT, Stage
from sona.core.download_audio import download_audio
from sona.core.error_codes import JobError, PipelineError, SourceNotFound
from sona.core.models import (
    AudioAsset, RunOptions, SourceDescriptor, TranscriptOutput, VideoMetadata,
)
from sona.core.normalize import normalize_audio, get_audio_duration
from sona.core.output_writer import derive_source_label, resolve_output_path, write_transcript
from sona.core.url_parse import classify_source
from sona.core.yt_metadata import fetch_metadata

logger = logging.getLogger(__name__)


class TranscriptionPipeline:
    """
    Processes one source per run() call, strictly in sequence.
    Emits progress callbacks for the CLI.

    The downloader, metadata fetcher, normalizer, prober and clock are
    injectable so the flow can run without yt-dlp, ffmpeg or a network.
    """

    def __init__(self, client: AssemblyAIClient,
                 output_root: Path = DEFAULT_OUTPUT_ROOT,
                 cookies_path: Path | None = None,
                 temp_root: Path | None = None,
                 downloader: Callable[..., Path] = download_audio,
                 metadata_fetcher: Callable[..., Optional[VideoMetadata]] = fetch_metadata,
                 normalizer: Callable[[Path, Path], Path] = normalize_audio,
                 prober: Callable[[Path], float] = get_audio_duration,
                 today: Callable[[], date] = date.today):
        self.client = client
        self.output_root = Path(output_root)
        self.cookies_path = cookies_path
        self.temp_root = temp_root
        self.downloader = downloader
        self.metadata_fetcher = metadata_fetcher
        self.normalizer = normalizer
        self.prober = prober
        self.today = today

        # Callbacks
        self.on_stage: Optional[Callable[[str, str], None]] = None
        self.on_metadata: Optional[Callable[[VideoMetadata], None]] = None

    # ── Entry point ───────────────────────────────────────────────────

    def run(self, source: str | SourceDescriptor,
            options: RunOptions | None = None) -> TranscriptOutput:
        """
        Produce a TranscriptOutput or raise a single PipelineError naming
        the failed stage. Temporary files are gone when this returns.
        """
        options = options or RunOptions()
        if isinstance(source, str):
            source = classify_source(source)

        logger.info("Run started: %s source %s (model=%s)",
                    source.kind.value, source.value, options.model)

        with ExitStack() as stack:
            with self._stage(Stage.WORKSPACE):
                workspace = stack.enter_context(temp_workspace(self.temp_root))

            assets: list[AudioAsset] = []
            stack.callback(remove_temporary_assets, assets)

            metadata = None
            if source.is_youtube:
                metadata = self._lookup_metadata(source)
                asset = self._download(source, workspace)
            else:
                asset = self._prepare_local(source, workspace, options)
            assets.append(asset)

            self._notify(Stage.TRANSCRIPTION, "Transcribing audio...")
            with self._stage(Stage.TRANSCRIPTION):
                text = self.client.transcribe(asset.path, options.model)

            with self._stage(Stage.OUTPUT):
                label = derive_source_label(source, metadata)
                if options.output_path:
                    destination = Path(options.output_path).expanduser()
                else:
                    destination = resolve_output_path(label, source.kind,
                                                      self.output_root, self.today())
                output = TranscriptOutput(
                    text=text,
                    source_label=label,
                    source_kind=source.kind,
                    destination_path=destination,
                )
                write_transcript(output.text, output.destination_path)

        logger.info("Run completed: %s", output.destination_path)
        return output

    # ── Stages ────────────────────────────────────────────────────────

    def _lookup_metadata(self, source: SourceDescriptor) -> Optional[VideoMetadata]:
        """Title/duration lookup. The one failure a run tolerates."""
        self._notify(Stage.DOWNLOAD, "Fetching video info...")
        try:
            metadata = self.metadata_fetcher(source.value, cookies_path=self.cookies_path)
        except Exception as e:
            logger.warning("Could not get video info for %s: %s", source.value, e)
            metadata = None

        if metadata is None:
            logger.warning("Proceeding without video info for %s", source.value)
        elif self.on_metadata:
            self.on_metadata(metadata)
        return metadata

    def _download(self, source: SourceDescriptor, workspace: Path) -> AudioAsset:
        self._notify(Stage.DOWNLOAD, "Downloading audio stream...")
        with self._stage(Stage.DOWNLOAD):
            path = self.downloader(source.value, workspace / "source",
                                   cookies_path=self.cookies_path)
        return AudioAsset(path=Path(path), origin=source, is_temporary=True)

    def _prepare_local(self, source: SourceDescriptor, workspace: Path,
                       options: RunOptions) -> AudioAsset:
        with self._stage(Stage.SOURCE):
            path = Path(source.value).expanduser()
            if not path.is_file():
                raise SourceNotFound(source.value)

        try:
            duration = self.prober(path)
        except Exception as e:
            logger.warning("Could not probe duration of %s: %s", path, e)
            duration = 0.0
        if duration > 0:
            logger.info("Local source %s: %.1fs", path.name, duration)

        if not options.convert_local:
            return AudioAsset(path=path, origin=source, is_temporary=False)

        self._notify(Stage.CONVERT, "Converting audio to MP3...")
        with self._stage(Stage.CONVERT):
            converted = self.normalizer(path, workspace / "converted")
        return AudioAsset(path=Path(converted), origin=source, is_temporary=True)

    # ── Helpers ───────────────────────────────────────────────────────

    @contextmanager
    def _stage(self, stage: str):
        """Wrap anything raised inside a stage in one PipelineError."""
        try:
            yield
        except PipelineError:
            raise
        except Exception as e:
            error = PipelineError(stage, e)
            logger.error("%s", error.message, exc_info=not isinstance(e, JobError))
            raise error from e

    def _notify(self, stage: str, message: str):
        logger.debug("[%s] %s", stage, message)
        if self.on_stage:
            self.on_stage(stage, message)
