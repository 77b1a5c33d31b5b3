"""
Audio download via yt-dlp.
"""

import logging
import subprocess
from pathlib import Path

from sona.core.binaries import require_binary
from sona.core.constants import DOWNLOAD_TIMEOUT_SEC, NORM_FORMAT
from sona.core.error_codes import DownloadFailed
from sona.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)


def download_audio(video_url: str, output_dir: Path,
                   cookies_path: Path | None = None,
                   timeout: int = DOWNLOAD_TIMEOUT_SEC) -> Path:
    """
    Extract the audio track of a video into ``output_dir`` as mp3.
    Returns path to the downloaded file.
    """
    ytdlp = require_binary("yt-dlp")

    output_dir.mkdir(parents=True, exist_ok=True)
    output_template = str(output_dir / "source.%(ext)s")

    args = [
        ytdlp,
        "--extract-audio",
        "--audio-format", NORM_FORMAT,
        "--audio-quality", "0",
        "--no-playlist",
        "--quiet",
        "-o", output_template,
    ]

    if cookies_path and cookies_path.exists():
        args.extend(["--cookies", str(cookies_path)])

    args.append(video_url)

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise DownloadFailed(f"yt-dlp timed out after {timeout}s", timed_out=True)
    except OSError as e:
        raise DownloadFailed(f"could not run yt-dlp: {e}")

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise DownloadFailed(f"yt-dlp exited with status {result.returncode}: {stderr[:300]}")

    # Find the downloaded file; yt-dlp may leave .part or pre-conversion files next to it
    downloaded = output_dir / f"source.{NORM_FORMAT}"
    if not downloaded.is_file():
        source_files = sorted(p for p in output_dir.glob("source.*") if p.suffix != ".part")
        if not source_files:
            raise DownloadFailed("no audio file found after download")
        downloaded = source_files[0]
    logger.info("Downloaded audio: %s (%.2f MB)", downloaded,
                downloaded.stat().st_size / 1024 / 1024)
    return downloaded
