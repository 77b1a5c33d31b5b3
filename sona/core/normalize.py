"""
Audio conversion using ffmpeg.
Target: MP3, 44.1kHz stereo, 192kbps, accepted by the transcription service.
"""

import logging
import subprocess
from pathlib import Path

from sona.core.binaries import find_binary, require_binary
from sona.core.constants import (
    CONVERT_TIMEOUT_SEC, PROBE_TIMEOUT_SEC,
    NORM_CHANNELS, NORM_SAMPLE_RATE, NORM_BITRATE, NORM_FORMAT,
)
from sona.core.error_codes import ConversionFailed
from sona.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)


def normalize_audio(input_path: Path, output_dir: Path,
                    timeout: int = CONVERT_TIMEOUT_SEC) -> Path:
    """
    Transcode any audio/video file to MP3 inside ``output_dir``.
    Returns path to the converted file.
    """
    ffmpeg = require_binary("ffmpeg")

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"converted.{NORM_FORMAT}"

    args = [
        ffmpeg,
        "-y",                           # overwrite
        "-i", str(input_path),
        "-vn",                          # drop any video stream
        "-ar", str(NORM_SAMPLE_RATE),
        "-ac", str(NORM_CHANNELS),
        "-b:a", NORM_BITRATE,
        "-f", NORM_FORMAT,
        str(output_path),
    ]

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise ConversionFailed(f"ffmpeg timed out after {timeout}s")
    except OSError as e:
        raise ConversionFailed(f"could not run ffmpeg: {e}")

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise ConversionFailed(f"ffmpeg failed (rc={result.returncode}): {stderr[-300:]}")

    if not output_path.exists() or output_path.stat().st_size == 0:
        raise ConversionFailed("converted file not created")

    logger.info("Converted audio: %s", output_path)
    return output_path


def get_audio_duration(audio_path: Path) -> float:
    """Get audio duration in seconds using ffprobe. 0.0 when unknown."""
    ffprobe = find_binary("ffprobe")
    if not ffprobe:
        return 0.0

    args = [
        ffprobe,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(audio_path),
    ]

    try:
        result = run_subprocess_capture(args, timeout=PROBE_TIMEOUT_SEC)
        if result.returncode == 0:
            return float(result.stdout.strip())
    except (OSError, ValueError, subprocess.TimeoutExpired) as e:
        logger.debug("ffprobe failed for %s: %s", audio_path, e)

    return 0.0
