"""
YouTube metadata fetching via yt-dlp.
Best effort: a failed lookup never stops a run.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from sona.core.binaries import find_binary
from sona.core.constants import METADATA_TIMEOUT_SEC
from sona.core.models import VideoMetadata
from sona.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)


def fetch_metadata(video_url: str, cookies_path: Path | None = None,
                   timeout: int = METADATA_TIMEOUT_SEC) -> Optional[VideoMetadata]:
    """
    Fetch title and duration using yt-dlp --dump-json.
    Returns None (and logs a warning) on any failure.
    """
    ytdlp = find_binary("yt-dlp")
    if not ytdlp:
        logger.warning("Metadata lookup skipped: yt-dlp not found")
        return None

    args = [
        ytdlp,
        "--dump-json",
        "--no-playlist",
        "--skip-download",
    ]
    if cookies_path and cookies_path.exists():
        args.extend(["--cookies", str(cookies_path)])
    args.append(video_url)

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Metadata lookup timed out after %ss: %s", timeout, video_url)
        return None
    except OSError as e:
        logger.warning("Metadata lookup failed to start: %s", e)
        return None

    if result.returncode != 0:
        stderr = result.stderr or ""
        logger.warning("Metadata lookup failed (rc=%d): %s", result.returncode, stderr[:300])
        return None

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse yt-dlp JSON: %s", e)
        return None

    return parse_metadata(data)


def parse_metadata(data: dict) -> VideoMetadata:
    title = data.get('title') or None
    try:
        duration = float(data['duration']) if data.get('duration') is not None else None
    except (TypeError, ValueError):
        duration = None
    return VideoMetadata(title=title, duration=duration)


def format_duration(seconds: float | None) -> str:
    """1342 -> '22m 22s', 90 -> '1m 30s', 120 -> '2m', 45 -> '45s'."""
    if seconds is None:
        return "unknown"
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes:
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    return f"{secs}s"
