"""
Diagnostics: tool detection and system checks for `sona status`.
"""

import logging
import subprocess
import tempfile
from pathlib import Path

from sona.core.binaries import find_binary
from sona.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)


def get_tool_version(name: str, version_flag: str) -> str:
    """Return a tool's version string, or an error description."""
    path = find_binary(name)
    if not path:
        return "Not installed"
    try:
        result = run_subprocess_capture([path, version_flag], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "unknown"
        return f"Error (rc={result.returncode})"
    except (OSError, subprocess.TimeoutExpired) as e:
        return f"Error: {e}"


def get_ytdlp_version() -> str:
    return get_tool_version("yt-dlp", "--version")


def get_ffmpeg_version() -> str:
    return get_tool_version("ffmpeg", "-version")


def check_output_dir(output_root: Path) -> dict:
    """Report whether the output directory exists and accepts writes."""
    info = {"path": str(output_root), "exists": output_root.is_dir(), "writable": False}
    if info["exists"]:
        try:
            with tempfile.NamedTemporaryFile(dir=output_root, prefix=".sona-check-"):
                pass
            info["writable"] = True
        except OSError as e:
            logger.debug("Output dir not writable: %s", e)
    return info


def get_diagnostics(output_root: Path, api_key: str | None) -> dict:
    """Gather all diagnostic information."""
    return {
        "ytdlp_path": find_binary("yt-dlp"),
        "ytdlp_version": get_ytdlp_version(),
        "ffmpeg_path": find_binary("ffmpeg"),
        "ffmpeg_version": get_ffmpeg_version(),
        "ffprobe_path": find_binary("ffprobe"),
        "api_key_configured": bool(api_key),
        "output_dir": check_output_dir(output_root),
    }
