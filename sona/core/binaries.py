"""
Locating the external tools (yt-dlp, ffmpeg, ffprobe).
"""

import logging
import os
import shutil
from pathlib import Path

from sona.core import constants
from sona.core.constants import INSTALL_HINTS
from sona.core.error_codes import ToolMissing

logger = logging.getLogger(__name__)


def find_binary(name: str) -> str | None:
    """Return an executable path for ``name`` from PATH or ~/bin, else None."""
    path = shutil.which(name)
    if path:
        return path

    candidate = Path(constants.USER_BIN_DIR) / name
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate)

    return None


def require_binary(name: str) -> str:
    """Like find_binary, but raises ToolMissing with an install hint."""
    path = find_binary(name)
    if not path:
        logger.error("%s not found. PATH = %s", name, os.environ.get("PATH", ""))
        raise ToolMissing(name, INSTALL_HINTS.get(name))
    return path


def extend_path(dirs: list[str]):
    """Prepend existing directories to PATH for this process."""
    current = os.environ.get("PATH", "")
    parts = current.split(os.pathsep) if current else []
    for d in reversed(dirs):
        if os.path.isdir(d) and d not in parts:
            parts.insert(0, d)
    os.environ["PATH"] = os.pathsep.join(parts)
