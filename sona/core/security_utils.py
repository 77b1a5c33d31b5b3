"""
Security utilities for Sona.
- Filename sanitization
- Safe subprocess execution (argument arrays only)
- API key masking for display
"""

import re
import subprocess
import logging

from sona.core.constants import (
    UNSAFE_FILENAME_CHARS,
    MAX_LABEL_LEN,
    FALLBACK_LABEL,
)

logger = logging.getLogger(__name__)


# ── Filename safety ───────────────────────────────────────────────────

def sanitize_filename(name: str) -> str:
    """
    Turn an arbitrary label into a short, lower-case, hyphenated filename
    fragment. Never empty, never longer than MAX_LABEL_LEN, and
    sanitize_filename(sanitize_filename(x)) == sanitize_filename(x).
    """
    safe = re.sub(UNSAFE_FILENAME_CHARS, '-', name or "")
    safe = safe.replace(' ', '-').replace('_', '-')
    safe = re.sub(r'-{2,}', '-', safe)
    safe = _trim(safe).lower()
    # Truncate last, then trim again so a cut never leaves a dangling hyphen
    safe = _trim(safe[:MAX_LABEL_LEN])
    return safe or FALLBACK_LABEL


def _trim(value: str) -> str:
    return re.sub(r'^[\s-]+|[\s-]+$', '', value)


def mask_api_key(api_key: str | None) -> str:
    if not api_key or len(api_key) <= 8:
        return "***"
    return f"{api_key[:4]}...{api_key[-4:]}"


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    # Force shell=False: remove any caller-supplied value, then set it once
    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr. TimeoutExpired propagates."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )
