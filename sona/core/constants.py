"""
Shared constants for Sona.
Single source of truth, imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "sona"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

DEFAULT_OUTPUT_ROOT = HOME / "sona"
APP_SUPPORT_DIR = HOME / ".sona"
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"
LOG_PATH = APP_SUPPORT_DIR / "sona.log"
USER_BIN_DIR = HOME / "bin"

TEMP_DIR_PREFIX = "sona-"

# ── Remote transcription service (AssemblyAI) ─────────────────────────
ASSEMBLYAI_API_BASE = "https://api.assemblyai.com/v2"
API_KEY_ENV = "ASSEMBLYAI_API_KEY"
DEFAULT_SPEECH_MODEL = "slam-1"
SPEECH_MODELS = ("slam-1", "best", "nano")

POLL_INTERVAL_SEC = 3
MAX_POLL_ATTEMPTS = 100        # ≈ 5 minutes at 3s
HTTP_TIMEOUT_SEC = 60
MIN_UPLOAD_TIMEOUT_SEC = 120

# ── Subprocess deadlines ──────────────────────────────────────────────
DOWNLOAD_TIMEOUT_SEC = 300
METADATA_TIMEOUT_SEC = 30
CONVERT_TIMEOUT_SEC = 600
PROBE_TIMEOUT_SEC = 30

# Normalization target
NORM_SAMPLE_RATE = 44100
NORM_CHANNELS = 2
NORM_BITRATE = "192k"
NORM_FORMAT = "mp3"

# ── Source classification ─────────────────────────────────────────────
YOUTUBE_HOST_MARKERS = ("youtube.com", "youtu.be")
YOUTUBE_PATH_PREFIXES = ("watch", "shorts", "embed", "v", "live")

# ── Output naming ─────────────────────────────────────────────────────
UNSAFE_FILENAME_CHARS = r'[\\/:*?"<>|\x00-\x1f]'
MAX_LABEL_LEN = 40
FALLBACK_LABEL = "transcript"
DATE_SUFFIX_FORMAT = "%Y%m%d"
TRANSCRIPT_EXT = ".txt"

# ── Pipeline stages (used in error messages) ──────────────────────────
class Stage:
    SOURCE = "source"
    WORKSPACE = "workspace"
    DOWNLOAD = "download"
    CONVERT = "convert"
    TRANSCRIPTION = "transcription"
    OUTPUT = "output"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Acquisition
    SOURCE_NOT_FOUND = "ERR_SOURCE_NOT_FOUND"
    EMPTY_AUDIO = "ERR_EMPTY_AUDIO"
    TOOL_MISSING = "ERR_TOOL_MISSING"
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    DOWNLOAD_TIMEOUT = "ERR_DOWNLOAD_TIMEOUT"

    # Conversion
    CONVERSION_FAILED = "ERR_CONVERSION_FAILED"

    # Protocol
    UPLOAD_FAILED = "ERR_UPLOAD_FAILED"
    SUBMIT_FAILED = "ERR_SUBMIT_FAILED"
    POLL_FAILED = "ERR_POLL_FAILED"
    POLL_TIMEOUT = "ERR_POLL_TIMEOUT"
    TRANSCRIPTION_FAILED = "ERR_TRANSCRIPTION_FAILED"
    BAD_RESPONSE = "ERR_BAD_RESPONSE"
    NETWORK_TRANSIENT = "ERR_NETWORK_TRANSIENT"
    API_KEY_MISSING = "ERR_API_KEY_MISSING"

    # Output
    OUTPUT_FAILED = "ERR_OUTPUT_FAILED"

    UNEXPECTED = "ERR_UNEXPECTED"

# Errors where re-running the same command has a fair chance of succeeding.
# The core never retries on its own.
RETRYABLE_ERRORS = {
    ErrorCode.DOWNLOAD_FAILED,
    ErrorCode.DOWNLOAD_TIMEOUT,
    ErrorCode.NETWORK_TRANSIENT,
    ErrorCode.POLL_FAILED,
    ErrorCode.POLL_TIMEOUT,
}

# ── Tooling ───────────────────────────────────────────────────────────
INSTALL_HINTS = {
    "yt-dlp": "brew install yt-dlp, or pip install yt-dlp",
    "ffmpeg": "brew install ffmpeg, or your package manager's ffmpeg",
    "ffprobe": "ships with ffmpeg",
}

EXTRA_PATH_DIRS = [
    "/opt/homebrew/bin",          # Apple Silicon default
    "/opt/homebrew/sbin",
    "/usr/local/bin",             # Intel Mac default
    "/usr/local/sbin",
    str(USER_BIN_DIR),
]
