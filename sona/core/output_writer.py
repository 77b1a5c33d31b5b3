"""
Output writer: picks the transcript filename and writes the TXT file.

Default names are <sanitized-label>-<YYYYMMDD>.txt under the output root.
Two sources that sanitize to the same label on the same day share a path;
the later run overwrites the earlier file.
"""

import logging
import os
import tempfile
from datetime import date
from pathlib import Path

from sona.core.constants import DATE_SUFFIX_FORMAT, TRANSCRIPT_EXT
from sona.core.error_codes import OutputWriteFailed
from sona.core.models import SourceDescriptor, SourceKind, VideoMetadata
from sona.core.security_utils import sanitize_filename
from sona.core.url_parse import extract_video_id

logger = logging.getLogger(__name__)


def derive_source_label(source: SourceDescriptor, metadata: VideoMetadata | None = None) -> str:
    """
    Human label for a source: the video title, else the video id, for
    YouTube; the file name without extension for local files. May be ""
    when nothing usable exists (sanitizing turns that into 'transcript').
    """
    if source.kind is SourceKind.YOUTUBE:
        if metadata and metadata.title:
            return metadata.title
        return extract_video_id(source.value) or ""
    return Path(source.value).stem


def resolve_output_path(source_label: str, source_kind: SourceKind,
                        base_dir: Path, today: date | None = None) -> Path:
    """
    Build <base_dir>/<label>-<YYYYMMDD>.txt, creating base_dir if needed.
    ``source_kind`` is accepted for symmetry with derive_source_label; the
    naming rule is the same for both kinds once a label exists.
    """
    today = today or date.today()
    filename = f"{sanitize_filename(source_label)}-{today.strftime(DATE_SUFFIX_FORMAT)}{TRANSCRIPT_EXT}"

    base_dir = Path(base_dir).expanduser()
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteFailed(f"cannot create output directory {base_dir}: {e}")

    logger.debug("Resolved %s output for %r -> %s", source_kind.value, source_label, filename)
    return base_dir / filename


def write_transcript(text: str, output_file: Path) -> Path:
    """
    Write the transcript as UTF-8, replacing any existing file.
    The content lands via rename, so a failed write leaves nothing behind.
    """
    output_file = Path(output_file).expanduser()
    tmp_name = None
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        mode = _target_mode(output_file)
        fd, tmp_name = tempfile.mkstemp(dir=output_file.parent, prefix=".sona-", suffix=".part")
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        # mkstemp files are 0600; transcripts are ordinary user files
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, output_file)
        tmp_name = None
    except OSError as e:
        raise OutputWriteFailed(f"failed to write transcript file {output_file}: {e}")
    finally:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info("Wrote transcript: %s (%d chars)", output_file, len(text))
    return output_file


def _target_mode(output_file: Path) -> int:
    """Keep an existing file's mode; new files get 0666 minus the umask."""
    try:
        return output_file.stat().st_mode & 0o777
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask
