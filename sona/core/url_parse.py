"""
Source classification and YouTube video-id extraction.
"""

from urllib.parse import urlparse, parse_qs

from sona.core.constants import YOUTUBE_HOST_MARKERS, YOUTUBE_PATH_PREFIXES
from sona.core.models import SourceDescriptor, SourceKind


def is_youtube_url(value: str) -> bool:
    """Substring check against known video-host domains."""
    return any(marker in value for marker in YOUTUBE_HOST_MARKERS)


def classify_source(raw: str) -> SourceDescriptor:
    """Pure classification of user input into a YouTube or local source."""
    value = raw.strip()
    kind = SourceKind.YOUTUBE if is_youtube_url(value) else SourceKind.LOCAL
    return SourceDescriptor(kind=kind, value=value)


def extract_video_id(url: str) -> str | None:
    """
    Pull the video identifier out of a YouTube URL.
    The ``v=`` query parameter wins; otherwise the path segment after
    /watch/, /shorts/ etc., or the first segment of a youtu.be link.
    """
    url = url.strip()
    if not url:
        return None
    if "://" not in url:
        url = "https://" + url

    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    v = parse_qs(parsed.query).get('v', [None])[0]
    if v:
        return v

    segments = [s for s in parsed.path.split('/') if s]
    if 'youtu.be' in parsed.netloc and segments:
        return segments[0]

    for i, segment in enumerate(segments[:-1]):
        if segment in YOUTUBE_PATH_PREFIXES:
            return segments[i + 1]

    return None
