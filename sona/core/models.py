"""
Data models (plain dataclasses) for Sona.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from sona.core.constants import DEFAULT_SPEECH_MODEL

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    YOUTUBE = "youtube"
    LOCAL = "local"


@dataclass(frozen=True)
class SourceDescriptor:
    kind: SourceKind
    value: str                       # URL or filesystem path

    @property
    def is_youtube(self) -> bool:
        return self.kind is SourceKind.YOUTUBE


@dataclass(frozen=True)
class AudioAsset:
    path: Path
    origin: SourceDescriptor
    is_temporary: bool = False


@dataclass(frozen=True)
class VideoMetadata:
    title: Optional[str] = None
    duration: Optional[float] = None  # seconds


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERRORED = "error"
    UNKNOWN = "unknown"              # anything the service adds later

    @classmethod
    def parse(cls, value: str | None) -> "JobStatus":
        try:
            return cls(value or "")
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERRORED)


# Progress order; terminal states share the top rank
_STATUS_RANK = {
    JobStatus.QUEUED: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.ERRORED: 2,
}


@dataclass
class TranscriptionJob:
    """
    One outstanding remote transcript request.
    Only apply() changes it, and only forward.
    """
    id: str
    status: JobStatus = JobStatus.QUEUED
    text: Optional[str] = None
    error_message: Optional[str] = None
    raw_status: str = ""
    history: list[JobStatus] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def apply(self, payload: dict) -> JobStatus:
        """Fold one status response into the job. Returns the observed status."""
        self.raw_status = str(payload.get("status") or "")
        observed = JobStatus.parse(self.raw_status)
        self.history.append(observed)

        if self.is_terminal or observed is JobStatus.UNKNOWN:
            return observed

        if _STATUS_RANK[observed] < _STATUS_RANK[self.status]:
            logger.debug("Ignoring status regression %s -> %s for transcript %s",
                         self.status.value, observed.value, self.id)
            return observed

        self.status = observed
        if observed is JobStatus.COMPLETED:
            self.text = payload.get("text") or ""
        elif observed is JobStatus.ERRORED:
            self.error_message = payload.get("error") or None
        return observed


@dataclass(frozen=True)
class TranscriptOutput:
    text: str
    source_label: str
    source_kind: SourceKind
    destination_path: Path


@dataclass(frozen=True)
class RunOptions:
    """Per-run settings, passed by value into TranscriptionPipeline.run()."""
    model: str = DEFAULT_SPEECH_MODEL
    output_path: Optional[Path] = None
    convert_local: bool = True
