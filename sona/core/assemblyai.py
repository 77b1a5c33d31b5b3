"""
AssemblyAI Speech-to-Text integration.

Three calls per file: upload the bytes, submit a transcript job for the
returned upload URL, then poll the job until it completes or errors.
No retries here; a failed call surfaces as a JobError subclass.
"""

import json
import logging
import time
from pathlib import Path
from typing import Callable

import requests

from sona.core.constants import (
    ErrorCode, ASSEMBLYAI_API_BASE, DEFAULT_SPEECH_MODEL,
    POLL_INTERVAL_SEC, MAX_POLL_ATTEMPTS, HTTP_TIMEOUT_SEC, MIN_UPLOAD_TIMEOUT_SEC,
)
from sona.core.error_codes import (
    JobError, SourceNotFound, UploadFailed, SubmitFailed, PollFailed, PollTimeout,
    TranscriptionFailed,
)
from sona.core.models import JobStatus, TranscriptionJob

logger = logging.getLogger(__name__)


def verify_api_key(api_key: str, base_url: str = ASSEMBLYAI_API_BASE) -> tuple[bool, str]:
    """
    Verify an AssemblyAI API key with a lightweight request.
    Returns (success: bool, message: str).
    """
    try:
        resp = requests.get(
            f"{base_url}/transcript",
            headers={"Authorization": api_key},
            params={"limit": 1},
            timeout=10,
        )
        if resp.status_code == 200:
            return True, "Key verified"
        elif resp.status_code in (401, 403):
            return False, "Key invalid or rejected"
        else:
            return False, f"Unexpected response: {resp.status_code}"
    except requests.exceptions.ConnectionError:
        return False, "Network error: could not reach AssemblyAI"
    except requests.exceptions.Timeout:
        return False, "Network error: request timed out"
    except requests.exceptions.RequestException as e:
        return False, f"Network error: {e}"


class AssemblyAIClient:
    """
    Blocking client for the upload → submit → poll protocol.

    ``poll_interval`` and ``max_poll_attempts`` bound the wait; tests pass
    ``poll_interval=0`` or a no-op ``sleep``.
    """

    def __init__(self, api_key: str,
                 base_url: str = ASSEMBLYAI_API_BASE,
                 poll_interval: float = POLL_INTERVAL_SEC,
                 max_poll_attempts: int = MAX_POLL_ATTEMPTS,
                 timeout: float = HTTP_TIMEOUT_SEC,
                 session: requests.Session | None = None,
                 sleep: Callable[[float], None] = time.sleep):
        if not api_key:
            raise JobError(ErrorCode.API_KEY_MISSING, "AssemblyAI API key not configured")
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    @property
    def _headers(self) -> dict:
        return {"Authorization": self.api_key}

    # ── Public API ────────────────────────────────────────────────────

    def transcribe(self, audio_path: Path, speech_model: str = DEFAULT_SPEECH_MODEL) -> str:
        """Run the full protocol for one file and return the transcript text."""
        upload_url = self.upload(audio_path)
        job = self.submit(upload_url, speech_model)
        logger.info("Submitted transcript %s (model=%s)", job.id, speech_model)

        job = self.poll(job)
        if job.status is JobStatus.ERRORED:
            raise TranscriptionFailed(job.error_message)
        return job.text or ""

    def upload(self, audio_path: Path) -> str:
        """Upload the file as multipart field ``file``. Returns the upload URL."""
        audio_path = Path(audio_path)
        if not audio_path.is_file():
            raise SourceNotFound(audio_path)
        file_size = audio_path.stat().st_size
        if file_size == 0:
            raise JobError(ErrorCode.EMPTY_AUDIO, f"audio file is empty: {audio_path}")

        # Adaptive timeout: ~1 min per 10MB, with a floor
        timeout_sec = max(MIN_UPLOAD_TIMEOUT_SEC, int(file_size / (10 * 1024 * 1024) * 60) + 60)
        logger.info("Uploading %s (%.2f MB)", audio_path.name, file_size / 1024 / 1024)

        with open(audio_path, 'rb') as f:
            resp = self._request(
                "post", "/upload",
                files={"file": (audio_path.name, f, "application/octet-stream")},
                timeout=timeout_sec,
            )

        if not resp.ok:
            raise UploadFailed(resp.status_code, resp.text)

        upload_url = self._json(resp).get("upload_url")
        if not upload_url:
            raise JobError(ErrorCode.BAD_RESPONSE, "upload response has no upload_url")
        return upload_url

    def submit(self, upload_url: str, speech_model: str) -> TranscriptionJob:
        """Create a transcript job for an uploaded file."""
        resp = self._request(
            "post", "/transcript",
            json={"audio_url": upload_url, "speech_model": speech_model},
        )
        if not resp.ok:
            raise SubmitFailed(resp.status_code, resp.text)

        payload = self._json(resp)
        job_id = payload.get("id")
        if not job_id:
            raise JobError(ErrorCode.BAD_RESPONSE, "transcript response has no id")

        job = TranscriptionJob(id=str(job_id))
        job.apply(payload)
        return job

    def fetch(self, job_id: str) -> dict:
        """One status fetch for a transcript job."""
        resp = self._request("get", f"/transcript/{job_id}")
        if not resp.ok:
            raise PollFailed(resp.status_code, resp.text)
        return self._json(resp)

    def poll(self, job: TranscriptionJob) -> TranscriptionJob:
        """
        Fetch status until the job is terminal, sleeping poll_interval
        between fetches. At most max_poll_attempts fetches, then PollTimeout.
        """
        if job.is_terminal:
            return job

        for attempt in range(1, self.max_poll_attempts + 1):
            observed = job.apply(self.fetch(job.id))

            if job.is_terminal:
                logger.info("Transcript %s finished: %s after %d checks",
                            job.id, job.status.value, attempt)
                return job

            if observed is JobStatus.UNKNOWN and job.raw_status:
                logger.warning("Unknown transcript status '%s' for %s, continuing...",
                               job.raw_status, job.id)
            else:
                logger.debug("Transcript %s is %s (check %d/%d)",
                             job.id, job.raw_status, attempt, self.max_poll_attempts)

            if attempt < self.max_poll_attempts:
                self._sleep(self.poll_interval)

        raise PollTimeout(job.id, self.max_poll_attempts)

    # ── Internals ─────────────────────────────────────────────────────

    def _request(self, method: str, path: str, timeout: float | None = None,
                 **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(
                method.upper(), url,
                headers=self._headers,
                timeout=timeout or self.timeout,
                **kwargs,
            )
        except requests.exceptions.Timeout:
            raise JobError(ErrorCode.NETWORK_TRANSIENT,
                           f"AssemblyAI request timed out ({method.upper()} {path})")
        except requests.exceptions.ConnectionError:
            raise JobError(ErrorCode.NETWORK_TRANSIENT,
                           "Network error connecting to AssemblyAI")
        except requests.exceptions.RequestException as e:
            raise JobError(ErrorCode.NETWORK_TRANSIENT, f"AssemblyAI request failed: {e}")

    @staticmethod
    def _json(resp: requests.Response) -> dict:
        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError):
            raise JobError(ErrorCode.BAD_RESPONSE, "Failed to parse AssemblyAI response JSON")
        if not isinstance(payload, dict):
            raise JobError(ErrorCode.BAD_RESPONSE, "Unexpected AssemblyAI response shape")
        return payload
