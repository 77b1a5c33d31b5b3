"""
Standardised error handling for Sona.

Every failure inside the core is a JobError. The pipeline wraps whatever a
stage raised in a PipelineError carrying the stage name, so callers see one
value with one message.
"""

from sona.core.constants import ErrorCode, RETRYABLE_ERRORS

_BODY_PREVIEW = 300


class JobError(Exception):
    """Raised when a run encounters a known error condition."""

    def __init__(self, code: str, message: str, retryable: bool | None = None):
        self.code = code
        self.message = message
        # auto-detect retryable from code if not explicitly set
        self.retryable = retryable if retryable is not None else (code in RETRYABLE_ERRORS)
        super().__init__(f"[{code}] {message}")


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_ERRORS


# ── Acquisition / conversion / output ─────────────────────────────────

class SourceNotFound(JobError):
    def __init__(self, path):
        self.path = str(path)
        super().__init__(ErrorCode.SOURCE_NOT_FOUND, f"audio file not found: {self.path}")


class ToolMissing(JobError):
    def __init__(self, name: str, hint: str | None = None):
        self.name = name
        message = f"{name} not found"
        if hint:
            message += f" (install with: {hint})"
        super().__init__(ErrorCode.TOOL_MISSING, message)


class DownloadFailed(JobError):
    def __init__(self, message: str, timed_out: bool = False):
        code = ErrorCode.DOWNLOAD_TIMEOUT if timed_out else ErrorCode.DOWNLOAD_FAILED
        super().__init__(code, message)


class ConversionFailed(JobError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.CONVERSION_FAILED, message)


class OutputWriteFailed(JobError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.OUTPUT_FAILED, message)


# ── Remote protocol ───────────────────────────────────────────────────

class _HTTPStatusError(JobError):
    error_code = ""
    action = ""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body or ""
        preview = self.body[:_BODY_PREVIEW] if self.body else "No response body"
        # 5xx and 429 are worth re-running; anything else follows the code
        retryable = True if status_code >= 500 or status_code == 429 else None
        super().__init__(self.error_code, f"{self.action} failed with status {status_code}: {preview}",
                         retryable=retryable)


class UploadFailed(_HTTPStatusError):
    error_code = ErrorCode.UPLOAD_FAILED
    action = "upload"


class SubmitFailed(_HTTPStatusError):
    error_code = ErrorCode.SUBMIT_FAILED
    action = "transcript submission"


class PollFailed(_HTTPStatusError):
    error_code = ErrorCode.POLL_FAILED
    action = "status poll"


class PollTimeout(JobError):
    def __init__(self, job_id: str, attempts: int):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(ErrorCode.POLL_TIMEOUT,
                         f"transcript {job_id} not finished after {attempts} status checks")


class TranscriptionFailed(JobError):
    def __init__(self, error_message: str | None):
        self.error_message = error_message or "unknown error"
        super().__init__(ErrorCode.TRANSCRIPTION_FAILED, self.error_message)


# ── Pipeline wrapper ──────────────────────────────────────────────────

class PipelineError(JobError):
    """A stage failure as surfaced by TranscriptionPipeline.run()."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        if isinstance(cause, JobError):
            code, detail, retryable = cause.code, cause.message, cause.retryable
        else:
            code, detail, retryable = ErrorCode.UNEXPECTED, str(cause) or type(cause).__name__, False
        super().__init__(code, f"{stage} failed: {detail}", retryable=retryable)
