"""
Error Handling Module
=====================
Custom exceptions and error kinds for Docucast.
Provides consistent error codes and messages for submission, remote
conversion and playback failures.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ErrorCode(Enum):
    """Error codes for Docucast."""
    # Submission errors (E001-E099)
    E001 = "Invalid source document"
    E002 = "A conversion is already running"
    E003 = "Missing API credentials"

    # Remote service errors (E100-E199)
    E100 = "Remote service unreachable"
    E101 = "Remote service rejected the request"
    E102 = "Malformed remote response"

    # Playback errors (E200-E299)
    E200 = "Audio load failed"
    E201 = "Audio is already loading"


class JobErrorKind(str, Enum):
    """Why a conversion job ended in the failed state."""

    UNREACHABLE = "unreachable"
    REMOTE = "remote"
    MALFORMED_RESPONSE = "malformed_response"


class PlaybackErrorKind(str, Enum):
    """Playback problems surfaced to the UI."""

    LOAD_FAILED = "load_failed"
    INVALID_SEEK_TARGET = "invalid_seek_target"


@dataclass
class DocucastError(Exception):
    """Base exception for Docucast with error codes."""
    code: ErrorCode
    message: str
    details: Optional[str] = None

    def __str__(self) -> str:
        base = f"[{self.code.name}] {self.code.value}: {self.message}"
        if self.details:
            base += f" ({self.details})"
        return base


class SubmitError(DocucastError):
    """A conversion request was refused before reaching the remote service."""


class InvalidSourceError(SubmitError):
    """Source reference cannot be resolved to a readable URL or file."""
    def __init__(self, message: str, source: str = None):
        super().__init__(
            code=ErrorCode.E001,
            message=message,
            details=source
        )


class AlreadyRunningError(SubmitError):
    """Raised when a job is already submitting or in progress."""
    def __init__(self, job_id: str = None):
        super().__init__(
            code=ErrorCode.E002,
            message="Wait for the active conversion to finish or cancel it",
            details=f"Active job: {job_id}" if job_id else None
        )


class MissingCredentialsError(SubmitError):
    """Raised when the remote client has no API key or user id."""
    def __init__(self, missing: str = None):
        super().__init__(
            code=ErrorCode.E003,
            message="Set PLAYHT_API_KEY and PLAYHT_USER_ID before converting",
            details=f"Missing: {missing}" if missing else None
        )


class RemoteServiceError(DocucastError):
    """Transient remote failure (network, timeout, 5xx). Safe to retry."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(
            code=ErrorCode.E100,
            message=message,
            details=f"HTTP {status_code}" if status_code else None
        )
        self.status_code = status_code


class RemoteRejectedError(DocucastError):
    """The remote service refused the request. Retrying will not help."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(
            code=ErrorCode.E101,
            message=message,
            details=f"HTTP {status_code}" if status_code else None
        )
        self.status_code = status_code


class MalformedResponseError(DocucastError):
    """The remote response could not be interpreted."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E102,
            message=message,
            details=details
        )


class AudioLoadError(DocucastError):
    """Audio metadata could not be resolved."""
    def __init__(self, message: str, source: str = None):
        super().__init__(
            code=ErrorCode.E200,
            message=message,
            details=source
        )


class PlaybackBusyError(DocucastError):
    """Raised when load() is called while a previous load is pending."""
    def __init__(self, source: str = None):
        super().__init__(
            code=ErrorCode.E201,
            message="Wait for the current audio to finish loading",
            details=source
        )


@dataclass(frozen=True)
class PlaybackError:
    """UI-visible playback problem carried in the playback state."""
    kind: PlaybackErrorKind
    message: str
