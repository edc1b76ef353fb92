"""Error taxonomy for trim jobs.

Every error carries a ``user_message`` that the UI collaborators display as-is.
Validation and encode failures get their own message; transient engine and IO
failures share the generic one.
"""

from enum import Enum

GENERIC_MESSAGE = "Processing failed. Try another file or different settings."


class ValidationReason(Enum):
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    INVALID_WINDOW = "invalid_window"


class TrimError(Exception):
    """Base class for everything a trim job can fail with."""

    user_message = GENERIC_MESSAGE


class ValidationError(TrimError):
    """User-correctable problem with the request. Never retried."""

    reason: ValidationReason

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.user_message)
        self.detail = detail


class FileTooLargeError(ValidationError):
    reason = ValidationReason.FILE_TOO_LARGE
    user_message = "The file exceeds 50MB. Please choose a smaller file."


class UnsupportedFormatError(ValidationError):
    reason = ValidationReason.UNSUPPORTED_FORMAT
    user_message = "Supported formats: MP4, AVI, MOV, WebM, MKV."


class InvalidWindowError(ValidationError):
    reason = ValidationReason.INVALID_WINDOW
    user_message = "Invalid trim bounds. Check the start and end times."


class EngineInitError(TrimError):
    """The transcoding backend could not be loaded. A later job may retry."""


class EngineIOError(TrimError):
    """Staging the input or reading the output failed."""


class EngineBusyError(TrimError):
    """Another job holds the engine and the wait timed out."""


class EncodeError(TrimError):
    """An encode attempt failed; surfaced once the whole chain is exhausted."""

    user_message = "Could not encode the video to MP4. Try another file."

    def __init__(self, attempt_label: str, detail: str = ""):
        msg = f"encode attempt {attempt_label!r} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.attempt_label = attempt_label
