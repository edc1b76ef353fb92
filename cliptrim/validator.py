"""Bounds validation for a requested trim window."""

import math

from cliptrim.errors import FileTooLargeError, InvalidWindowError, UnsupportedFormatError
from cliptrim.manifest import TrimSettings
from cliptrim.models import MediaDescriptor, TimeWindow, TrimRequest

DEFAULT_SETTINGS = TrimSettings()


def validate_media(media: MediaDescriptor, settings: TrimSettings = DEFAULT_SETTINGS) -> None:
    """File-level checks, usable as soon as a file is selected."""
    if media.size_bytes > settings.max_size_bytes:
        raise FileTooLargeError(
            f"{media.name}: {media.size_bytes} bytes exceeds {settings.max_size_bytes}"
        )
    if media.extension not in settings.accepted_extensions:
        raise UnsupportedFormatError(f"{media.name}: extension {media.extension!r}")


def validate(request: TrimRequest, settings: TrimSettings = DEFAULT_SETTINGS) -> TimeWindow:
    """Check *request* against the file constraints and return the normalized window.

    Rules run in a fixed order so that, for example, an oversized file is
    reported as too large before its extension is looked at. When the duration
    is known, an end of 0 means "trim to the end of the file".
    """
    media = request.media
    start, end = request.window.start, request.window.end

    validate_media(media, settings)

    duration = media.duration_seconds if media.duration_known else None
    if duration is not None and end == 0:
        end = math.ceil(duration)

    if start < 0:
        raise InvalidWindowError(f"start {start} is negative")
    if end <= 0:
        raise InvalidWindowError(f"end {end} is not positive")
    if duration is not None:
        if start >= duration:
            raise InvalidWindowError(f"start {start} is past the end ({duration:.3f}s)")
        if end > math.ceil(duration):
            raise InvalidWindowError(f"end {end} is past the end ({duration:.3f}s)")
    if start >= end:
        raise InvalidWindowError(f"start {start} is not before end {end}")

    return TimeWindow(start=start, end=end)
