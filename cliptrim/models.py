"""Shared data types used across cliptrim."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class TimeWindow:
    """A start/end pair in whole seconds.

    A window coming from user input may be empty or inverted; the validator
    only ever returns windows with ``0 <= start < end``.
    """

    start: int
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class MediaDescriptor:
    """The selected source file. Replaced wholesale on a new selection."""

    name: str
    size_bytes: int
    extension: str
    duration_seconds: float = 0.0

    @classmethod
    def from_filename(
        cls, name: str, size_bytes: int, duration_seconds: float = 0.0
    ) -> "MediaDescriptor":
        ext = name.rsplit(".", 1)[1].lower() if "." in name else ""
        return cls(
            name=name,
            size_bytes=size_bytes,
            extension=ext,
            duration_seconds=max(0.0, float(duration_seconds or 0.0)),
        )

    @property
    def duration_known(self) -> bool:
        return self.duration_seconds > 0


@dataclass(frozen=True)
class TrimRequest:
    media: MediaDescriptor
    window: TimeWindow

    def with_window(self, window: TimeWindow) -> "TrimRequest":
        return replace(self, window=window)


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float
    codec_video: str
    audio_sample_rate: int | None = None
    codec_audio: str | None = None


def build_download_name(original_name: str) -> str:
    """``clip.final.mov`` -> ``clip.final_trim.mp4``."""
    name = original_name or "video"
    dot = name.rfind(".")
    base = name[:dot] if dot > 0 else name
    return base + "_trim.mp4"
