"""Encode strategies and the fallback chain that tries them in order."""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from cliptrim import timecode
from cliptrim.errors import EncodeError
from cliptrim.manifest import EncodeSettings
from cliptrim.models import TrimRequest

logger = logging.getLogger(__name__)

# Width and height must be even for yuv420p H.264/MPEG-4 output.
EVEN_SCALE = "scale=trunc(iw/2)*2:trunc(ih/2)*2"


@dataclass(frozen=True)
class StagedNames:
    """Per-job names inside the engine's private namespace."""

    input: str
    output: str

    @classmethod
    def for_job(cls, job_id: str, extension: str) -> "StagedNames":
        ext = extension or "mp4"
        return cls(input=f"{job_id}_input.{ext}", output=f"{job_id}_output.mp4")

    def all(self) -> tuple[str, str]:
        return (self.input, self.output)


CommandBuilder = Callable[[TrimRequest, StagedNames, EncodeSettings], list[str]]


@dataclass(frozen=True)
class EncodeAttempt:
    label: str
    status_text: str
    is_stream_copy: bool
    build_command: CommandBuilder


def _cut_args(request: TrimRequest, names: StagedNames) -> list[str]:
    window = request.window
    return [
        "-i", names.input,
        "-ss", timecode.format(window.start),
        "-t", str(window.duration),
    ]


def _mp4_args(names: StagedNames) -> list[str]:
    return ["-movflags", "+faststart", "-f", "mp4", names.output]


def _stream_copy_command(
    request: TrimRequest, names: StagedNames, settings: EncodeSettings
) -> list[str]:
    return _cut_args(request, names) + ["-c", "copy"] + _mp4_args(names)


def _h264_command(
    request: TrimRequest, names: StagedNames, settings: EncodeSettings
) -> list[str]:
    return (
        _cut_args(request, names)
        + [
            "-vf", EVEN_SCALE,
            "-c:v", "libx264",
            "-preset", settings.preset,
            "-crf", str(settings.crf),
            "-c:a", "aac",
            "-b:a", settings.audio_bitrate,
        ]
        + _mp4_args(names)
    )


def _mpeg4_command(
    request: TrimRequest, names: StagedNames, settings: EncodeSettings
) -> list[str]:
    return (
        _cut_args(request, names)
        + [
            "-vf", EVEN_SCALE,
            "-c:v", "mpeg4",
            "-q:v", str(settings.mpeg4_quality),
            "-c:a", "aac",
            "-b:a", settings.audio_bitrate,
        ]
        + _mp4_args(names)
    )


STREAM_COPY = EncodeAttempt(
    label="stream-copy",
    status_text="Trimming (no re-encode)...",
    is_stream_copy=True,
    build_command=_stream_copy_command,
)

H264_REENCODE = EncodeAttempt(
    label="h264",
    status_text="Re-encoding to MP4 (x264)...",
    is_stream_copy=False,
    build_command=_h264_command,
)

MPEG4_REENCODE = EncodeAttempt(
    label="mpeg4",
    status_text="Re-encoding to MP4 (fallback)...",
    is_stream_copy=False,
    build_command=_mpeg4_command,
)

MP4_CHAIN: tuple[EncodeAttempt, ...] = (STREAM_COPY, H264_REENCODE, MPEG4_REENCODE)
REENCODE_CHAIN: tuple[EncodeAttempt, ...] = (H264_REENCODE, MPEG4_REENCODE)


def chain_for(extension: str) -> tuple[EncodeAttempt, ...]:
    """Return the attempts to try, in order, for an input extension.

    Only MP4 sources get a stream-copy attempt; other containers are re-encoded
    straight away.
    """
    if extension.lower() == "mp4":
        return MP4_CHAIN
    return REENCODE_CHAIN


def run_chain(
    chain: Sequence[EncodeAttempt],
    run_attempt: Callable[[EncodeAttempt], None],
    on_attempt: Callable[[int, EncodeAttempt], None] | None = None,
) -> EncodeAttempt:
    """Run attempts until one succeeds and return it.

    An ``EncodeError`` moves on to the next attempt. When every attempt has
    failed the last attempt's error is raised. Any other exception propagates
    immediately.
    """
    if not chain:
        raise ValueError("run_chain called with an empty chain")

    last_error: EncodeError | None = None
    for i, attempt in enumerate(chain):
        if on_attempt:
            on_attempt(i, attempt)
        try:
            run_attempt(attempt)
        except EncodeError as e:
            last_error = e
            if i < len(chain) - 1:
                logger.warning("Attempt %s failed, falling back: %s", attempt.label, e)
            continue
        return attempt

    assert last_error is not None
    raise last_error
