"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import shutil
import subprocess
from collections import deque
from pathlib import Path
from typing import Callable

from cliptrim.models import ProbeResult

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path) -> ProbeResult:
    """Extract media metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(
        cmd, capture_output=True, encoding="utf-8", errors="replace", check=True
    )
    data = json.loads(result.stdout)

    video_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "video"), None
    )
    audio_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "audio"), None
    )

    if video_stream is None:
        raise ValueError(f"No video stream found in {input_path}")

    # Parse fps from r_frame_rate (e.g. "30/1")
    num, den = video_stream.get("r_frame_rate", "0/1").split("/")
    fps = int(num) / int(den) if int(den) else 0.0

    return ProbeResult(
        duration=float(data["format"].get("duration", 0.0)),
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        fps=fps,
        codec_video=video_stream["codec_name"],
        audio_sample_rate=int(audio_stream["sample_rate"]) if audio_stream else None,
        codec_audio=audio_stream["codec_name"] if audio_stream else None,
    )


def _clock_to_seconds(value: str) -> float | None:
    parts = value.split(":")
    if len(parts) != 3:
        return None
    try:
        h, m, s = int(parts[0]), int(parts[1]), float(parts[2])
    except ValueError:
        return None
    return h * 3600 + m * 60 + s


def parse_progress_line(line: str, total: float | None) -> float | None:
    """Turn one ``-progress`` key=value line into a completion ratio.

    Returns None for lines that carry no usable position, or when *total* is
    unknown. The ratio is not clamped; ffmpeg's out_time can overshoot.
    """
    line = line.strip()
    if "=" not in line:
        return None
    key, value = (p.strip() for p in line.split("=", 1))

    if key == "progress" and value == "end":
        return 1.0
    if not total or total <= 0:
        return None

    if key in ("out_time_us", "out_time_ms"):
        # out_time_ms is in microseconds too (long-standing ffmpeg quirk)
        try:
            seconds = int(value) / 1_000_000
        except ValueError:
            return None
    elif key == "out_time":
        seconds = _clock_to_seconds(value)
        if seconds is None:
            return None
    else:
        return None
    return seconds / total


def expected_duration(args: list[str]) -> float | None:
    """Output duration implied by a ``-t`` argument, if any."""
    if "-t" not in args:
        return None
    i = args.index("-t")
    if i + 1 >= len(args):
        return None
    value = args[i + 1]
    seconds = _clock_to_seconds(value) if ":" in value else None
    if seconds is not None:
        return seconds
    try:
        return float(value)
    except ValueError:
        return None


def run_ffmpeg(
    args: list[str],
    cwd: Path,
    on_progress: Callable[[float], None] | None = None,
) -> None:
    """Run ffmpeg with *args* inside *cwd*, streaming progress ratios.

    Raises subprocess.CalledProcessError (with the tail of ffmpeg's output as
    ``stderr``) on a non-zero exit.
    """
    cmd = [
        "ffmpeg", "-hide_banner", "-nostdin", "-y",
        "-progress", "pipe:1", "-nostats",
        *args,
    ]
    logger.debug("Running: %s", " ".join(cmd))
    total = expected_duration(args)
    tail: deque[str] = deque(maxlen=40)

    process = subprocess.Popen(
        cmd,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        # metadata tags are often not UTF-8
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )
    assert process.stdout is not None
    with process:
        for line in process.stdout:
            ratio = parse_progress_line(line, total)
            if ratio is not None:
                if on_progress:
                    on_progress(ratio)
            elif line.strip():
                tail.append(line.rstrip())
        returncode = process.wait()

    if returncode != 0:
        raise subprocess.CalledProcessError(
            returncode, cmd, output=None, stderr="\n".join(tail)
        )
