"""JSON manifest schema — the contract between CLI/web UI and the trim job."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from cliptrim import timecode
from cliptrim.models import build_download_name

MiB = 1024 * 1024


@dataclass
class TrimSettings:
    """Limits applied by the bounds validator and the engine guard."""

    max_size_bytes: int = 50 * MiB
    accepted_extensions: tuple[str, ...] = ("mp4", "avi", "mov", "webm", "mkv")
    # None waits for a busy engine; a number of seconds raises EngineBusyError.
    acquire_timeout: float | None = None


@dataclass
class EncodeSettings:
    """Encoder parameters for the re-encode attempts."""

    preset: str = "veryfast"
    crf: int = 23
    audio_bitrate: str = "128k"
    mpeg4_quality: int = 3


@dataclass
class Manifest:
    """Top-level trim manifest."""

    input: Path
    output: Path | None = None
    start: int = 0
    end: int = 0
    version: str = "1"
    settings: TrimSettings = field(default_factory=TrimSettings)
    encode: EncodeSettings = field(default_factory=EncodeSettings)

    def resolved_output(self) -> Path:
        if self.output is not None:
            return self.output
        return self.input.with_name(build_download_name(self.input.name))


def _load_settings(data: dict) -> TrimSettings:
    if "accepted_extensions" in data:
        data = dict(data)
        data["accepted_extensions"] = tuple(
            e.lower().lstrip(".") for e in data["accepted_extensions"]
        )
    return TrimSettings(**data)


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data:
        raise ValueError("Manifest must contain an 'input' field")

    settings = _load_settings(data["settings"]) if "settings" in data else TrimSettings()
    encode = EncodeSettings(**data["encode"]) if "encode" in data else EncodeSettings()

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]) if data.get("output") else None,
        start=timecode.parse(data.get("start")),
        end=timecode.parse(data.get("end")),
        settings=settings,
        encode=encode,
    )
