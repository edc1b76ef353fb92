"""Transcoding backend capability and its native ffmpeg implementation."""

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol

from cliptrim import ffutil

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Any], None]


class Backend(Protocol):
    """The narrow interface the engine facade drives."""

    def load(self) -> Any: ...

    def write_file(self, handle: Any, name: str, data: bytes) -> None: ...

    def exec(self, handle: Any, args: list[str]) -> None: ...

    def read_file(self, handle: Any, name: str) -> bytes: ...

    def delete_file(self, handle: Any, name: str) -> None: ...

    def on_progress(self, handle: Any, callback: ProgressCallback | None) -> None: ...


@dataclass
class FFmpegWorkspace:
    """A loaded ffmpeg backend: a private directory plus the progress hook."""

    root: Path
    progress_callback: ProgressCallback | None = field(default=None, repr=False)

    def path_for(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"{name!r} is outside the engine workspace")
        return path


class FFmpegBackend:
    """Runs the ffmpeg binary against files in a private temp directory."""

    def __init__(self, work_dir: Path | None = None):
        self._work_dir = work_dir

    def load(self) -> FFmpegWorkspace:
        ffutil.check_ffmpeg()
        root = self._work_dir or Path(tempfile.mkdtemp(prefix="cliptrim_"))
        root.mkdir(parents=True, exist_ok=True)
        logger.info("ffmpeg workspace at %s", root)
        return FFmpegWorkspace(root=root)

    def write_file(self, handle: FFmpegWorkspace, name: str, data: bytes) -> None:
        handle.path_for(name).write_bytes(data)

    def exec(self, handle: FFmpegWorkspace, args: list[str]) -> None:
        ffutil.run_ffmpeg(args, cwd=handle.root, on_progress=handle.progress_callback)

    def read_file(self, handle: FFmpegWorkspace, name: str) -> bytes:
        return handle.path_for(name).read_bytes()

    def delete_file(self, handle: FFmpegWorkspace, name: str) -> None:
        handle.path_for(name).unlink(missing_ok=True)

    def on_progress(self, handle: FFmpegWorkspace, callback: ProgressCallback | None) -> None:
        handle.progress_callback = callback
