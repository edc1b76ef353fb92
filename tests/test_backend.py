"""Tests for the native ffmpeg backend (subprocess mocked)."""

from unittest.mock import patch

import pytest

from cliptrim.backend import FFmpegBackend
from cliptrim.engine import TranscodeEngine
from cliptrim.errors import EngineInitError
from cliptrim.ffutil import FFmpegNotFoundError


@pytest.fixture
def loaded(tmp_path):
    backend = FFmpegBackend(work_dir=tmp_path / "ws")
    with patch("cliptrim.backend.ffutil.check_ffmpeg"):
        handle = backend.load()
    return backend, handle


class TestFFmpegBackend:
    def test_load_creates_workspace(self, loaded, tmp_path):
        _, handle = loaded
        assert handle.root == tmp_path / "ws"
        assert handle.root.is_dir()

    def test_file_roundtrip_and_delete(self, loaded):
        backend, handle = loaded
        backend.write_file(handle, "j_input.mp4", b"abc")
        assert backend.read_file(handle, "j_input.mp4") == b"abc"
        backend.delete_file(handle, "j_input.mp4")
        assert not (handle.root / "j_input.mp4").exists()
        # deleting something never staged is a no-op
        backend.delete_file(handle, "j_output.mp4")

    def test_names_cannot_escape_workspace(self, loaded):
        backend, handle = loaded
        with pytest.raises(ValueError, match="outside"):
            backend.write_file(handle, "../evil.mp4", b"x")

    @patch("cliptrim.backend.ffutil.run_ffmpeg")
    def test_exec_passes_progress_callback(self, mock_run, loaded):
        backend, handle = loaded
        seen = []
        backend.on_progress(handle, seen.append)
        backend.exec(handle, ["-i", "a.mp4", "b.mp4"])

        args, kwargs = mock_run.call_args
        assert args[0] == ["-i", "a.mp4", "b.mp4"]
        assert kwargs["cwd"] == handle.root
        kwargs["on_progress"](0.3)
        assert seen == [0.3]

    @patch("cliptrim.backend.ffutil.check_ffmpeg", side_effect=FFmpegNotFoundError("ffmpeg not found on PATH"))
    def test_missing_ffmpeg_is_engine_init_error(self, mock_check, tmp_path):
        engine = TranscodeEngine(FFmpegBackend(work_dir=tmp_path))
        with pytest.raises(EngineInitError, match="ffmpeg not found"):
            engine.acquire()
