"""Tests for the CLI trim command."""

from pathlib import Path
from unittest.mock import patch

from cliptrim.cli import run_trim
from cliptrim.errors import FileTooLargeError, UnsupportedFormatError
from cliptrim.manifest import Manifest, TrimSettings
from cliptrim.models import ProbeResult


def _probe(duration: float) -> ProbeResult:
    return ProbeResult(duration=duration, width=640, height=360, fps=30.0, codec_video="h264")


class TestRunTrim:
    @patch("cliptrim.cli.ffutil.probe")
    def test_writes_trimmed_output(self, mock_probe, tmp_path, engine, capsys):
        mock_probe.return_value = _probe(30.0)
        src = tmp_path / "clip.mp4"
        src.write_bytes(b"source")

        with patch("cliptrim.job.get_engine", return_value=engine):
            rc = run_trim(Manifest(input=src, start=5, end=15))

        assert rc == 0
        assert (tmp_path / "clip_trim.mp4").read_bytes() == b"mp4:copy"
        out = capsys.readouterr().out
        assert "00:00:05 -> 00:00:15" in out

    @patch("cliptrim.cli.ffutil.probe", side_effect=RuntimeError("no ffprobe"))
    def test_unknown_duration_needs_end(self, mock_probe, tmp_path, engine, capsys):
        src = tmp_path / "clip.mkv"
        src.write_bytes(b"source")

        with patch("cliptrim.job.get_engine", return_value=engine):
            rc = run_trim(Manifest(input=src, start=0, end=0))

        assert rc == 1
        assert "Invalid trim bounds" in capsys.readouterr().err
        assert not (tmp_path / "clip_trim.mp4").exists()

    def test_missing_input_is_a_clean_error(self, tmp_path, capsys):
        rc = run_trim(Manifest(input=tmp_path / "nope.mp4", start=0, end=5))

        assert rc == 1
        assert "input file not found" in capsys.readouterr().err

    @patch("cliptrim.cli.ffutil.probe")
    def test_oversize_rejected_before_reading(self, mock_probe, tmp_path, capsys):
        src = tmp_path / "big.mp4"
        src.write_bytes(b"x" * 64)
        manifest = Manifest(input=src, start=0, end=5, settings=TrimSettings(max_size_bytes=16))

        with patch.object(Path, "read_bytes") as mock_read:
            rc = run_trim(manifest)

        assert rc == 1
        assert FileTooLargeError.user_message in capsys.readouterr().err
        mock_read.assert_not_called()
        mock_probe.assert_not_called()

    def test_unsupported_extension_rejected_before_reading(self, tmp_path, capsys):
        src = tmp_path / "clip.flv"
        src.write_bytes(b"source")

        with patch.object(Path, "read_bytes") as mock_read:
            rc = run_trim(Manifest(input=src, start=0, end=5))

        assert rc == 1
        assert UnsupportedFormatError.user_message in capsys.readouterr().err
        mock_read.assert_not_called()
