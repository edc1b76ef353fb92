"""Tests for manifest loading and settings."""

import json
from pathlib import Path

import pytest

from cliptrim.manifest import (
    EncodeSettings,
    Manifest,
    MiB,
    TrimSettings,
    load_manifest,
)


class TestTrimSettings:
    def test_defaults(self):
        cfg = TrimSettings()
        assert cfg.max_size_bytes == 50 * MiB
        assert cfg.accepted_extensions == ("mp4", "avi", "mov", "webm", "mkv")
        assert cfg.acquire_timeout is None


class TestEncodeSettings:
    def test_defaults(self):
        cfg = EncodeSettings()
        assert cfg.preset == "veryfast"
        assert cfg.crf == 23
        assert cfg.audio_bitrate == "128k"
        assert cfg.mpeg4_quality == 3


class TestManifest:
    def test_minimal(self):
        m = Manifest(input=Path("in.mov"))
        assert m.version == "1"
        assert m.start == 0 and m.end == 0
        assert m.resolved_output() == Path("in_trim.mp4")

    def test_explicit_output(self):
        m = Manifest(input=Path("a/in.mov"), output=Path("b/out.mp4"))
        assert m.resolved_output() == Path("b/out.mp4")


class TestLoadManifest:
    def test_load_sample(self, sample_manifest_path):
        m = load_manifest(sample_manifest_path)
        assert m.input == Path("clips/holiday.mov")
        assert m.output == Path("clips/holiday_short.mp4")
        assert m.start == 5
        assert m.end == 75
        assert m.settings.max_size_bytes == 100 * MiB
        assert m.settings.accepted_extensions == ("mov", "mp4")
        assert m.settings.acquire_timeout == 30
        assert m.encode.preset == "fast"
        assert m.encode.crf == 20
        assert m.encode.mpeg4_quality == 3

    def test_minimal_json(self, tmp_path):
        p = tmp_path / "m.json"
        p.write_text(json.dumps({"input": "v.mkv"}))
        m = load_manifest(p)
        assert m.output is None
        assert m.resolved_output() == Path("v_trim.mp4")
        assert m.settings == TrimSettings()

    def test_missing_input(self, tmp_path):
        p = tmp_path / "m.json"
        p.write_text(json.dumps({"output": "o.mp4"}))
        with pytest.raises(ValueError, match="input"):
            load_manifest(p)
