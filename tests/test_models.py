"""Tests for the shared data types."""

import dataclasses

import pytest

from cliptrim.models import MediaDescriptor, TimeWindow, TrimRequest, build_download_name


class TestMediaDescriptor:
    def test_extension_lowercased(self):
        media = MediaDescriptor.from_filename("Holiday.Final.MOV", 1234, 12.5)
        assert media.extension == "mov"
        assert media.duration_known

    def test_no_extension(self):
        assert MediaDescriptor.from_filename("video", 1).extension == ""

    def test_unknown_duration(self):
        media = MediaDescriptor.from_filename("a.mp4", 1, None)
        assert media.duration_seconds == 0.0
        assert not media.duration_known

    def test_immutable(self):
        media = MediaDescriptor.from_filename("a.mp4", 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            media.size_bytes = 2


class TestTrimRequest:
    def test_with_window_copies(self):
        req = TrimRequest(MediaDescriptor.from_filename("a.mp4", 1), TimeWindow(0, 0))
        new = req.with_window(TimeWindow(0, 8))
        assert new.window.duration == 8
        assert req.window == TimeWindow(0, 0)
        assert new.media is req.media


class TestBuildDownloadName:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("clip.mp4", "clip_trim.mp4"),
            ("my.holiday.webm", "my.holiday_trim.mp4"),
            ("noext", "noext_trim.mp4"),
            (".hidden", ".hidden_trim.mp4"),
            ("", "video_trim.mp4"),
        ],
    )
    def test_names(self, name, expected):
        assert build_download_name(name) == expected
