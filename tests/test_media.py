"""Tests for media module."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from aspectscan.media import (
    InvalidVideoFileError,
    VideoInfo,
    get_bit_depth_from_pix_fmt,
    parse_sample_aspect_ratio,
    parse_video_info,
)


def _proc(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc


def _ffprobe_json(stream: dict[str, object], duration: str | None = "6723.070000") -> str:
    fmt: dict[str, object] = {"duration": duration} if duration is not None else {}
    return json.dumps({"streams": [stream], "format": fmt})


def _media_info(bit_depth: object = None, duration: object = None) -> MagicMock:
    track = MagicMock()
    track.bit_depth = bit_depth
    track.duration = duration
    media_info = MagicMock()
    media_info.video_tracks = [track]
    return media_info


class TestGetBitDepthFromPixFmt:
    """Tests for bit depth extraction from pixel format."""

    def test_extracts_10bit_from_pix_fmt(self):
        """Test extracting 10-bit depth."""
        assert get_bit_depth_from_pix_fmt("yuv420p10le") == 10

    def test_defaults_to_8bit(self):
        """Test that formats without a suffix, or None, default to 8-bit."""
        assert get_bit_depth_from_pix_fmt("yuv420p") == 8
        assert get_bit_depth_from_pix_fmt(None) == 8

    def test_ignores_invalid_bit_depths(self):
        """Test that unsupported bit depths default to 8."""
        assert get_bit_depth_from_pix_fmt("yuv420p9le") == 8


class TestParseSampleAspectRatio:
    """Tests for SAR parsing."""

    def test_square_pixels(self):
        """Test 1:1 SAR."""
        assert parse_sample_aspect_ratio("1:1") == 1.0

    def test_anamorphic_dvd(self):
        """Test a PAL 16:9 DVD SAR."""
        assert parse_sample_aspect_ratio("64:45") == 64 / 45

    def test_implausible_values_become_square(self):
        """Test that missing or tiny SARs are treated as square pixels."""
        assert parse_sample_aspect_ratio(None) == 1.0
        assert parse_sample_aspect_ratio("N/A") == 1.0
        assert parse_sample_aspect_ratio("0:1") == 1.0
        assert parse_sample_aspect_ratio("1:2") == 1.0


class TestVideoInfo:
    """Tests for VideoInfo derived values."""

    def test_display_aspect_ratio(self):
        """Test DAR with anamorphic pixels."""
        info = VideoInfo(width=720, height=576, duration=10.0, sample_aspect_ratio=64 / 45)
        assert info.display_aspect_ratio == pytest.approx(16 / 9)

    def test_zero_height(self):
        """Test that a zero height gives no ratio."""
        assert VideoInfo(width=720, height=0, duration=10.0).display_aspect_ratio == 0.0


class TestParseVideoInfo:
    """Tests for probing video files with ffprobe and pymediainfo."""

    def test_reads_geometry_and_duration(self):
        """Test a typical 1080p source."""
        stream = {
            "width": 1920,
            "height": 1080,
            "sample_aspect_ratio": "1:1",
            "pix_fmt": "yuv420p10le",
        }
        with (
            patch(
                "aspectscan.media.subprocess.run",
                side_effect=[_proc(stdout="video\n"), _proc(stdout=_ffprobe_json(stream))],
            ),
            patch("aspectscan.media.MediaInfo") as mock_media_info,
        ):
            mock_media_info.parse.return_value = _media_info(bit_depth=10)
            info = parse_video_info(Path("movie.mkv"))

        assert info.width == 1920
        assert info.height == 1080
        assert info.duration == 6723.07
        assert info.sample_aspect_ratio == 1.0
        assert info.pix_fmt == "yuv420p10le"
        assert info.bit_depth == 10

    def test_bit_depth_falls_back_to_pix_fmt(self):
        """Test bit depth from pix_fmt when pymediainfo has none."""
        stream = {"width": 1920, "height": 1080, "pix_fmt": "yuv420p12le"}
        with (
            patch(
                "aspectscan.media.subprocess.run",
                side_effect=[_proc(stdout="video\n"), _proc(stdout=_ffprobe_json(stream))],
            ),
            patch("aspectscan.media.MediaInfo") as mock_media_info,
        ):
            mock_media_info.parse.return_value = _media_info()
            info = parse_video_info(Path("movie.mkv"))
        assert info.bit_depth == 12

    def test_duration_falls_back_to_mediainfo(self):
        """Test duration from pymediainfo (milliseconds) when ffprobe has none."""
        stream = {"width": 1920, "height": 800, "pix_fmt": "yuv420p"}
        with (
            patch(
                "aspectscan.media.subprocess.run",
                side_effect=[
                    _proc(stdout="video\n"),
                    _proc(stdout=_ffprobe_json(stream, duration=None)),
                ],
            ),
            patch("aspectscan.media.MediaInfo") as mock_media_info,
        ):
            mock_media_info.parse.return_value = _media_info(duration=90500)
            info = parse_video_info(Path("movie.mkv"))
        assert info.duration == 90.5

    def test_missing_duration_raises(self):
        """Test that a file without any duration is rejected."""
        stream = {"width": 1920, "height": 800}
        with (
            patch(
                "aspectscan.media.subprocess.run",
                side_effect=[
                    _proc(stdout="video\n"),
                    _proc(stdout=_ffprobe_json(stream, duration=None)),
                ],
            ),
            patch("aspectscan.media.MediaInfo") as mock_media_info,
        ):
            mock_media_info.parse.return_value = _media_info()
            with pytest.raises(InvalidVideoFileError, match="duration"):
                _ = parse_video_info(Path("movie.mkv"))

    def test_missing_resolution_raises(self):
        """Test that a stream without dimensions is rejected."""
        with patch(
            "aspectscan.media.subprocess.run",
            side_effect=[_proc(stdout="video\n"), _proc(stdout=_ffprobe_json({}))],
        ):
            with pytest.raises(InvalidVideoFileError, match="resolution"):
                _ = parse_video_info(Path("movie.mkv"))

    def test_invalid_data(self):
        """Test that non-video files are reported clearly."""
        with patch(
            "aspectscan.media.subprocess.run",
            return_value=_proc(
                returncode=1, stderr="notes.txt: Invalid data found when processing input"
            ),
        ):
            with pytest.raises(InvalidVideoFileError, match="not a valid video file"):
                _ = parse_video_info(Path("notes.txt"))

    def test_audio_only_file(self):
        """Test that files without a video stream are rejected."""
        with patch("aspectscan.media.subprocess.run", return_value=_proc(stdout="")):
            with pytest.raises(InvalidVideoFileError, match="No video stream"):
                _ = parse_video_info(Path("music.flac"))

    def test_ffprobe_missing(self):
        """Test that a missing ffprobe binary is reported."""
        with patch("aspectscan.media.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(InvalidVideoFileError, match="ffprobe not found"):
                _ = parse_video_info(Path("movie.mkv"), ffprobe_bin="/missing/ffprobe")
