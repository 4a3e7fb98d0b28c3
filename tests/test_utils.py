"""Tests for utils module."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from aspectscan.utils import (
    ensure_dir,
    format_command_error,
    get_app_root,
    log_section,
    run_capture,
)


class TestRunCapture:
    """Tests for subprocess output capture."""

    def test_returns_combined_output(self):
        """Test that stdout (with stderr merged) is returned."""
        mock_result = MagicMock()
        mock_result.returncode = 0
        mock_result.stdout = "x1:0 x2:1919 y1:140 y2:939 w:1920 h:800 x:0 y:140"
        with patch("aspectscan.utils.subprocess.run", return_value=mock_result) as mock_run:
            output = run_capture(["ffmpeg", "-i", "movie.mkv"], timeout=30)

        assert output.startswith("x1:0")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["timeout"] == 30

    def test_non_zero_exit(self):
        """Test that failures raise RuntimeError with the output."""
        mock_result = MagicMock()
        mock_result.returncode = 1
        mock_result.stdout = "movie.mkv: No such file or directory"
        with patch("aspectscan.utils.subprocess.run", return_value=mock_result):
            with pytest.raises(RuntimeError, match="Command failed \\(1\\)"):
                _ = run_capture(["ffmpeg", "-i", "movie.mkv"])

    def test_missing_binary(self):
        """Test that a missing executable raises RuntimeError."""
        with patch("aspectscan.utils.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(RuntimeError, match="Command not found: ffmpeg"):
                _ = run_capture(["ffmpeg"])

    def test_timeout(self):
        """Test that timeouts raise RuntimeError."""
        with patch(
            "aspectscan.utils.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5),
        ):
            with pytest.raises(RuntimeError, match="timed out"):
                _ = run_capture(["ffmpeg"], timeout=5)


class TestHelpers:
    """Tests for small filesystem and logging helpers."""

    def test_format_command_error_quotes_arguments(self):
        """Test that arguments with spaces are shell-quoted."""
        msg = format_command_error(2, ["ffmpeg", "-i", "my movie.mkv"], "boom")
        assert msg.startswith("Command failed (2): ffmpeg -i 'my movie.mkv'")
        assert msg.endswith("boom")

    def test_ensure_dir(self, tmp_path: Path):
        """Test nested directory creation."""
        target = tmp_path / "a" / "b"
        assert ensure_dir(target) == target
        assert target.is_dir()

    def test_app_root_contains_package(self):
        """Test that the development app root is the repository root."""
        assert (get_app_root() / "src" / "aspectscan").is_dir()

    def test_log_section(self, caplog: pytest.LogCaptureFixture):
        """Test section separators and upper-cased title."""
        log = logging.getLogger("test.section")
        with caplog.at_level(logging.INFO, logger="test.section"):
            log_section(log, "Detection")
        assert " DETECTION" in caplog.text
        assert "=" * 60 in caplog.text
