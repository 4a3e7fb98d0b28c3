from __future__ import annotations

import json
import logging
import re
import subprocess
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from pymediainfo import MediaInfo

from .constants import MIN_PLAUSIBLE_SAR
from .tool_parsers import get_float, get_int, get_str, parse_ratio

logger = logging.getLogger(__name__)


class InvalidVideoFileError(Exception):
    """Raised when the input file is not a valid video file."""


@dataclass(frozen=True)
class VideoInfo:
    width: int
    height: int
    duration: float  # seconds
    sample_aspect_ratio: float = 1.0  # pixel aspect ratio (SAR)
    pix_fmt: str | None = None
    bit_depth: int = 8

    @property
    def display_aspect_ratio(self) -> float:
        """Aspect ratio of the full encoded frame with SAR applied."""
        if self.height <= 0:
            return 0.0
        return self.width * self.sample_aspect_ratio / self.height


def _run_ffprobe_json(
    input_path: Path,
    stream_entries: list[str] | None = None,
    format_entries: list[str] | None = None,
    ffprobe_bin: str = "ffprobe",
) -> tuple[dict[str, object], dict[str, object]]:
    """Run ffprobe with JSON output and return first video stream and format data.

    Args:
        input_path: Path to video file
        stream_entries: Stream fields to query (e.g., ["width", "height"])
        format_entries: Format fields to query (e.g., ["duration"])
        ffprobe_bin: Path to ffprobe binary

    Returns:
        Tuple of (stream_dict, format_dict) for the first video stream.
        Empty dicts if parsing fails.
    """
    show_entries_parts: list[str] = []
    if stream_entries:
        show_entries_parts.append(f"stream={','.join(stream_entries)}")
    if format_entries:
        show_entries_parts.append(f"format={','.join(format_entries)}")

    if not show_entries_parts:
        return {}, {}

    cmd = [
        ffprobe_bin,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        ":".join(show_entries_parts),
        "-of",
        "json",
        str(input_path),
    ]

    proc = subprocess.run(
        cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
    )

    if proc.returncode != 0:
        logger.warning("ffprobe JSON query failed: %s", proc.stderr)
        return {}, {}

    try:
        raw_data = cast(object, json.loads(proc.stdout))
        if not isinstance(raw_data, dict):
            return {}, {}
        data = cast(dict[str, object], raw_data)

        stream_dict: dict[str, object] = {}
        streams_raw = data.get("streams", [])
        if isinstance(streams_raw, list) and streams_raw:
            first_stream = cast(object, streams_raw[0])
            if isinstance(first_stream, dict):
                stream_dict = cast(dict[str, object], first_stream)

        format_dict: dict[str, object] = {}
        fmt_raw = data.get("format", {})
        if isinstance(fmt_raw, dict):
            format_dict = cast(dict[str, object], fmt_raw)

        return stream_dict, format_dict

    except (json.JSONDecodeError, KeyError, IndexError) as e:
        logger.warning("Failed to parse ffprobe JSON: %s", e)
        return {}, {}


def _check_video_stream(input_path: Path, ffprobe_bin: str) -> None:
    """Raise InvalidVideoFileError unless the file has a readable video stream."""
    check_cmd = [
        ffprobe_bin,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=codec_type",
        "-of",
        "default=nw=1:nk=1",
        str(input_path),
    ]
    try:
        check_proc = subprocess.run(
            check_cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
        )
    except FileNotFoundError as e:
        raise InvalidVideoFileError(f"ffprobe not found: {ffprobe_bin}") from e

    stderr_lower = check_proc.stderr.lower()
    stdout_lower = check_proc.stdout.lower()

    if check_proc.returncode != 0 or not check_proc.stdout.strip():
        if (
            "invalid data found when processing input" in stderr_lower
            or "invalid data found when processing input" in stdout_lower
        ):
            raise InvalidVideoFileError(
                f"The input file is not a valid video file: {input_path}\n"
                + "Please provide a video file (e.g., .mkv, .mp4, .avi)"
            )
        elif "no such file or directory" in stderr_lower:
            raise InvalidVideoFileError(f"Input file not found: {input_path}")
        else:
            raise InvalidVideoFileError(
                f"No video stream found in input file: {input_path}\n"
                + f"ffprobe output: {check_proc.stderr or check_proc.stdout}"
            )

    if not check_proc.stdout.strip().startswith("video"):
        raise InvalidVideoFileError(
            f"The input file does not contain a video stream: {input_path}"
        )


def parse_sample_aspect_ratio(value: str | None) -> float:
    """Parse an ffprobe SAR string ('4:3', '1:1', 'N/A').

    Missing, unparsable, or implausibly small SARs are treated as square
    pixels (1.0).

    Examples:
        >>> parse_sample_aspect_ratio("1:1")
        1.0
        >>> parse_sample_aspect_ratio("0:1")
        1.0
    """
    if not value:
        return 1.0
    sar = parse_ratio(value)
    if sar <= MIN_PLAUSIBLE_SAR:
        return 1.0
    return sar


def get_bit_depth_from_pix_fmt(pix_fmt: str | None) -> int:
    """Extract bit depth from FFmpeg pixel format string.

    Args:
        pix_fmt: Pixel format string from FFmpeg (e.g., 'yuv420p10le', 'yuv420p')

    Returns:
        Bit depth as integer (8, 10, 12, 14, or 16), defaults to 8 if unable to parse

    Examples:
        >>> get_bit_depth_from_pix_fmt('yuv420p10le')
        10
        >>> get_bit_depth_from_pix_fmt('yuv420p')
        8
    """
    if not pix_fmt:
        return 8

    # Common formats: yuv420p, yuv420p10le, yuv420p12le, yuv444p10le, etc.
    match = re.search(r"p(\d+)", pix_fmt)
    if match:
        depth = int(match.group(1))
        if depth in (8, 10, 12, 14, 16):
            return depth

    return 8


def _read_mediainfo(input_path: Path) -> tuple[int | None, float | None]:
    """Read bit depth and duration (seconds) from the first video track."""
    bit_depth: int | None = None
    duration: float | None = None
    try:
        media_info = MediaInfo.parse(str(input_path))
    except (OSError, RuntimeError) as e:
        logger.warning("pymediainfo could not read %s: %s", input_path.name, e)
        return None, None

    if not media_info.video_tracks:
        return None, None
    video_track = media_info.video_tracks[0]

    raw_depth = cast(int | str | None, getattr(video_track, "bit_depth", None))
    if raw_depth is not None:
        with suppress(ValueError, TypeError):
            bit_depth = int(raw_depth)

    # pymediainfo reports duration in milliseconds
    raw_duration = cast(float | int | str | None, getattr(video_track, "duration", None))
    if raw_duration is not None:
        with suppress(ValueError, TypeError):
            duration = float(raw_duration) / 1000.0

    logger.debug(
        "pymediainfo for %s: bit_depth=%s, duration=%s", input_path.name, bit_depth, duration
    )
    return bit_depth, duration


def parse_video_info(input_path: Path, ffprobe_bin: str = "ffprobe") -> VideoInfo:
    """Read the geometry, duration and bit depth of a video file.

    Raises:
        InvalidVideoFileError: If the file has no usable video stream or its
            dimensions/duration cannot be determined
    """
    _check_video_stream(input_path, ffprobe_bin)

    stream, fmt = _run_ffprobe_json(
        input_path,
        stream_entries=["width", "height", "sample_aspect_ratio", "pix_fmt"],
        format_entries=["duration"],
        ffprobe_bin=ffprobe_bin,
    )

    width = get_int(stream, "width")
    height = get_int(stream, "height")
    if not width or not height:
        raise InvalidVideoFileError(f"Could not determine resolution of: {input_path}")

    pix_fmt = get_str(stream, "pix_fmt")
    sar = parse_sample_aspect_ratio(get_str(stream, "sample_aspect_ratio"))

    mi_bit_depth, mi_duration = _read_mediainfo(input_path)
    bit_depth = mi_bit_depth or get_bit_depth_from_pix_fmt(pix_fmt)

    duration = get_float(fmt, "duration")
    if duration is None or duration <= 0:
        duration = mi_duration
    if duration is None or duration <= 0:
        raise InvalidVideoFileError(f"Could not determine duration of: {input_path}")

    logger.debug(
        "Media info %s: %dx%d, SAR %.4f, %s, %d-bit, %.2fs",
        input_path.name,
        width,
        height,
        sar,
        pix_fmt or "unknown pix_fmt",
        bit_depth,
        duration,
    )

    return VideoInfo(
        width=width,
        height=height,
        duration=duration,
        sample_aspect_ratio=sar,
        pix_fmt=pix_fmt,
        bit_depth=bit_depth,
    )
