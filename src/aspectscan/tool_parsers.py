"""Centralized parsing utilities for external tool output.

This module provides shared regex patterns and helper functions for parsing
output from FFmpeg (cropdetect, signalstats) and ffprobe.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# =============================================================================
# FFmpeg Filter Output Patterns
# =============================================================================

# cropdetect line: "x1:0 x2:1919 y1:138 y2:941 w:1920 h:800 x:0 y:140 pts:..."
CROPDETECT_RE = re.compile(
    r"x1:(?P<x1>\d+)\s+x2:(?P<x2>\d+)\s+y1:(?P<y1>\d+)\s+y2:(?P<y2>\d+)\s+"
    + r"w:(?P<w>\d+)\s+h:(?P<h>\d+)\s+x:"
)

# signalstats metadata printed by the metadata filter: "lavfi.signalstats.YLOW=16"
SIGNALSTATS_YLOW_RE = re.compile(r"lavfi\.signalstats\.YLOW=(\d+)")


# =============================================================================
# Dict Extraction Helpers - for parsing JSON output from tools
# =============================================================================


def get_str(d: dict[str, object], key: str) -> str | None:
    """Extract string value from dict, returning None if not a string.

    Args:
        d: Dictionary to extract from
        key: Key to look up

    Returns:
        String value or None if key doesn't exist or value isn't a string
    """
    val = d.get(key)
    return str(val) if isinstance(val, str) else None


def get_int(d: dict[str, object], key: str) -> int | None:
    """Extract int value from dict, handling int/float/str types.

    Args:
        d: Dictionary to extract from
        key: Key to look up

    Returns:
        Integer value or None if key doesn't exist or value can't be converted
    """
    val = d.get(key)
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return int(val)
    if isinstance(val, str):
        try:
            return int(float(val))
        except ValueError:
            return None
    return None


def get_float(d: dict[str, object], key: str) -> float | None:
    """Extract float value from dict, handling int/float/str types.

    Args:
        d: Dictionary to extract from
        key: Key to look up

    Returns:
        Float value or None if key doesn't exist or value can't be converted
    """
    val = d.get(key)
    if isinstance(val, (int, float)):
        return float(val)
    if isinstance(val, str):
        try:
            return float(val)
        except ValueError:
            return None
    return None


# =============================================================================
# Specialized Parsers
# =============================================================================


def parse_fraction(rate: str) -> float:
    """Parse a fraction string like '30000/1001' into a float.

    Also handles plain numeric strings.

    Args:
        rate: String containing either a fraction (num/den) or plain number

    Returns:
        Parsed float value, or 0.0 if parsing fails
    """
    if "/" in rate:
        num, den = rate.split("/", 1)
        try:
            n = float(num)
            d = float(den)
            return 0.0 if d == 0 else n / d
        except ValueError:
            return 0.0
    try:
        return float(rate)
    except ValueError:
        return 0.0


def parse_ratio(value: str) -> float:
    """Parse an aspect ratio written as '16:9', '64/27' or '2.40'.

    Returns:
        Parsed ratio, or 0.0 if parsing fails

    Examples:
        >>> parse_ratio("4:3")
        1.3333333333333333
        >>> parse_ratio("2.40")
        2.4
    """
    return parse_fraction(value.strip().replace(":", "/"))


@dataclass(frozen=True)
class CropDetection:
    """Crop rectangle reported by FFmpeg cropdetect.

    x1/y1 and x2/y2 are the top-left and bottom-right corners of the picture
    area; width/height are the rounded crop size.
    """

    x1: int
    x2: int
    y1: int
    y2: int
    width: int
    height: int

    def bars(self, frame_width: int, frame_height: int) -> tuple[int, int, int, int]:
        """Black bar sizes (left, right, top, bottom) for the encoded frame."""
        left = self.x1
        right = abs(frame_width - self.x2 - 1)
        top = self.y1
        bottom = abs(frame_height - self.y2 - 1)
        return left, right, top, bottom


def parse_cropdetect(output: str) -> CropDetection | None:
    """Parse the last cropdetect line from FFmpeg stderr output.

    cropdetect refines its estimate over the sample, so the final line holds
    the most complete measurement.

    Args:
        output: Full stderr text from an FFmpeg cropdetect run

    Returns:
        CropDetection, or None if no cropdetect line was found
    """
    last: re.Match[str] | None = None
    for last in CROPDETECT_RE.finditer(output):
        pass
    if last is None:
        return None
    return CropDetection(
        x1=int(last.group("x1")),
        x2=int(last.group("x2")),
        y1=int(last.group("y1")),
        y2=int(last.group("y2")),
        width=int(last.group("w")),
        height=int(last.group("h")),
    )


def parse_signalstats_ylow(output: str) -> int | None:
    """Extract the first YLOW value from FFmpeg signalstats metadata output."""
    match = SIGNALSTATS_YLOW_RE.search(output)
    if not match:
        return None
    return int(match.group(1))
