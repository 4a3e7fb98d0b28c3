"""Numeric comparison helpers for aspect ratio values.

Raw ratios come from integer pixel divisions and are bucketed at a fixed
precision, but differences between them still carry binary floating point
noise (``2.45 - 2.40`` is not exactly ``0.05``). Every tolerance comparison in
the classifier and rounder goes through these helpers so that boundary cases
resolve the same way on every run.
"""

from __future__ import annotations

from .constants import COMPARE_DECIMALS, RATIO_DECIMALS


def normalize_ratio(value: float, decimals: int = RATIO_DECIMALS) -> float:
    """Round a raw ratio to the histogram key precision.

    Args:
        value: Raw ratio (width / height, SAR applied)
        decimals: Decimal places to keep

    Returns:
        Rounded ratio
    """
    return round(float(value), decimals)


def ratio_distance(a: float, b: float) -> float:
    """Absolute difference between two ratios, rounded to comparison precision."""
    return round(abs(a - b), COMPARE_DECIMALS)


def is_within(a: float, b: float, tolerance: float) -> bool:
    """Check whether two ratios differ by at most ``tolerance`` (inclusive)."""
    return ratio_distance(a, b) <= round(tolerance, COMPARE_DECIMALS)


def is_at_least(value: float, bound: float) -> bool:
    """Check ``value >= bound`` after rounding both to comparison precision."""
    return round(value, COMPARE_DECIMALS) >= round(bound, COMPARE_DECIMALS)


def ratios_equal(a: float, b: float) -> bool:
    """Check whether two ratios are equal at comparison precision."""
    return ratio_distance(a, b) == 0.0


def format_ratio(value: float, decimals: int = 2) -> str:
    """Format a ratio for display, using '-' for the 0 "none" sentinel.

    Examples:
        >>> format_ratio(2.4)
        '2.40'
        >>> format_ratio(0.0)
        '-'
    """
    if value <= 0:
        return "-"
    return f"{value:.{decimals}f}"
