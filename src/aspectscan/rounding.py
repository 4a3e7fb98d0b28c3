"""Snap raw aspect ratios onto a list of canonical ratios."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .constants import ROUND_UP_TOLERANCE_PCT
from .tolerance import is_at_least, ratio_distance, ratios_equal

logger = logging.getLogger(__name__)


class EmptyRatioListError(ValueError):
    """Raised when rounding is requested against an empty canonical list."""


def round_nearest(raw: float, ratios: Sequence[float]) -> float:
    """Return the canonical ratio closest to ``raw``.

    Equal distances resolve to the lower entry. Values outside the list range
    clamp to the nearest boundary entry.

    Args:
        raw: Positive raw ratio
        ratios: Non-empty, strictly ascending canonical ratios
    """
    best = ratios[0]
    best_distance = ratio_distance(raw, best)
    for candidate in ratios[1:]:
        distance = ratio_distance(raw, candidate)
        # Strict comparison keeps the lower entry on ties
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def round_prefer_higher(
    raw: float, ratios: Sequence[float], tolerance_pct: float = ROUND_UP_TOLERANCE_PCT
) -> float:
    """Return the smallest canonical ratio reachable from ``raw`` within tolerance.

    A slightly over-cropped measurement (e.g. 2.38 for a 2.40 scope film) is
    snapped up to the standard ratio it was probably aiming for, instead of
    being rounded down to a narrower one.

    Args:
        raw: Positive raw ratio
        ratios: Non-empty, strictly ascending canonical ratios
        tolerance_pct: Allowed undershoot as a percentage of ``raw``

    Returns:
        The first entry >= raw - raw * tolerance_pct / 100, or the largest
        entry when none qualifies

    Examples:
        >>> round_prefer_higher(2.0, [1.78, 1.85, 2.35, 2.40])
        2.35
        >>> round_prefer_higher(2.5, [1.78, 1.85, 2.35, 2.40])
        2.4
    """
    floor = raw - raw * (tolerance_pct / 100.0)
    for candidate in ratios:
        if is_at_least(candidate, floor):
            return candidate
    return ratios[-1]


def round_aspect_ratio(
    raw: float,
    ratios: Sequence[float],
    *,
    prefer_higher: bool = False,
    tolerance_pct: float = ROUND_UP_TOLERANCE_PCT,
) -> float:
    """Map a raw ratio onto the canonical list.

    A raw value that already equals a canonical entry is returned as is under
    both policies. The 0 "no ratio" sentinel is not a valid input; callers
    pass it through themselves.

    Args:
        raw: Positive raw ratio
        ratios: Strictly ascending canonical ratios
        prefer_higher: Use the prefer-higher policy instead of nearest
        tolerance_pct: Tolerance for the prefer-higher policy

    Returns:
        The selected canonical ratio

    Raises:
        EmptyRatioListError: If ``ratios`` is empty
        ValueError: If ``raw`` is not positive or ``tolerance_pct`` is negative
    """
    if not ratios:
        raise EmptyRatioListError("Canonical aspect ratio list is empty")
    if raw <= 0:
        raise ValueError(f"Raw aspect ratio must be positive, got {raw}")
    if tolerance_pct < 0:
        raise ValueError(f"Rounding tolerance must not be negative, got {tolerance_pct}")

    for candidate in ratios:
        if ratios_equal(raw, candidate):
            return candidate

    if prefer_higher:
        rounded = round_prefer_higher(raw, ratios, tolerance_pct)
        logger.debug(
            "Rounded %.4f to %.2f (prefer higher, tolerance %.1f%%)",
            raw,
            rounded,
            tolerance_pct,
        )
    else:
        rounded = round_nearest(raw, ratios)
        logger.debug("Rounded %.4f to nearest %.2f", raw, rounded)
    return rounded
