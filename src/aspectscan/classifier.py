"""Primary/secondary aspect ratio classification.

Reduces a sample histogram to at most two representative raw ratios: the one
observed most often, and optionally a second, clearly distinct ratio (for
example an IMAX or scope segment inside an otherwise flat transfer).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import CLASSIFIER_EPSILON, MULTI_FORMAT_THRESHOLD_PCT, SECONDARY_MIN_PCT
from .histogram import SampleHistogram
from .modes import MultiFormatMode
from .tolerance import is_within

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Raw ratios extracted from a histogram (0.0 means "none")."""

    primary_raw: float = 0.0
    secondary_raw: float = 0.0
    primary_weight: int = 0  # samples within epsilon of the primary ratio
    secondary_weight: int = 0  # samples in the winning secondary cluster
    multi_format: MultiFormatMode = MultiFormatMode.OFF  # mode that reordered the ratios

    @property
    def has_secondary(self) -> bool:
        return self.secondary_raw > 0


@dataclass(frozen=True)
class RatioCluster:
    """Neighboring histogram entries chained together within epsilon."""

    members: tuple[tuple[float, int], ...]

    @property
    def weight(self) -> int:
        return sum(count for _, count in self.members)

    @property
    def representative(self) -> float:
        """Most frequent member; ties go to the larger ratio."""
        return max(self.members, key=lambda item: (item[1], item[0]))[0]


def _dominant_ratio(items: list[tuple[float, int]]) -> float:
    return max(items, key=lambda item: (item[1], item[0]))[0]


def cluster_ratios(
    items: list[tuple[float, int]], epsilon: float = CLASSIFIER_EPSILON
) -> list[RatioCluster]:
    """Partition (ratio, count) pairs into connected components.

    Two entries share a cluster when a chain of entries connects them with each
    step no larger than ``epsilon``. On a sorted line this reduces to splitting
    wherever the gap between neighbors exceeds ``epsilon``.

    Args:
        items: (ratio, count) pairs in any order
        epsilon: Maximum gap between chained neighbors (inclusive)

    Returns:
        Clusters ordered by ratio, ascending
    """
    clusters: list[RatioCluster] = []
    current: list[tuple[float, int]] = []
    for ratio, count in sorted(items):
        if current and not is_within(ratio, current[-1][0], epsilon):
            clusters.append(RatioCluster(tuple(current)))
            current = []
        current.append((ratio, count))
    if current:
        clusters.append(RatioCluster(tuple(current)))
    return clusters


def classify_histogram(
    histogram: SampleHistogram,
    *,
    epsilon: float = CLASSIFIER_EPSILON,
    secondary_min_pct: float = SECONDARY_MIN_PCT,
) -> ClassificationResult:
    """Extract the primary and secondary raw ratios from a histogram.

    The primary ratio is the bucket with the highest count (ties go to the
    larger ratio). Buckets within ``epsilon`` of it are treated as the same
    ratio and dropped; the rest are clustered, and the heaviest cluster's most
    frequent member becomes the secondary ratio.

    Args:
        histogram: Populated sample histogram (read only)
        epsilon: Closeness tolerance in ratio units
        secondary_min_pct: Minimum share of usable samples the secondary
            cluster must hold; 0 accepts any non-empty cluster

    Returns:
        ClassificationResult; empty histograms yield (0, 0)
    """
    if histogram.is_empty:
        return ClassificationResult()

    items = list(histogram.buckets.items())
    primary = _dominant_ratio(items)
    primary_weight = sum(
        count for ratio, count in items if is_within(ratio, primary, epsilon)
    )

    remaining = [
        (ratio, count) for ratio, count in items if not is_within(ratio, primary, epsilon)
    ]
    if not remaining:
        return ClassificationResult(primary_raw=primary, primary_weight=primary_weight)

    clusters = cluster_ratios(remaining, epsilon)
    winner = max(clusters, key=lambda c: (c.weight, c.representative))

    share = histogram.share_pct(winner.weight)
    if share < secondary_min_pct:
        logger.debug(
            "Secondary candidate %.2f holds %.2f%% of samples, below the %.2f%% threshold",
            winner.representative,
            share,
            secondary_min_pct,
        )
        return ClassificationResult(primary_raw=primary, primary_weight=primary_weight)

    return ClassificationResult(
        primary_raw=primary,
        secondary_raw=winner.representative,
        primary_weight=primary_weight,
        secondary_weight=winner.weight,
    )


def apply_multi_format(
    result: ClassificationResult,
    mode: MultiFormatMode,
    secondary_pct: float,
    threshold_pct: float = MULTI_FORMAT_THRESHOLD_PCT,
) -> ClassificationResult:
    """Reorder primary/secondary for multi-format videos.

    ``HIGHER`` reports the taller (numerically lower) ratio as primary,
    ``WIDER`` the wider one. The video only counts as multi-format when the
    secondary ratio holds at least ``threshold_pct`` of the usable samples;
    below that the secondary ratio is dropped and the primary stays as is.
    Results without a secondary ratio, or with the mode off, are returned
    unchanged.

    Args:
        result: Classification to reorder
        mode: Multi-format mode
        secondary_pct: Share of usable samples held by the secondary ratio
        threshold_pct: Minimum share for the video to count as multi-format
    """
    if mode == MultiFormatMode.OFF or not result.has_secondary:
        return result

    if secondary_pct < threshold_pct:
        logger.debug(
            "Multi format: no, secondary %.2f holds %.2f%% of samples (< %.2f%%)",
            result.secondary_raw,
            secondary_pct,
            threshold_pct,
        )
        return ClassificationResult(
            primary_raw=result.primary_raw, primary_weight=result.primary_weight
        )

    first = (result.primary_raw, result.primary_weight)
    second = (result.secondary_raw, result.secondary_weight)
    low, high = sorted((first, second))
    primary, secondary = (low, high) if mode == MultiFormatMode.HIGHER else (high, low)

    if primary[0] != result.primary_raw:
        logger.debug(
            "Multi format (%s): swapping primary %.2f and secondary %.2f",
            mode.value,
            result.primary_raw,
            result.secondary_raw,
        )

    return ClassificationResult(
        primary_raw=primary[0],
        secondary_raw=secondary[0],
        primary_weight=primary[1],
        secondary_weight=secondary[1],
        multi_format=mode,
    )
