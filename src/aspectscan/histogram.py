"""Sample histogram of raw aspect ratio measurements."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .tolerance import normalize_ratio


@dataclass
class CropSizeCounts:
    """Crop widths and heights (pixels) of the usable samples of one video."""

    widths: dict[int, int] = field(default_factory=dict)
    heights: dict[int, int] = field(default_factory=dict)
    sample_aspect_ratio: float = 1.0

    def add(self, width: int, height: int) -> None:
        self.widths[width] = self.widths.get(width, 0) + 1
        self.heights[height] = self.heights.get(height, 0) + 1

    @property
    def is_empty(self) -> bool:
        return not self.heights


@dataclass
class SampleHistogram:
    """Raw ratio observations for one video, keyed at a fixed precision.

    ``total_samples`` counts every measurement attempt, including samples that
    were rejected as implausible, so ``sum(buckets.values())`` never exceeds it.
    ``crop_sizes`` holds the pixel sizes behind the ratios when the sampler
    records them; histograms built from ratio counts alone leave it empty.
    """

    buckets: dict[float, int] = field(default_factory=dict)
    total_samples: int = 0
    crop_sizes: CropSizeCounts = field(default_factory=CropSizeCounts)

    @classmethod
    def from_counts(
        cls, counts: Mapping[float, int], total_samples: int | None = None
    ) -> "SampleHistogram":
        """Build a histogram from a ratio -> count mapping.

        Keys are normalized to the histogram precision; keys that collapse onto
        the same bucket are merged.

        Raises:
            ValueError: If a count is below 1, a ratio is not positive, or the
                counts exceed ``total_samples``
        """
        histogram = cls()
        for ratio, count in counts.items():
            if count < 1:
                raise ValueError(f"Bucket count must be >= 1, got {count} for {ratio}")
            key = normalize_ratio(ratio)
            if key <= 0:
                raise ValueError(f"Ratio must be positive at bucket precision, got {ratio}")
            histogram.buckets[key] = histogram.buckets.get(key, 0) + count

        usable = histogram.usable_samples
        if total_samples is None:
            histogram.total_samples = usable
        elif total_samples < usable:
            raise ValueError(
                f"total_samples ({total_samples}) is less than the bucket sum ({usable})"
            )
        else:
            histogram.total_samples = total_samples
        return histogram

    def add(self, ratio: float) -> float:
        """Record a usable sample and return the bucket key it landed in."""
        key = normalize_ratio(ratio)
        if key <= 0:
            raise ValueError(f"Ratio must be positive at bucket precision, got {ratio}")
        self.buckets[key] = self.buckets.get(key, 0) + 1
        self.total_samples += 1
        return key

    def add_skipped(self) -> None:
        """Record a measurement that did not produce a usable ratio."""
        self.total_samples += 1

    @property
    def usable_samples(self) -> int:
        return sum(self.buckets.values())

    @property
    def skipped_samples(self) -> int:
        return self.total_samples - self.usable_samples

    @property
    def is_empty(self) -> bool:
        return not self.buckets

    def share_pct(self, count: int) -> float:
        """Percentage of usable samples represented by ``count``."""
        usable = self.usable_samples
        if usable == 0:
            return 0.0
        return count * 100.0 / usable

    def sorted_items(self) -> list[tuple[float, int]]:
        """Buckets ordered by ratio, ascending."""
        return sorted(self.buckets.items())
