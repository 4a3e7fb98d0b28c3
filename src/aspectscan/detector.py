"""Aspect ratio detection: sampling, classification and rounding composed."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from pathlib import Path

from .classifier import ClassificationResult, apply_multi_format, classify_histogram
from .constants import DISPLAY_DECIMALS, STANDARD_ASPECT_RATIOS
from .histogram import CropSizeCounts, SampleHistogram
from .modes import MultiFormatMode
from .sampler import FrameSampler, ProgressCallback
from .settings import DetectorConfig
from .tolerance import format_ratio

logger = logging.getLogger(__name__)


def describe_ratio(ratio: float) -> str:
    """Display name for a canonical ratio, e.g. '16:9 (1.78:1)'."""
    if ratio <= 0:
        return "-"
    name = STANDARD_ASPECT_RATIOS.get(round(ratio, 2))
    return name or f"{ratio:.2f}:1"


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detection; 0.0 ratios mean "not detected"."""

    primary_raw: float
    secondary_raw: float
    primary_canonical: float
    secondary_canonical: float
    usable_samples: int = 0
    total_samples: int = 0
    primary_pct: float = 0.0
    secondary_pct: float = 0.0
    width: int = 0  # detected picture size inside the black bars
    height: int = 0
    source: Path | None = None

    @property
    def detected(self) -> bool:
        return self.primary_canonical > 0

    @property
    def has_secondary(self) -> bool:
        return self.secondary_canonical > 0

    @property
    def resolution(self) -> str:
        if self.width <= 0 or self.height <= 0:
            return "-"
        return f"{self.width}x{self.height}"

    @property
    def primary_label(self) -> str:
        return describe_ratio(self.primary_canonical)

    @property
    def secondary_label(self) -> str:
        return describe_ratio(self.secondary_canonical)

    def summary(self) -> str:
        """One-line summary, e.g. 'AR: 1.78 (AR2: 2.40)'."""
        if not self.detected:
            return "AR: not detected"
        text = f"AR: {format_ratio(self.primary_canonical, DISPLAY_DECIMALS)}"
        if self.has_secondary:
            text += f" (AR2: {format_ratio(self.secondary_canonical, DISPLAY_DECIMALS)})"
        return text

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["source"] = str(self.source) if self.source is not None else None
        data["resolution"] = self.resolution if self.width > 0 and self.height > 0 else None
        data["primary_label"] = self.primary_label if self.detected else None
        data["secondary_label"] = self.secondary_label if self.has_secondary else None
        return data


def round_classification(
    classification: ClassificationResult, config: DetectorConfig
) -> tuple[float, float]:
    """Round primary and secondary raw ratios; 0 passes through as 0."""
    return (
        config.round_ratio(classification.primary_raw),
        config.round_ratio(classification.secondary_raw),
    )


def _most_frequent(counts: dict[int, int], preferred: set[int] | None = None) -> int:
    """Key with the highest count; ties prefer ``preferred`` keys, then larger keys."""
    preferred = preferred or set()
    return max(counts.items(), key=lambda item: (item[1], item[0] in preferred, item[0]))[0]


def detect_resolution(
    sizes: CropSizeCounts, classification: ClassificationResult, epsilon: float
) -> tuple[int, int]:
    """Picture size inside the black bars as (width, height).

    The height is the most frequent crop height. When the multi-format mode
    reordered the ratios it is compared with the most frequent height that
    matches the primary ratio at the dominant crop width: ``HIGHER`` keeps the
    taller of the two, ``WIDER`` the shorter. The width follows from the height
    and the primary ratio (SAR removed). Returns (0, 0) without crop sizes.
    """
    primary = classification.primary_raw
    if sizes.is_empty or primary <= 0:
        return 0, 0

    dominant_width = _most_frequent(sizes.widths)
    low = dominant_width / (primary + epsilon)
    high = dominant_width / (primary - epsilon) if primary > epsilon else math.inf
    matching = {h: c for h, c in sizes.heights.items() if low <= h <= high}

    height = _most_frequent(sizes.heights, preferred=set(matching))
    if classification.multi_format != MultiFormatMode.OFF:
        matching_height = _most_frequent(matching) if matching else height
        if classification.multi_format == MultiFormatMode.HIGHER:
            height = max(height, matching_height)
        else:
            height = min(height, matching_height)

    width = math.floor(height * primary / sizes.sample_aspect_ratio + 0.5)
    return width, height


def detect_from_histogram(
    histogram: SampleHistogram,
    config: DetectorConfig,
    source: Path | None = None,
) -> DetectionResult:
    """Classify a histogram and round the result onto the canonical list.

    Pure function of (histogram, config); safe to call concurrently.
    """
    classification = classify_histogram(
        histogram,
        epsilon=config.epsilon,
        secondary_min_pct=config.secondary_min_pct,
    )
    classification = apply_multi_format(
        classification,
        config.multi_format_mode,
        secondary_pct=histogram.share_pct(classification.secondary_weight),
        threshold_pct=config.multi_format_threshold_pct,
    )
    primary, secondary = round_classification(classification, config)
    width, height = detect_resolution(histogram.crop_sizes, classification, config.epsilon)

    result = DetectionResult(
        primary_raw=classification.primary_raw,
        secondary_raw=classification.secondary_raw,
        primary_canonical=primary,
        secondary_canonical=secondary,
        usable_samples=histogram.usable_samples,
        total_samples=histogram.total_samples,
        primary_pct=histogram.share_pct(classification.primary_weight),
        secondary_pct=histogram.share_pct(classification.secondary_weight),
        width=width,
        height=height,
        source=source,
    )

    logger.debug(
        "AR_PrimaryRaw:   %7.5f, %6.2f%% of samples within +/-%s",
        result.primary_raw,
        result.primary_pct,
        config.epsilon,
    )
    logger.debug(
        "AR_SecondaryRaw: %7.5f, %6.2f%% of samples within +/-%s",
        result.secondary_raw,
        result.secondary_pct,
        config.epsilon,
    )
    return result


class AspectRatioDetector:
    """Detects the aspect ratio of video files with an injected sampler."""

    def __init__(self, sampler: FrameSampler, config: DetectorConfig) -> None:
        self.sampler: FrameSampler = sampler
        self.config: DetectorConfig = config

    def detect(
        self, input_path: Path, progress: ProgressCallback | None = None
    ) -> DetectionResult:
        """Sample, classify and round one video.

        Raises:
            InvalidVideoFileError: If the file cannot be read
            SamplerError: If the file cannot be sampled
        """
        histogram = self.sampler.sample(input_path, progress=progress)
        if histogram.is_empty:
            logger.warning("No usable samples from %s", input_path.name)
        result = detect_from_histogram(histogram, self.config, source=input_path)
        logger.info("%s: Detected: %s %s", input_path.name, result.resolution, result.summary())
        return result

    def detect_many(
        self, input_paths: list[Path], max_workers: int = 1
    ) -> list[DetectionResult]:
        """Detect several videos, optionally in parallel; results keep input order."""
        if max_workers <= 1 or len(input_paths) <= 1:
            return [self.detect(path) for path in input_paths]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.detect, input_paths))
