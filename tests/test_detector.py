"""Tests for detector module."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from aspectscan.classifier import ClassificationResult
from aspectscan.detector import (
    AspectRatioDetector,
    DetectionResult,
    describe_ratio,
    detect_from_histogram,
    detect_resolution,
)
from aspectscan.histogram import CropSizeCounts, SampleHistogram
from aspectscan.modes import MultiFormatMode
from aspectscan.sampler import ProgressCallback, SamplerError
from aspectscan.settings import DetectorConfig

RATIOS = (1.78, 1.85, 2.35, 2.40)


class FakeSampler:
    """FrameSampler returning canned histograms keyed by file name."""

    def __init__(self, histograms: dict[str, SampleHistogram]) -> None:
        self.histograms: dict[str, SampleHistogram] = histograms
        self.threads: set[str] = set()
        self._lock: threading.Lock = threading.Lock()

    def sample(
        self, input_path: Path, progress: ProgressCallback | None = None
    ) -> SampleHistogram:
        with self._lock:
            self.threads.add(threading.current_thread().name)
        if input_path.name not in self.histograms:
            raise SamplerError(f"cannot sample {input_path.name}")
        if progress is not None:
            progress(1.0)
        return self.histograms[input_path.name]


class TestDetectFromHistogram:
    """Tests for histogram classification plus rounding."""

    def test_primary_and_secondary(self):
        """Test rounding of both ratios for a multi-format histogram."""
        histogram = SampleHistogram.from_counts(
            {2.40: 4, 2.41: 1, 2.30: 2, 1.79: 2, 1.78: 1, 2.20: 1}, total_samples=15
        )
        result = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))

        assert result.primary_raw == 2.40
        assert result.secondary_raw == 1.79
        assert result.primary_canonical == 2.40
        assert result.secondary_canonical == 1.78
        assert result.usable_samples == 11
        assert result.total_samples == 15
        assert result.primary_pct == pytest.approx(5 * 100 / 11)
        assert result.secondary_pct == pytest.approx(3 * 100 / 11)

    def test_empty_histogram_not_detected(self):
        """Test that an empty histogram reports 0 for both ratios."""
        result = detect_from_histogram(SampleHistogram(), DetectorConfig())
        assert result.primary_canonical == 0.0
        assert result.secondary_canonical == 0.0
        assert not result.detected
        assert result.summary() == "AR: not detected"

    def test_prefer_higher_policy(self):
        """Test that the configured rounding policy is used."""
        histogram = SampleHistogram.from_counts({2.38: 10})
        nearest = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))
        higher = detect_from_histogram(
            histogram, DetectorConfig(canonical_ratios=RATIOS, round_up=True)
        )
        assert nearest.primary_canonical == 2.40
        assert higher.primary_canonical == 2.35

    def test_multi_format_higher(self):
        """Test that the taller format becomes primary when requested."""
        histogram = SampleHistogram.from_counts({2.40: 8, 1.78: 3})
        config = DetectorConfig(
            canonical_ratios=RATIOS, multi_format_mode=MultiFormatMode.HIGHER
        )
        result = detect_from_histogram(histogram, config)
        assert result.primary_canonical == 1.78
        assert result.secondary_canonical == 2.40
        assert result.summary() == "AR: 1.78 (AR2: 2.40)"

    def test_secondary_rounded_independently(self):
        """Test that both ratios are rounded independently."""
        histogram = SampleHistogram.from_counts({2.40: 8, 2.30: 3})
        result = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))
        assert result.primary_canonical == 2.40
        assert result.secondary_canonical == 2.35

    def test_rare_secondary_does_not_flip_wider(self):
        """Test that a single wide sample cannot become primary in wider mode."""
        histogram = SampleHistogram.from_counts({1.78: 200, 2.40: 1})
        config = DetectorConfig(
            canonical_ratios=RATIOS, multi_format_mode=MultiFormatMode.WIDER
        )
        result = detect_from_histogram(histogram, config)
        assert result.primary_canonical == 1.78
        assert result.secondary_canonical == 0.0
        assert result.summary() == "AR: 1.78"

    def test_rare_secondary_kept_when_mode_off(self):
        """Test that the default mode still reports a rare secondary ratio."""
        histogram = SampleHistogram.from_counts({1.78: 200, 2.40: 1})
        result = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))
        assert result.primary_canonical == 1.78
        assert result.secondary_canonical == 2.40

    def test_configured_threshold(self):
        """Test that the multi-format threshold comes from the config."""
        histogram = SampleHistogram.from_counts({2.40: 8, 1.78: 3})
        config = DetectorConfig(
            canonical_ratios=RATIOS,
            multi_format_mode=MultiFormatMode.HIGHER,
            multi_format_threshold_pct=50.0,
        )
        result = detect_from_histogram(histogram, config)
        assert result.primary_canonical == 2.40
        assert not result.has_secondary


def _mixed_histogram() -> SampleHistogram:
    """Scope feature with flat segments, cropped from a 1920x1080 frame."""
    histogram = SampleHistogram.from_counts({2.40: 8, 1.78: 3})
    histogram.crop_sizes = CropSizeCounts(
        widths={1920: 11}, heights={800: 8, 1080: 3}, sample_aspect_ratio=1.0
    )
    return histogram


class TestDetectResolution:
    """Tests for the picture size inside the black bars."""

    def test_single_format(self):
        """Test that the most frequent crop height gives the resolution."""
        result = detect_from_histogram(
            _mixed_histogram(), DetectorConfig(canonical_ratios=RATIOS)
        )
        assert (result.width, result.height) == (1920, 800)
        assert result.resolution == "1920x800"

    def test_higher_keeps_taller_height(self):
        """Test that the taller format's height wins in higher mode."""
        config = DetectorConfig(canonical_ratios=RATIOS, multi_format_mode=MultiFormatMode.HIGHER)
        result = detect_from_histogram(_mixed_histogram(), config)
        assert result.height == 1080
        assert result.width == 1922

    def test_wider_keeps_shorter_height(self):
        """Test that the wider format's height wins in wider mode."""
        config = DetectorConfig(canonical_ratios=RATIOS, multi_format_mode=MultiFormatMode.WIDER)
        result = detect_from_histogram(_mixed_histogram(), config)
        assert result.resolution == "1920x800"

    def test_height_tie_prefers_primary_ratio(self):
        """Test that equally common heights resolve to the one matching the primary."""
        histogram = SampleHistogram.from_counts({2.40: 5, 1.78: 5})
        histogram.crop_sizes = CropSizeCounts(widths={1920: 10}, heights={800: 5, 1080: 5})
        result = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))
        assert result.primary_raw == 2.40
        assert result.resolution == "1920x800"

    def test_anamorphic_width_uses_sample_aspect_ratio(self):
        """Test that the width is given in stored pixels for non-square pixels."""
        histogram = SampleHistogram.from_counts({2.40: 5})
        histogram.crop_sizes = CropSizeCounts(
            widths={1440: 5}, heights={800: 5}, sample_aspect_ratio=4 / 3
        )
        result = detect_from_histogram(histogram, DetectorConfig(canonical_ratios=RATIOS))
        assert result.resolution == "1440x800"

    def test_without_crop_sizes(self):
        """Test that ratio-only histograms report no resolution."""
        result = detect_from_histogram(
            SampleHistogram.from_counts({2.40: 5}), DetectorConfig(canonical_ratios=RATIOS)
        )
        assert (result.width, result.height) == (0, 0)
        assert result.resolution == "-"
        assert result.to_dict()["resolution"] is None

    def test_not_detected(self):
        """Test that an empty histogram has no resolution."""
        sizes = CropSizeCounts()
        assert detect_resolution(sizes, ClassificationResult(), 0.05) == (0, 0)


class TestDetectionResult:
    """Tests for DetectionResult presentation."""

    def test_summary_without_secondary(self):
        """Test the single-format summary line."""
        result = DetectionResult(
            primary_raw=1.79, secondary_raw=0.0, primary_canonical=1.78, secondary_canonical=0.0
        )
        assert result.summary() == "AR: 1.78"
        assert result.primary_label == "16:9 (1.78:1)"

    def test_to_dict(self):
        """Test JSON-ready export."""
        result = DetectionResult(
            primary_raw=2.4,
            secondary_raw=0.0,
            primary_canonical=2.4,
            secondary_canonical=0.0,
            usable_samples=10,
            total_samples=12,
            width=1920,
            height=800,
            source=Path("movie.mkv"),
        )
        data = result.to_dict()
        assert data["source"] == "movie.mkv"
        assert data["resolution"] == "1920x800"
        assert data["primary_canonical"] == 2.4
        assert data["primary_label"] == "Anamorphic widescreen (2.39:1 & 12:5)"
        assert data["secondary_label"] is None


class TestDescribeRatio:
    """Tests for ratio display names."""

    def test_known_ratio(self):
        """Test a standard ratio name."""
        assert describe_ratio(1.85) == "Widescreen (1.85:1)"

    def test_unknown_ratio(self):
        """Test fallback formatting for non-standard ratios."""
        assert describe_ratio(2.1) == "2.10:1"

    def test_zero(self):
        """Test the 'no ratio' value."""
        assert describe_ratio(0.0) == "-"


class TestAspectRatioDetector:
    """Tests for the detector with an injected sampler."""

    def _sampler(self) -> FakeSampler:
        return FakeSampler(
            {
                "scope.mkv": SampleHistogram.from_counts({2.39: 9, 2.40: 1}),
                "flat.mkv": SampleHistogram.from_counts({1.85: 7, 1.86: 2}),
                "tv.mkv": SampleHistogram.from_counts({1.78: 12}),
                "dark.mkv": SampleHistogram(total_samples=10),
            }
        )

    def test_detect_single_file(self):
        """Test detection of one file, including the progress callback."""
        detector = AspectRatioDetector(self._sampler(), DetectorConfig(canonical_ratios=RATIOS))
        progress: list[float] = []
        result = detector.detect(Path("scope.mkv"), progress=progress.append)
        assert result.primary_raw == 2.39
        assert result.primary_canonical == 2.40
        assert result.source == Path("scope.mkv")
        assert progress == [1.0]

    def test_detect_without_usable_samples(self):
        """Test that a file with only rejected samples is not detected."""
        detector = AspectRatioDetector(self._sampler(), DetectorConfig())
        result = detector.detect(Path("dark.mkv"))
        assert not result.detected
        assert result.total_samples == 10

    def test_sampler_errors_propagate(self):
        """Test that sampling failures reach the caller."""
        detector = AspectRatioDetector(self._sampler(), DetectorConfig())
        with pytest.raises(SamplerError):
            _ = detector.detect(Path("missing.mkv"))

    def test_detect_many_keeps_input_order(self):
        """Test that parallel detection returns results in input order."""
        sampler = self._sampler()
        detector = AspectRatioDetector(sampler, DetectorConfig(canonical_ratios=RATIOS))
        paths = [Path("tv.mkv"), Path("scope.mkv"), Path("flat.mkv"), Path("tv.mkv")]

        results = detector.detect_many(paths, max_workers=3)

        assert [r.source for r in results] == paths
        assert [r.primary_canonical for r in results] == [1.78, 2.40, 1.85, 1.78]

    def test_detect_many_sequential(self):
        """Test that a single worker runs in the calling thread."""
        sampler = self._sampler()
        detector = AspectRatioDetector(sampler, DetectorConfig(canonical_ratios=RATIOS))
        results = detector.detect_many([Path("flat.mkv"), Path("scope.mkv")])
        assert [r.primary_canonical for r in results] == [1.85, 2.40]
        assert sampler.threads == {threading.current_thread().name}

    def test_concurrent_results_match_sequential(self):
        """Test that concurrent detection gives the same answers as sequential."""
        config = DetectorConfig(canonical_ratios=RATIOS)
        paths = [Path(name) for name in ("scope.mkv", "flat.mkv", "tv.mkv")] * 4
        sequential = AspectRatioDetector(self._sampler(), config).detect_many(paths)
        parallel = AspectRatioDetector(self._sampler(), config).detect_many(paths, max_workers=4)
        assert sequential == parallel
