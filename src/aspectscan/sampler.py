"""Frame sampling with FFmpeg cropdetect.

The sampler scans a video at evenly spaced positions, measures the picture
area inside any black bars, and records each plausible measurement as a raw
aspect ratio in a SampleHistogram. Classification of that histogram happens
elsewhere; samplers are interchangeable through the FrameSampler protocol.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Protocol

from .constants import (
    CROPDETECT_ROUND,
    DARK_LEVEL_UNKNOWN,
    INVALID_RATIO_SENTINEL,
    SAMPLE_END_MARGIN_SECONDS,
    SAMPLE_SKIP_ADJUSTMENT_FACTOR,
)
from .histogram import CropSizeCounts, SampleHistogram
from .media import VideoInfo, parse_video_info
from .settings import SamplingConfig
from .tool_parsers import CropDetection, parse_cropdetect, parse_signalstats_ylow
from .utils import run_capture

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class SamplerError(Exception):
    """Raised when a video cannot be sampled at all."""


class FrameSampler(Protocol):
    """Produces a sample histogram for one video file."""

    def sample(
        self, input_path: Path, progress: ProgressCallback | None = None
    ) -> SampleHistogram: ...


@dataclass(frozen=True)
class SamplePlan:
    """Scan window and spacing for one video (all values in seconds)."""

    start: float
    end: float
    increment: float
    first_position: float

    @property
    def stop(self) -> float:
        """Positions at or beyond this are not sampled."""
        return self.end - SAMPLE_END_MARGIN_SECONDS

    def progress(self, position: float) -> float:
        """Fraction of the scan window covered at ``position`` (0..1)."""
        span = self.end - self.start
        if span <= 0:
            return 1.0
        return min(max((position - self.start) / span, 0.0), 1.0)


def compute_sample_plan(duration: float, sampling: SamplingConfig) -> SamplePlan:
    """Spread samples across the video, skipping the head and tail.

    At least ``min_number`` samples are placed evenly inside the window; when
    that would leave gaps wider than ``max_gap`` seconds, samples are placed
    every ``max_gap`` seconds starting at the window start instead.
    """
    setting = sampling.sample_setting
    start = float(int(duration * sampling.ignore_beginning_pct / 100.0))
    end = float(int(duration * (1.0 - sampling.ignore_end_pct / 100.0)))
    increment = (end - start) / (setting.min_number + 1.0)
    first = start + increment
    if increment > setting.max_gap:
        increment = float(setting.max_gap)
        first = start
    return SamplePlan(start=start, end=end, increment=increment, first_position=first)


def advance_position(seconds: float, plan: SamplePlan, skip_adjustment: float = 0.0) -> float:
    """Next sample position.

    A non-zero ``skip_adjustment`` (set after an implausible sample) moves the
    next position back so the area next to the rejected sample is sampled.
    Positions never fall before the scan window start.
    """
    seconds += plan.increment - skip_adjustment
    if seconds < plan.start:
        seconds = float(round(plan.start + 0.5 * skip_adjustment))
    return seconds


def compute_skip_adjustment(increment: float) -> float:
    """Step-back distance after an implausible sample.

    The increment is rounded half up to whole seconds first, matching the
    whole-second seek positions.
    """
    return math.floor(increment + 0.5) * SAMPLE_SKIP_ADJUSTMENT_FACTOR


def compute_dark_level(ylow: int | None, bit_depth: int, sampling: SamplingConfig) -> int:
    """Derive the cropdetect black threshold from the first frame's YLOW.

    The first frame is usually black, so its lowest luma plus a small margin
    is a good threshold. Unmeasurable or implausibly bright levels fall back
    to ``dark_level_pct`` of the bit-depth range.
    """
    value_range = 2**bit_depth
    if ylow is None:
        dark_level = DARK_LEVEL_UNKNOWN
    else:
        dark_level = ylow + int(2 ** (bit_depth - 7))

    if dark_level * 100.0 / value_range > sampling.dark_level_max_pct:
        dark_level = int(round(value_range * sampling.dark_level_pct / 100.0))
    return dark_level


def check_plausibility(
    detection: CropDetection, info: VideoInfo, sampling: SamplingConfig
) -> str | None:
    """Return the reason a crop measurement is implausible, or None if usable.

    Rejects asymmetric bars (logos, burned-in subtitles, dark scenes) and crops
    that cover too little of the encoded frame.
    """
    left, right, top, bottom = detection.bars(info.width, info.height)

    if abs(left - right) > info.width * sampling.plausi_width_delta_pct / 100.0:
        return (
            f"More than {sampling.plausi_width_delta_pct}% difference "
            + "between left and right black bar"
        )
    if abs(top - bottom) > info.height * sampling.plausi_height_delta_pct / 100.0:
        return (
            f"More than {sampling.plausi_height_delta_pct}% difference "
            + "between top and bottom black bar"
        )
    if info.width * sampling.plausi_width_pct / 100.0 >= detection.width:
        return (
            f"Cropped width ({detection.width}px) is less than "
            + f"{sampling.plausi_width_pct}% of video width ({info.width}px)"
        )
    if info.height * sampling.plausi_height_pct / 100.0 >= detection.height:
        return (
            f"Cropped height ({detection.height}px) is less than "
            + f"{sampling.plausi_height_pct}% of video height ({info.height}px)"
        )
    return None


def measure_ratio(detection: CropDetection, sample_aspect_ratio: float) -> float:
    """Displayed aspect ratio of a crop rectangle (SAR applied)."""
    if detection.height <= 0:
        return INVALID_RATIO_SENTINEL
    return round(detection.width / detection.height * sample_aspect_ratio, 6)


def _format_position(seconds: float) -> str:
    return str(timedelta(seconds=int(seconds)))


class FFmpegCropSampler:
    """FrameSampler that runs FFmpeg cropdetect over short video segments."""

    def __init__(
        self,
        sampling: SamplingConfig,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        timeout: float | None = None,
    ) -> None:
        self.sampling: SamplingConfig = sampling
        self.ffmpeg_bin: str = ffmpeg_bin
        self.ffprobe_bin: str = ffprobe_bin
        self.timeout: float | None = timeout

    def read_info(self, input_path: Path) -> VideoInfo:
        return parse_video_info(input_path, ffprobe_bin=self.ffprobe_bin)

    def measure_dark_level(self, input_path: Path, info: VideoInfo) -> int:
        """Measure the black threshold on the first video frame."""
        cmd = [
            self.ffmpeg_bin,
            "-hide_banner",
            "-nostats",
            "-i",
            str(input_path),
            "-map",
            "0:v:0",
            "-frames:v",
            "1",
            "-vf",
            "signalstats,metadata=mode=print",
            "-f",
            "null",
            "-",
        ]
        ylow: int | None = None
        try:
            ylow = parse_signalstats_ylow(run_capture(cmd, timeout=self.timeout))
        except RuntimeError as e:
            logger.warning("Could not measure dark level of %s: %s", input_path.name, e)

        dark_level = compute_dark_level(ylow, info.bit_depth, self.sampling)
        logger.debug("Dark level: YLOW=%s -> cropdetect limit %d", ylow, dark_level)
        return dark_level

    def scan_segment(self, input_path: Path, position: int, dark_level: int) -> str:
        """Run cropdetect over one sample segment and return FFmpeg's output."""
        duration = self.sampling.sample_setting.duration
        cmd = [
            self.ffmpeg_bin,
            "-hide_banner",
            "-nostats",
            "-ss",
            str(position),
            "-i",
            str(input_path),
            "-t",
            str(duration),
            "-map",
            "0:v:0",
            "-vf",
            f"cropdetect=limit={dark_level}:round={CROPDETECT_ROUND}:reset=1",
            "-an",
            "-sn",
            "-f",
            "null",
            "-",
        ]
        return run_capture(cmd, timeout=self.timeout)

    def clamp_position(self, seconds: float, info: VideoInfo) -> int:
        """Whole-second seek position that leaves room for a full sample."""
        position = int(round(seconds))
        if position >= info.duration:
            position = int(info.duration) - self.sampling.sample_setting.duration
        return max(position, 0)

    def sample(
        self, input_path: Path, progress: ProgressCallback | None = None
    ) -> SampleHistogram:
        """Scan a video and return its raw aspect ratio histogram.

        Raises:
            InvalidVideoFileError: If the file cannot be read
            SamplerError: If the video duration leaves nothing to scan
        """
        info = self.read_info(input_path)
        plan = compute_sample_plan(info.duration, self.sampling)
        if plan.end <= plan.start:
            raise SamplerError(
                f"Duration {info.duration:.1f}s of {input_path.name} leaves no scan window"
            )

        dark_level = self.measure_dark_level(input_path, info)
        logger.debug(
            "Scanning %s: %dx%d SAR %.4f (DAR %.3f), %d-bit, window %s-%s, increment %.1fs",
            input_path.name,
            info.width,
            info.height,
            info.sample_aspect_ratio,
            info.display_aspect_ratio,
            info.bit_depth,
            _format_position(plan.start),
            _format_position(plan.end),
            plan.increment,
        )

        histogram = SampleHistogram(
            crop_sizes=CropSizeCounts(sample_aspect_ratio=info.sample_aspect_ratio)
        )
        skip_adjustment = 0.0
        seconds = plan.first_position
        while seconds < plan.stop:
            position = self.clamp_position(seconds, info)
            skip_adjustment = self._sample_position(
                input_path, position, plan, info, dark_level, histogram, skip_adjustment
            )
            if progress is not None:
                progress(plan.progress(seconds))
            seconds = advance_position(seconds, plan, skip_adjustment)

        if progress is not None:
            progress(1.0)
        logger.debug(
            "Scanned %s: %d usable of %d samples",
            input_path.name,
            histogram.usable_samples,
            histogram.total_samples,
        )
        return histogram

    def _sample_position(
        self,
        input_path: Path,
        position: int,
        plan: SamplePlan,
        info: VideoInfo,
        dark_level: int,
        histogram: SampleHistogram,
        skip_adjustment: float,
    ) -> float:
        """Take one sample; return the skip adjustment for the next position."""
        try:
            output = self.scan_segment(input_path, position, dark_level)
        except RuntimeError as e:
            logger.debug("Error scanning sample at %s: %s", _format_position(position), e)
            histogram.add_skipped()
            return 0.0

        detection = parse_cropdetect(output)
        if detection is None:
            logger.warning(
                "No cropdetect result at %s in %s", _format_position(position), input_path.name
            )
            histogram.add_skipped()
            return 0.0

        left, right, top, bottom = detection.bars(info.width, info.height)
        bars = f"{{{left:4d}|{right:4d}}} {{{top:3d}|{bottom:3d}}}"
        reason = check_plausibility(detection, info, self.sampling)
        if reason is not None:
            logger.debug(
                "Analyzing %ss near %-8s => bars: %s => Sample skipped: %s",
                self.sampling.sample_setting.duration,
                _format_position(position),
                bars,
                reason,
            )
            histogram.add_skipped()
            # Step back once to sample near the rejected position, then move on
            if skip_adjustment == 0:
                return compute_skip_adjustment(plan.increment)
            return 0.0

        ratio = measure_ratio(detection, info.sample_aspect_ratio)
        key = histogram.add(ratio)
        histogram.crop_sizes.add(detection.width, detection.height)
        logger.debug(
            "Analyzing %ss near %-8s => bars: %s crop: %dx%d * SAR => AR %.5f (bucket %.2f)",
            self.sampling.sample_setting.duration,
            _format_position(position),
            bars,
            detection.width,
            detection.height,
            ratio,
            key,
        )
        return 0.0
