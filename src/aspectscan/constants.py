"""Constants used throughout AspectScan."""

from __future__ import annotations

# =============================================================================
# Ratio Precision Constants
# =============================================================================

# Decimal places for histogram keys (raw ratios are bucketed at this precision)
RATIO_DECIMALS: int = 2

# Decimal places used when comparing differences against a tolerance
# (absorbs binary floating point drift such as 2.45 - 2.40 = 0.0500000000000003)
COMPARE_DECIMALS: int = 9

# Ratio reported for a crop with zero height
INVALID_RATIO_SENTINEL: float = 9.99

# =============================================================================
# Classifier Constants
# =============================================================================

# Ratios within this distance of each other are indistinguishable
CLASSIFIER_EPSILON: float = 0.05

# Minimum share (percent of usable samples) for a secondary ratio to be trusted
SECONDARY_MIN_PCT: float = 0.0

# Minimum share (percent of usable samples) of the secondary ratio before the
# multi-format mode may reorder primary and secondary
MULTI_FORMAT_THRESHOLD_PCT: float = 6.0

# =============================================================================
# Rounding Constants
# =============================================================================

# Default tolerance for the prefer-higher rounding policy (percent of raw ratio)
ROUND_UP_TOLERANCE_PCT: float = 2.0

# Standard cinema and broadcast ratios with their display names
STANDARD_ASPECT_RATIOS: dict[float, str] = {
    1.33: "4:3 (1.33:1)",
    1.37: "11:8 (1.37:1)",
    1.43: "IMAX (1.43:1)",
    1.56: "14:9 (1.56:1)",
    1.66: "5:3 (1.66:1)",
    1.78: "16:9 (1.78:1)",
    1.85: "Widescreen (1.85:1)",
    1.90: "Digital IMAX (1.90:1)",
    2.00: "18:9 (2.00:1)",
    2.20: "70mm (2.20:1)",
    2.35: "Anamorphic (2.35:1)",
    2.39: "Anamorphic widescreen (2.39:1 & 12:5)",
    2.40: "Anamorphic widescreen (2.39:1 & 12:5)",
    2.55: "CinemaScope 55 (2.55:1)",
    2.76: "Ultra Panavision 70 (2.76:1)",
}

# Canonical list used when no configuration file provides one
DEFAULT_CANONICAL_RATIOS: tuple[float, ...] = (
    1.33,
    1.37,
    1.43,
    1.56,
    1.66,
    1.78,
    1.85,
    1.90,
    2.00,
    2.20,
    2.35,
    2.40,
    2.55,
    2.76,
)

# =============================================================================
# Sampling Constants
# =============================================================================

# Portion of the video skipped at the start and end (studio logos, credits)
IGNORE_BEGINNING_PCT: float = 2.0
IGNORE_END_PCT: float = 8.0

# Samples closer than this to the scan end are not taken (seconds)
SAMPLE_END_MARGIN_SECONDS: int = 2

# Factor applied to the sample increment after an implausible sample
SAMPLE_SKIP_ADJUSTMENT_FACTOR: float = 1.4

# Sample aspect ratios at or below this are treated as square pixels
MIN_PLAUSIBLE_SAR: float = 0.5

# Cropped area must exceed these shares of the encoded frame
PLAUSI_WIDTH_PCT: float = 50.0
PLAUSI_HEIGHT_PCT: float = 60.0

# Maximum asymmetry between opposite black bars (percent of frame size)
PLAUSI_WIDTH_DELTA_PCT: float = 1.5
PLAUSI_HEIGHT_DELTA_PCT: float = 2.0

# Dark level used for cropdetect (percent of the bit-depth range)
DARK_LEVEL_PCT: float = 7.0
DARK_LEVEL_MAX_PCT: float = 13.0

# Dark level reported when the first frame could not be measured
DARK_LEVEL_UNKNOWN: int = 9999

# cropdetect rounding (pixels)
CROPDETECT_ROUND: int = 2

# =============================================================================
# Display Constants
# =============================================================================

# Decimal places for ratios in console output and logs
DISPLAY_DECIMALS: int = 2

# Progress bar width in characters
PROGRESS_BAR_WIDTH: int = 40

# Log section separator width
LOG_SEPARATOR_WIDTH: int = 60

# Log section separator character
LOG_SEPARATOR_CHAR: str = "="
