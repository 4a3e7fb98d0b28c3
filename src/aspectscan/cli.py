"""CLI argument parsing and validation for AspectScan.

This module provides the DetectArgs dataclass, parser construction, and the
validation step that merges command-line overrides onto the loaded YAML
configuration.
"""

from __future__ import annotations

import argparse
from collections.abc import Iterable
from dataclasses import MISSING, dataclass, fields, replace
from pathlib import Path

from .modes import MultiFormatMode, SamplingMode
from .settings import AppConfig, ConfigError, load_config, normalize_ratio_list


@dataclass
class DetectArgs:
    inputs: list[Path]

    config: Path | None = None

    # Detector overrides (None keeps the configuration file value)
    ratios: list[str] | None = None
    round_up: bool | None = None
    round_up_tolerance: float | None = None
    secondary_min_pct: float | None = None
    multi_format: str | None = None
    multi_format_threshold: float | None = None

    # Sampling overrides
    mode: str | None = None
    timeout: float | None = None

    jobs: int = 1
    json_output: Path | None = None

    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"

    log_file: Path | None = None
    quiet: bool = False
    verbose: bool = False


def get_default(field_name: str) -> object:
    """Get default value from DetectArgs dataclass field."""
    for field in fields(DetectArgs):
        if field.name == field_name:
            return field.default if field.default is not MISSING else None  # pyright: ignore[reportAny]
    raise ValueError(f"Field {field_name} not found in DetectArgs")


# Internal alias for use within this module
_get_default = get_default


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="aspectscan",
        description="Detect the aspect ratio of video files from black bar measurements",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Positional arguments
    _ = p.add_argument("inputs", type=Path, nargs="+", metavar="INPUT", help="Input video path(s)")

    _ = p.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        default=_get_default("config"),
        help="Configuration file (default: aspectscan.yaml in the working directory or app root)",
    )

    # -------------------------------------------------------------------------
    # Detection Options
    # -------------------------------------------------------------------------
    detect_group = p.add_argument_group("Detection Options")
    _ = detect_group.add_argument(
        "--mode",
        type=str,
        default=_get_default("mode"),
        choices=[m.value for m in SamplingMode],
        help="Sampling density (default: from config, else 'default')",
    )
    _ = detect_group.add_argument(
        "--multi-format",
        type=str,
        default=_get_default("multi_format"),
        choices=[m.value for m in MultiFormatMode],
        help="Which ratio is primary for multi-format videos (default: from config, else 'off')",
    )
    _ = detect_group.add_argument(
        "--multi-format-threshold",
        type=float,
        metavar="PCT",
        default=_get_default("multi_format_threshold"),
        help="Minimum share of samples of the second format before --multi-format applies "
        + "(default: from config, else 6)",
    )
    _ = detect_group.add_argument(
        "--secondary-min-pct",
        type=float,
        metavar="PCT",
        default=_get_default("secondary_min_pct"),
        help="Minimum share of samples for a secondary ratio to be reported",
    )

    # -------------------------------------------------------------------------
    # Rounding Options
    # -------------------------------------------------------------------------
    rounding_group = p.add_argument_group("Rounding Options")
    _ = rounding_group.add_argument(
        "--ratios",
        type=str,
        metavar="LIST",
        default=_get_default("ratios"),
        help="Comma-separated canonical ratios, e.g. '1.33,1.78,1.85,2.40' or '4:3,16:9'",
    )
    _ = rounding_group.add_argument(
        "--round-up",
        action="store_const",
        const=True,
        dest="round_up",
        default=_get_default("round_up"),
        help="Prefer the next higher canonical ratio within the tolerance",
    )
    _ = rounding_group.add_argument(
        "--nearest",
        action="store_const",
        const=False,
        dest="round_up",
        help="Round to the nearest canonical ratio",
    )
    _ = rounding_group.add_argument(
        "--round-up-tolerance",
        type=float,
        metavar="PCT",
        default=_get_default("round_up_tolerance"),
        help="Tolerance for --round-up as percent of the raw ratio",
    )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------
    exec_group = p.add_argument_group("Execution")
    _ = exec_group.add_argument(
        "-j",
        "--jobs",
        type=int,
        metavar="N",
        default=_get_default("jobs"),
        help=f"Number of files scanned in parallel (default: {_get_default('jobs')})",
    )
    _ = exec_group.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        default=_get_default("timeout"),
        help="Timeout for each FFmpeg invocation",
    )
    _ = exec_group.add_argument(
        "--json",
        type=Path,
        metavar="PATH",
        dest="json_output",
        default=_get_default("json_output"),
        help="Write detection results as JSON",
    )

    # -------------------------------------------------------------------------
    # Tool Paths
    # -------------------------------------------------------------------------
    paths_group = p.add_argument_group("Tool Paths")
    _ = paths_group.add_argument(
        "--ffmpeg-bin",
        type=str,
        metavar="PATH",
        default=_get_default("ffmpeg_bin"),
        help="FFmpeg binary",
    )
    _ = paths_group.add_argument(
        "--ffprobe-bin",
        type=str,
        metavar="PATH",
        default=_get_default("ffprobe_bin"),
        help="FFprobe binary",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    logging_group = p.add_argument_group("Logging")
    _ = logging_group.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    _ = logging_group.add_argument(
        "-q", "--quiet", action="store_true", help="Reduce logging (warnings only)"
    )
    _ = logging_group.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        default=_get_default("log_file"),
        help="Write a detection log to file",
    )

    return p


def parse_cli(argv: Iterable[str] | None = None) -> DetectArgs:
    parser = build_arg_parser()
    argv_list: list[str] | None = list(argv) if argv is not None else None
    parsed = parser.parse_args(argv_list)

    # Convert comma-separated ratios to list
    ratios = getattr(parsed, "ratios", None)
    if isinstance(ratios, str):
        parsed.ratios = [r.strip() for r in ratios.split(",") if r.strip()]

    return DetectArgs(**vars(parsed))  # pyright: ignore[reportAny]


# =============================================================================
# Argument Validation
# =============================================================================


@dataclass
class ValidationResult:
    """Result of argument validation with the effective configuration."""

    config: AppConfig
    overrides: list[str]  # CLI flags that replaced configuration values


def validate_execution_args(args: DetectArgs, parser: argparse.ArgumentParser) -> None:
    """Validate parallelism, timeout and logging flags."""
    if args.jobs < 1:
        parser.error(f"--jobs must be at least 1 (got {args.jobs})")
    if args.timeout is not None and args.timeout <= 0:
        parser.error(f"--timeout must be greater than 0 (got {args.timeout})")
    if args.verbose and args.quiet:
        parser.error("--verbose and --quiet are mutually exclusive")


def validate_detection_args(args: DetectArgs, parser: argparse.ArgumentParser) -> None:
    """Validate rounding and classification overrides."""
    if args.round_up_tolerance is not None and args.round_up_tolerance <= 0:
        parser.error(
            f"--round-up-tolerance must be greater than 0 (got {args.round_up_tolerance})"
        )
    if args.secondary_min_pct is not None and not 0 <= args.secondary_min_pct <= 100:
        parser.error(
            f"--secondary-min-pct must be between 0 and 100 (got {args.secondary_min_pct})"
        )
    if args.multi_format_threshold is not None and not 0 <= args.multi_format_threshold <= 100:
        parser.error(
            "--multi-format-threshold must be between 0 and 100 "
            + f"(got {args.multi_format_threshold})"
        )
    if args.ratios is not None and not args.ratios:
        parser.error("--ratios must contain at least one aspect ratio")


def validate_input_args(args: DetectArgs, parser: argparse.ArgumentParser) -> None:
    """Validate that every input path exists."""
    missing = [str(p) for p in args.inputs if not p.exists()]
    if missing:
        parser.error(f"Input not found: {', '.join(missing)}")


def apply_cli_overrides(config: AppConfig, args: DetectArgs) -> tuple[AppConfig, list[str]]:
    """Merge command-line overrides onto a loaded configuration.

    Returns:
        Tuple of (effective configuration, names of the flags that were applied)

    Raises:
        ConfigError: If an override produces an invalid configuration
    """
    applied: list[str] = []
    detector = config.detector
    sampling = config.sampling

    if args.ratios is not None:
        detector = replace(detector, canonical_ratios=normalize_ratio_list(args.ratios))
        applied.append("--ratios")
    if args.round_up is not None:
        detector = replace(detector, round_up=args.round_up)
        applied.append("--round-up" if args.round_up else "--nearest")
    if args.round_up_tolerance is not None:
        detector = replace(detector, round_up_tolerance_pct=args.round_up_tolerance)
        applied.append("--round-up-tolerance")
    if args.secondary_min_pct is not None:
        detector = replace(detector, secondary_min_pct=args.secondary_min_pct)
        applied.append("--secondary-min-pct")
    if args.multi_format is not None:
        detector = replace(detector, multi_format_mode=MultiFormatMode(args.multi_format))
        applied.append("--multi-format")
    if args.multi_format_threshold is not None:
        detector = replace(detector, multi_format_threshold_pct=args.multi_format_threshold)
        applied.append("--multi-format-threshold")
    if args.mode is not None:
        sampling = replace(sampling, mode=SamplingMode(args.mode))
        applied.append("--mode")

    return replace(config, detector=detector, sampling=sampling), applied


def validate_args(args: DetectArgs, parser: argparse.ArgumentParser) -> ValidationResult:
    """Validate all arguments and build the effective configuration.

    Args:
        args: Parsed command-line arguments
        parser: Argument parser for error reporting

    Returns:
        ValidationResult with the merged configuration

    Raises:
        SystemExit: Via parser.error() if validation fails
    """
    validate_execution_args(args, parser)
    validate_detection_args(args, parser)
    validate_input_args(args, parser)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        parser.error(f"Failed to load configuration: {e}")

    try:
        config, overrides = apply_cli_overrides(config, args)
    except ConfigError as e:
        parser.error(str(e))

    return ValidationResult(config=config, overrides=overrides)
