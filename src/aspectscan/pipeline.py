from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .cli import DetectArgs, build_arg_parser, parse_cli, validate_args
from .detector import AspectRatioDetector, DetectionResult
from .display import display_results, display_settings_summary, display_undetected_warnings
from .media import InvalidVideoFileError
from .progress import ScanDisplay
from .sampler import FFmpegCropSampler, SamplerError
from .settings import AppConfig
from .utils import ensure_dir, log_section


def _configure_logging(args: DetectArgs) -> logging.Logger:
    """File-only logging; console output is driven by the Rich UI."""
    level = logging.INFO
    if args.quiet:
        level = logging.WARNING
    elif args.verbose:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.NullHandler()],
        force=True,
    )
    log = logging.getLogger(__name__)

    if args.log_file:
        log_file = Path(args.log_file)
        try:
            _ = ensure_dir(log_file.parent)
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
            logging.getLogger().addHandler(fh)
        except OSError as e:
            log.warning("Could not attach file logger at %s: %s", log_file, e)
    return log


def _log_settings(log: logging.Logger, config: AppConfig, overrides: list[str]) -> None:
    detector = config.detector
    sampling = config.sampling
    setting = sampling.sample_setting

    log.info("Settings")
    log.info("  Config: %s", config.source or "built-in defaults")
    log.info(
        "  Mode: %s (duration=%ds, min_number=%d, max_gap=%ds)",
        sampling.mode.display_name,
        setting.duration,
        setting.min_number,
        setting.max_gap,
    )
    log.info(
        "  Rounding: %s",
        f"prefer higher ({detector.round_up_tolerance_pct:g}%)"
        if detector.round_up
        else "nearest",
    )
    log.info("  Ratios: %s", ", ".join(f"{r:.2f}" for r in detector.canonical_ratios))
    log.info("  Epsilon: %s", detector.epsilon)
    log.info("  Secondary threshold: %s%%", detector.secondary_min_pct)
    log.info("  Multi-format: %s", detector.multi_format_mode.display_name)
    log.info("  Multi-format threshold: %s%%", detector.multi_format_threshold_pct)
    if overrides:
        log.info("  CLI overrides: %s", ", ".join(overrides))


def _scan_sequential(
    detector: AspectRatioDetector,
    inputs: list[Path],
    display: ScanDisplay,
    log: logging.Logger,
) -> tuple[list[DetectionResult], int]:
    results: list[DetectionResult] = []
    failures = 0
    for input_path in inputs:
        log.info("")
        log.info("Source: %s", input_path.name)
        try:
            with display.file_scan(input_path.name) as scan:
                result = detector.detect(input_path, progress=scan.fraction)
                scan.summary = f"[white]({result.summary()})[/white]"
        except (InvalidVideoFileError, SamplerError) as e:
            display.console.print(f"\n[bold red]Error:[/bold red] {e}\n")
            log.error("Detection failed for %s: %s", input_path.name, e)
            failures += 1
            continue
        results.append(result)
    return results, failures


def _scan_parallel(
    detector: AspectRatioDetector,
    inputs: list[Path],
    jobs: int,
    display: ScanDisplay,
    log: logging.Logger,
) -> tuple[list[DetectionResult], int]:
    def detect_one(input_path: Path) -> DetectionResult | Exception:
        try:
            return detector.detect(input_path)
        except (InvalidVideoFileError, SamplerError) as e:
            return e

    results: list[DetectionResult] = []
    failures = 0
    with display.batch_scan(len(inputs), jobs) as scan:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            for input_path, outcome in zip(inputs, pool.map(detect_one, inputs)):
                scan.file_done()
                if isinstance(outcome, Exception):
                    display.console.print(
                        f"[bold red]Error:[/bold red] {input_path.name}: {outcome}"
                    )
                    log.error("Detection failed for %s: %s", input_path.name, outcome)
                    failures += 1
                    continue
                results.append(outcome)
    return results, failures


def _write_json(path: Path, results: list[DetectionResult]) -> None:
    _ = ensure_dir(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in results], f, indent=2)
        _ = f.write("\n")


def run_pipeline(args: DetectArgs) -> int:
    parser = build_arg_parser()

    # Validate arguments and merge CLI overrides onto the configuration file
    validation = validate_args(args, parser)
    config = validation.config

    display = ScanDisplay(show_title=True)
    log = _configure_logging(args)

    log_section(log, "Initialization")
    _log_settings(log, config, validation.overrides)

    display_settings_summary(
        display.console, config, validation.overrides, input_count=len(args.inputs)
    )

    sampler = FFmpegCropSampler(
        config.sampling,
        ffmpeg_bin=args.ffmpeg_bin,
        ffprobe_bin=args.ffprobe_bin,
        timeout=args.timeout,
    )
    detector = AspectRatioDetector(sampler, config.detector)

    log_section(log, "Detection")

    inputs = list(args.inputs)
    if args.jobs > 1 and len(inputs) > 1:
        results, failures = _scan_parallel(detector, inputs, args.jobs, display, log)
    else:
        results, failures = _scan_sequential(detector, inputs, display, log)

    display_results(display.console, results)
    display_undetected_warnings(display.console, log, results)

    log_section(log, "Results")
    for result in results:
        name = result.source.name if result.source is not None else "input"
        log.info(
            "%s: %s %s [raw %.5f / %.5f, %d of %d samples usable]",
            name,
            result.resolution,
            result.summary(),
            result.primary_raw,
            result.secondary_raw,
            result.usable_samples,
            result.total_samples,
        )

    if args.json_output is not None:
        try:
            _write_json(args.json_output, results)
        except OSError as e:
            display.console.print(f"\n[bold red]Error:[/bold red] Could not write {args.json_output}: {e}\n")
            log.error("Could not write JSON results to %s: %s", args.json_output, e)
            return 1
        display.console.print(f"[cyan]Results written to {args.json_output}[/cyan]")
        log.info("JSON results: %s", args.json_output)

    if failures:
        log.error("%d of %d files failed", failures, len(inputs))
        return 1
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """CLI wrapper for entry points."""
    return run_pipeline(parse_cli(argv))


if __name__ == "__main__":
    raise SystemExit(run_pipeline(parse_cli()))
