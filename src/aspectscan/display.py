"""Display utilities for AspectScan.

This module provides Rich console display functions for the active settings,
per-file detection results, and warnings about files without a result.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.table import Table

from .constants import DISPLAY_DECIMALS
from .detector import DetectionResult
from .modes import MultiFormatMode
from .settings import AppConfig
from .tolerance import format_ratio


def display_settings_summary(
    console: Console,
    config: AppConfig,
    overrides: list[str] | None = None,
    input_count: int = 0,
) -> None:
    """Display active settings summary to console.

    Args:
        console: Rich console for output
        config: Effective configuration (file values with CLI overrides applied)
        overrides: CLI flags that replaced configuration values
        input_count: Number of files to scan
    """
    detector = config.detector
    sampling = config.sampling
    setting = sampling.sample_setting

    console.print()
    console.print("[bold]Settings[/bold]")
    console.print(
        f"  Mode: {sampling.mode.display_name} "
        + f"(min {setting.min_number} samples, max gap {setting.max_gap}s, "
        + f"{setting.duration}s each)"
    )
    if detector.round_up:
        console.print(
            f"  Rounding: Prefer higher (tolerance {detector.round_up_tolerance_pct:g}%)"
        )
    else:
        console.print("  Rounding: Nearest")
    console.print(
        "  Ratios: "
        + ", ".join(format_ratio(r, DISPLAY_DECIMALS) for r in detector.canonical_ratios)
    )
    if detector.multi_format_mode == MultiFormatMode.OFF:
        console.print(f"  Multi-Format: {detector.multi_format_mode.display_name}")
    else:
        console.print(
            f"  Multi-Format: {detector.multi_format_mode.display_name} "
            + f"(threshold {detector.multi_format_threshold_pct:g}%)"
        )

    # Non-default classifier options
    if detector.secondary_min_pct > 0:
        console.print(f"  Secondary Threshold: {detector.secondary_min_pct:g}%")

    if config.source is not None:
        console.print(f"  Config: {config.source}")
    if overrides:
        console.print(f"  Overrides: {', '.join(overrides)}")

    if input_count:
        console.print()
        console.print(f"[bold]Files:[/bold] {input_count}")
        console.print()


def display_results(console: Console, results: list[DetectionResult]) -> None:
    """Display a table with one row per detected file."""
    if not results:
        return

    console.print()
    table = Table(
        title="[bold cyan]Aspect Ratio Detection[/bold cyan]",
        show_header=True,
        header_style="bold cyan",
        title_justify="left",
    )
    table.add_column("File", style="white")
    table.add_column("AR", justify="right")
    table.add_column("Format", style="white")
    table.add_column("AR2", justify="right")
    table.add_column("Resolution", justify="right")
    table.add_column("Raw", justify="right")
    table.add_column("Samples", justify="right")

    for result in results:
        name = result.source.name if result.source is not None else "-"
        if not result.detected:
            table.add_row(
                name, "[red]-[/red]", "[red]not detected[/red]", "-", "-", "-", _samples(result)
            )
            continue

        secondary = "-"
        if result.has_secondary:
            secondary = (
                f"[yellow]{format_ratio(result.secondary_canonical, DISPLAY_DECIMALS)}[/yellow]"
                + f" [dim]({result.secondary_pct:.0f}%)[/dim]"
            )
        raw = format_ratio(result.primary_raw, 3)
        if result.has_secondary:
            raw += f" / {format_ratio(result.secondary_raw, 3)}"

        table.add_row(
            name,
            f"[bold green]{format_ratio(result.primary_canonical, DISPLAY_DECIMALS)}[/bold green]"
            + f" [dim]({result.primary_pct:.0f}%)[/dim]",
            result.primary_label,
            secondary,
            result.resolution,
            raw,
            _samples(result),
        )

    console.print(table)
    console.print()


def _samples(result: DetectionResult) -> str:
    return f"{result.usable_samples}/{result.total_samples}"


def display_undetected_warnings(
    console: Console, log: logging.Logger, results: list[DetectionResult]
) -> None:
    """Warn about files for which no usable sample was measured."""
    warnings: list[str] = []
    for result in results:
        if result.detected:
            continue
        name = result.source.name if result.source is not None else "input"
        warnings.append(
            f"No aspect ratio detected for {name} "
            + f"({result.total_samples} samples, none plausible)"
        )

    for warning in warnings:
        console.print(
            f"[bold yellow]⚠ Warning:[/bold yellow] [yellow]{warning}[/yellow]"
        )
        log.warning(warning)

    if warnings:
        console.print()
