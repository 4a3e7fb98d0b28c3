"""Rich progress output for scans.

A scan is either one file (progress driven by the sampler's 0..1 fraction) or
a batch of files scanned in parallel (progress counted in finished files).
Both render as a transient bar that is replaced by a "Done!" line.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from types import TracebackType

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from .constants import PROGRESS_BAR_WIDTH
from .version import __version__

# A single file scan maps the sampler fraction onto a percentage bar
PERCENT_TOTAL = 100.0


@dataclass
class ScanDisplay:
    """Console front end: prints the title panel and opens scan bars."""

    title: str = "AspectScan"
    console: Console = field(default_factory=Console)
    show_title: bool = True

    def __post_init__(self) -> None:
        if self.show_title:
            self.console.print(
                Panel.fit(
                    f"[bold]{self.title}[/bold] [dim]v{__version__}[/dim]",
                    border_style="cyan",
                    padding=(0, 2),
                )
            )

    @contextmanager
    def file_scan(self, name: str) -> Generator[ScanProgress, None, None]:
        """Percentage bar with ETA for one file; feed it ``scan.fraction``."""
        with ScanProgress(self.console, f"Scanning {name}", PERCENT_TOTAL, show_eta=True) as scan:
            yield scan

    @contextmanager
    def batch_scan(self, file_count: int, jobs: int) -> Generator[ScanProgress, None, None]:
        """Finished-files counter for a parallel scan; call ``scan.file_done()``."""
        label = f"Scanning {file_count} files ({jobs} jobs)"
        with ScanProgress(self.console, label, float(file_count), show_eta=False) as scan:
            yield scan


class ScanProgress:
    """One transient progress bar; safe to advance from worker threads."""

    def __init__(
        self, console: Console, label: str, total: float, *, show_eta: bool
    ) -> None:
        self.console: Console = console
        self.label: str = label
        self.total: float = total
        self.summary: str | None = None  # appended to the Done! line
        self._lock: Lock = Lock()

        # Single files show percent and ETA, batches finished files and elapsed time
        counter: ProgressColumn = MofNCompleteColumn()
        timer: ProgressColumn = TimeElapsedColumn()
        if show_eta:
            counter = TextColumn("{task.percentage:>5.1f}%")
            timer = TimeRemainingColumn()

        self._progress: Progress = Progress(
            TextColumn("[cyan]{task.description}[/cyan]"),
            SpinnerColumn(),
            BarColumn(bar_width=PROGRESS_BAR_WIDTH),
            counter,
            timer,
            console=console,
            transient=True,
            refresh_per_second=12,
        )
        self._task_id = self._progress.add_task(label, total=total)

    def __enter__(self) -> ScanProgress:
        self._progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self._progress.update(self._task_id, completed=self.total)
        self._progress.stop()
        if exc_type is None:
            suffix = f" {self.summary}" if self.summary else ""
            self.console.print(f"[cyan]{self.label}[/cyan] [bold green]Done![/bold green]{suffix}")

    @property
    def completed(self) -> float:
        return self._progress.tasks[0].completed

    def fraction(self, value: float) -> None:
        """Set progress from a 0..1 fraction (values outside are clamped)."""
        bounded = min(max(value, 0.0), 1.0)
        self._progress.update(self._task_id, completed=bounded * self.total)

    def file_done(self) -> None:
        with self._lock:
            self._progress.advance(self._task_id, 1)
