"""Detection mode enumerations for AspectScan."""

from __future__ import annotations

from enum import Enum


class SamplingMode(str, Enum):
    """How densely the video is sampled."""

    FAST = "fast"
    DEFAULT = "default"
    ACCURATE = "accurate"

    @property
    def display_name(self) -> str:
        """Human-readable mode name for display."""
        return {"fast": "Fast", "default": "Default", "accurate": "Accurate"}[
            self.value
        ]


class MultiFormatMode(str, Enum):
    """Which ratio is reported as primary for multi-format videos."""

    OFF = "off"
    HIGHER = "higher"  # primary is the taller (numerically lower) ratio
    WIDER = "wider"  # primary is the wider (numerically higher) ratio

    @property
    def display_name(self) -> str:
        return {
            "off": "Disabled",
            "higher": "Higher AR as primary",
            "wider": "Wider AR as primary",
        }[self.value]
