"""Configuration for aspect ratio detection.

This module defines the detector and sampling configuration values and loads
them from an optional YAML file (``aspectscan.yaml``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TypeVar, cast

import yaml

from .constants import (
    CLASSIFIER_EPSILON,
    DARK_LEVEL_MAX_PCT,
    DARK_LEVEL_PCT,
    DEFAULT_CANONICAL_RATIOS,
    IGNORE_BEGINNING_PCT,
    IGNORE_END_PCT,
    MULTI_FORMAT_THRESHOLD_PCT,
    PLAUSI_HEIGHT_DELTA_PCT,
    PLAUSI_HEIGHT_PCT,
    PLAUSI_WIDTH_DELTA_PCT,
    PLAUSI_WIDTH_PCT,
    ROUND_UP_TOLERANCE_PCT,
    SECONDARY_MIN_PCT,
)
from .modes import MultiFormatMode, SamplingMode
from .rounding import round_aspect_ratio
from .tool_parsers import parse_ratio
from .utils import get_app_root

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "aspectscan.yaml"

E = TypeVar("E", bound=Enum)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


@dataclass(frozen=True)
class SampleSetting:
    """Sampling density for one detection mode."""

    duration: int  # seconds analyzed per sample
    min_number: int  # minimum number of samples across the video
    max_gap: int  # maximum seconds between two samples


DEFAULT_SAMPLE_SETTINGS: dict[SamplingMode, SampleSetting] = {
    SamplingMode.FAST: SampleSetting(duration=2, min_number=6, max_gap=900),
    SamplingMode.DEFAULT: SampleSetting(duration=2, min_number=10, max_gap=600),
    SamplingMode.ACCURATE: SampleSetting(duration=2, min_number=40, max_gap=120),
}


def normalize_ratio_list(values: Iterable[object]) -> tuple[float, ...]:
    """Parse, validate, sort and deduplicate a canonical ratio list.

    Entries may be numbers or strings such as ``"2.40"`` or ``"16:9"``.

    Raises:
        ConfigError: If the list is empty or contains a non-positive or
            unparsable entry
    """
    parsed: list[float] = []
    for value in values:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid aspect ratio: {value!r}")
        if isinstance(value, (int, float)):
            ratio = float(value)
        elif isinstance(value, str):
            ratio = parse_ratio(value)
        else:
            raise ConfigError(f"Invalid aspect ratio: {value!r}")
        if ratio <= 0:
            raise ConfigError(f"Aspect ratios must be positive, got {value!r}")
        parsed.append(ratio)

    if not parsed:
        raise ConfigError("Canonical aspect ratio list must not be empty")

    normalized = tuple(sorted(set(parsed)))
    if list(normalized) != parsed:
        logger.warning(
            "Canonical aspect ratios were not strictly ascending; using %s",
            ", ".join(f"{r:.2f}" for r in normalized),
        )
    return normalized


@dataclass(frozen=True)
class DetectorConfig:
    """Classification and rounding parameters.

    Passed explicitly into every detection; nothing here is shared state.
    """

    canonical_ratios: tuple[float, ...] = DEFAULT_CANONICAL_RATIOS
    round_up: bool = False
    round_up_tolerance_pct: float = ROUND_UP_TOLERANCE_PCT
    epsilon: float = CLASSIFIER_EPSILON
    secondary_min_pct: float = SECONDARY_MIN_PCT
    multi_format_mode: MultiFormatMode = MultiFormatMode.OFF
    multi_format_threshold_pct: float = MULTI_FORMAT_THRESHOLD_PCT

    def __post_init__(self) -> None:
        if not self.canonical_ratios:
            raise ConfigError("Canonical aspect ratio list must not be empty")
        if any(r <= 0 for r in self.canonical_ratios):
            raise ConfigError("Canonical aspect ratios must be positive")
        pairs = zip(self.canonical_ratios, self.canonical_ratios[1:])
        if any(b <= a for a, b in pairs):
            raise ConfigError("Canonical aspect ratios must be strictly ascending")
        if self.round_up_tolerance_pct <= 0:
            raise ConfigError(
                f"Round-up tolerance must be positive, got {self.round_up_tolerance_pct}"
            )
        if self.epsilon < 0:
            raise ConfigError(f"Epsilon must not be negative, got {self.epsilon}")
        if not 0 <= self.secondary_min_pct <= 100:
            raise ConfigError(
                f"Secondary threshold must be between 0 and 100, got {self.secondary_min_pct}"
            )
        if not 0 <= self.multi_format_threshold_pct <= 100:
            raise ConfigError(
                "Multi-format threshold must be between 0 and 100, "
                + f"got {self.multi_format_threshold_pct}"
            )

    def round_ratio(self, raw: float) -> float:
        """Round a raw ratio with this configuration; 0 stays 0."""
        if raw == 0:
            return 0.0
        return round_aspect_ratio(
            raw,
            self.canonical_ratios,
            prefer_higher=self.round_up,
            tolerance_pct=self.round_up_tolerance_pct,
        )


@dataclass(frozen=True)
class SamplingConfig:
    """Frame sampling and plausibility parameters."""

    mode: SamplingMode = SamplingMode.DEFAULT
    sample_settings: dict[SamplingMode, SampleSetting] = field(
        default_factory=lambda: dict(DEFAULT_SAMPLE_SETTINGS)
    )
    ignore_beginning_pct: float = IGNORE_BEGINNING_PCT
    ignore_end_pct: float = IGNORE_END_PCT
    plausi_width_pct: float = PLAUSI_WIDTH_PCT
    plausi_height_pct: float = PLAUSI_HEIGHT_PCT
    plausi_width_delta_pct: float = PLAUSI_WIDTH_DELTA_PCT
    plausi_height_delta_pct: float = PLAUSI_HEIGHT_DELTA_PCT
    dark_level_pct: float = DARK_LEVEL_PCT
    dark_level_max_pct: float = DARK_LEVEL_MAX_PCT

    def __post_init__(self) -> None:
        if self.ignore_beginning_pct < 0 or self.ignore_end_pct < 0:
            raise ConfigError("Ignore percentages must not be negative")
        if self.ignore_beginning_pct + self.ignore_end_pct >= 100:
            raise ConfigError(
                "Ignore percentages leave no usable duration "
                + f"({self.ignore_beginning_pct}% start + {self.ignore_end_pct}% end)"
            )
        for name, setting in self.sample_settings.items():
            if setting.duration <= 0 or setting.min_number <= 0 or setting.max_gap <= 0:
                raise ConfigError(
                    f"Sample settings for mode '{name.value}' must be positive integers"
                )

    @property
    def sample_setting(self) -> SampleSetting:
        """Sample setting for the active mode, falling back to the default mode."""
        setting = self.sample_settings.get(self.mode)
        if setting is None:
            setting = self.sample_settings.get(
                SamplingMode.DEFAULT, DEFAULT_SAMPLE_SETTINGS[SamplingMode.DEFAULT]
            )
        return setting


@dataclass(frozen=True)
class AppConfig:
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    source: Path | None = None  # file the configuration was loaded from


# =============================================================================
# YAML Parsing
# =============================================================================


def _get_section(data: dict[str, object], key: str) -> dict[str, object]:
    section = data.get(key, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be a dictionary")
    return cast(dict[str, object], section)


def _get_number(section: dict[str, object], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {type(value).__name__}")
    return float(value)


def _get_bool(section: dict[str, object], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean, got {type(value).__name__}")
    return value


def _get_enum(section: dict[str, object], key: str, enum_type: type[E], default: E) -> E:
    value = section.get(key, default.value)
    # YAML 1.1 reads a bare `off` as false
    if value is False:
        value = "off"
    try:
        return enum_type(value)
    except ValueError:
        valid = ", ".join(str(m.value) for m in enum_type)
        raise ConfigError(f"Invalid {key} '{value}'. Valid values: {valid}")


def _parse_detector(section: dict[str, object]) -> DetectorConfig:
    ratios_val = section.get("canonical_ratios", list(DEFAULT_CANONICAL_RATIOS))
    if not isinstance(ratios_val, list):
        raise ConfigError("'canonical_ratios' must be a list")
    ratios = normalize_ratio_list(cast(list[object], ratios_val))

    return DetectorConfig(
        canonical_ratios=ratios,
        round_up=_get_bool(section, "round_up", False),
        round_up_tolerance_pct=_get_number(
            section, "round_up_tolerance_pct", ROUND_UP_TOLERANCE_PCT
        ),
        epsilon=_get_number(section, "epsilon", CLASSIFIER_EPSILON),
        secondary_min_pct=_get_number(section, "secondary_min_pct", SECONDARY_MIN_PCT),
        multi_format_mode=_get_enum(
            section, "multi_format", MultiFormatMode, MultiFormatMode.OFF
        ),
        multi_format_threshold_pct=_get_number(
            section, "multi_format_threshold_pct", MULTI_FORMAT_THRESHOLD_PCT
        ),
    )


def _parse_sample_settings(section: dict[str, object]) -> dict[SamplingMode, SampleSetting]:
    settings = dict(DEFAULT_SAMPLE_SETTINGS)
    modes_val = _get_section(section, "modes")
    for mode_name, mode_val in modes_val.items():
        try:
            mode = SamplingMode(mode_name)
        except ValueError:
            raise ConfigError(f"Unknown sampling mode '{mode_name}'")
        if not isinstance(mode_val, dict):
            raise ConfigError(f"Sampling mode '{mode_name}' must be a dictionary")
        mode_dict = cast(dict[str, object], mode_val)
        base = settings[mode]
        values: dict[str, int] = {}
        for key in ("duration", "min_number", "max_gap"):
            if key in mode_dict:
                raw = mode_dict[key]
                if isinstance(raw, bool) or not isinstance(raw, int):
                    raise ConfigError(
                        f"Sampling mode '{mode_name}': '{key}' must be an integer"
                    )
                values[key] = raw
        settings[mode] = replace(base, **values)
    return settings


def _parse_sampling(section: dict[str, object]) -> SamplingConfig:
    return SamplingConfig(
        mode=_get_enum(section, "mode", SamplingMode, SamplingMode.DEFAULT),
        sample_settings=_parse_sample_settings(section),
        ignore_beginning_pct=_get_number(section, "ignore_beginning_pct", IGNORE_BEGINNING_PCT),
        ignore_end_pct=_get_number(section, "ignore_end_pct", IGNORE_END_PCT),
        plausi_width_pct=_get_number(section, "plausi_width_pct", PLAUSI_WIDTH_PCT),
        plausi_height_pct=_get_number(section, "plausi_height_pct", PLAUSI_HEIGHT_PCT),
        plausi_width_delta_pct=_get_number(
            section, "plausi_width_delta_pct", PLAUSI_WIDTH_DELTA_PCT
        ),
        plausi_height_delta_pct=_get_number(
            section, "plausi_height_delta_pct", PLAUSI_HEIGHT_DELTA_PCT
        ),
        dark_level_pct=_get_number(section, "dark_level_pct", DARK_LEVEL_PCT),
        dark_level_max_pct=_get_number(section, "dark_level_max_pct", DARK_LEVEL_MAX_PCT),
    )


def find_config_file() -> Path | None:
    """Locate aspectscan.yaml in the working directory or the application root.

    Raises:
        ConfigError: If configuration files exist in both locations
    """
    candidates: list[Path] = []

    cwd_path = Path.cwd() / CONFIG_FILENAME
    if cwd_path.exists():
        candidates.append(cwd_path)

    project_path = get_app_root() / CONFIG_FILENAME
    if project_path.exists() and project_path.resolve() != cwd_path.resolve():
        candidates.append(project_path)

    if len(candidates) > 1:
        paths_str = "\n  - ".join(str(p) for p in candidates)
        raise ConfigError(
            f"Multiple configuration files found:\n  - {paths_str}\n"
            + "Please specify which file to use with --config, or remove duplicates."
        )
    return candidates[0] if candidates else None


def load_config(config_file: Path | None = None) -> AppConfig:
    """Load detector and sampling configuration from YAML.

    Args:
        config_file: Path to the YAML file. If None, searches for aspectscan.yaml
                     and falls back to built-in defaults when none exists.

    Returns:
        AppConfig with detector and sampling settings

    Raises:
        ConfigError: If an explicit file is missing, or a file is malformed or
                     contains invalid values
    """
    if config_file is None:
        config_file = find_config_file()
        if config_file is None:
            logger.debug("No %s found, using built-in defaults", CONFIG_FILENAME)
            return AppConfig()
    elif not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = cast(object, yaml.safe_load(f))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a dictionary at root level")
    root = cast(dict[str, object], data)

    detector = _parse_detector(_get_section(root, "detector"))
    sampling = _parse_sampling(_get_section(root, "sampling"))
    logger.debug("Loaded configuration from %s", config_file)
    return AppConfig(detector=detector, sampling=sampling, source=config_file)
