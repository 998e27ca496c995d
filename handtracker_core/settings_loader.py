"""
Settings loader for handtracker_core.

Loads and validates JSON settings files. Sections and keys use camelCase
to match the settings channel, e.g.:

    {
        "filters": {"minCutoff": 2.0, "beta": 0.01, "dCutoff": 1.0},
        "fingerFlexion": {"enabledFingers": {"thumb": false}, "stabilityFrames": 3},
        "pinch": {"threshold": 0.05, "releaseThreshold": 0.07},
        "roi": {"maxTimeBetweenFullFrames": 500}
    }
"""

import json
from pathlib import Path
from typing import Any, Optional

from .config import SECTIONS, ConfigurationError, PipelineConfig, apply_setting
from .logger import get_logger

logger = get_logger("SettingsLoader")


class SettingsLoadError(Exception):
    """Raised when settings loading or validation fails."""
    pass


def load_settings(
    settings_path: str | Path,
    base: Optional[PipelineConfig] = None
) -> PipelineConfig:
    """
    Load and validate settings from a JSON file.

    Args:
        settings_path: Path to the JSON settings file.
        base: Configuration the file's values are applied on top of.

    Returns:
        Validated PipelineConfig.

    Raises:
        SettingsLoadError: If file cannot be read or validation fails.
    """
    path = Path(settings_path)
    logger.info(f"Loading settings from: {path}")

    if not path.exists():
        raise SettingsLoadError(f"Settings file not found: {path}")

    if not path.is_file():
        raise SettingsLoadError(f"Settings path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SettingsLoadError(f"Invalid JSON in settings: {e}") from e
    except OSError as e:
        raise SettingsLoadError(f"Cannot read settings file: {e}") from e

    return parse_settings(data, base)


def parse_settings(data: Any, base: Optional[PipelineConfig] = None) -> PipelineConfig:
    """
    Build a configuration from a settings dictionary.

    Unknown top-level sections are skipped with a warning; unknown keys
    inside a known section are errors.

    Args:
        data: Dictionary of section -> {key: value}.
        base: Starting configuration. Defaults if None.

    Returns:
        Validated PipelineConfig.

    Raises:
        SettingsLoadError: If the data is malformed or a value is invalid.
    """
    if not isinstance(data, dict):
        raise SettingsLoadError("Settings root must be a JSON object")

    config = base if base is not None else PipelineConfig()

    for section, values in data.items():
        if section not in SECTIONS:
            logger.warning(f"Skipping unknown settings section: {section}")
            continue
        if not isinstance(values, dict):
            raise SettingsLoadError(f"Settings section {section} must be an object")
        if not values:
            continue
        try:
            config = apply_setting(config, section, "*", values)
        except ConfigurationError as e:
            raise SettingsLoadError(f"Invalid settings in section {section}: {e}") from e

    try:
        config.validate()
    except ConfigurationError as e:
        raise SettingsLoadError(f"Invalid settings: {e}") from e

    params = config.smoothing.parameters
    logger.debug(f"  Filters: min_cutoff={params.min_cutoff}, beta={params.beta}, d_cutoff={params.d_cutoff}")
    logger.debug(f"  Flexion stability frames: {config.flexion.stability_frames}")
    logger.debug(
        f"  Pinch: threshold={config.pinch.threshold}, "
        f"release={config.pinch.release_threshold}, frames={config.pinch.stability_frames}"
    )
    logger.debug(f"  ROI enabled: {config.roi.enabled}")

    return config
