# TrainScope — Utils Configuration

"""
Centralized configuration for the TrainScope visualization core.
All parameters are exposed here for easy tuning and documentation.

Defaults live in CONFIG; a YAML file can be merged over them with
load_config() at application start.
"""

from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from trainscope.utils.logging import get_logger

logger = get_logger(__name__)

CONFIG: Dict[str, Any] = {
    # ===========================================================================
    # Bounded Local Cache
    # ===========================================================================
    "cache_max_bytes": 1024 * 1024 * 1024,  # 1 GB budget for query results
    "cache_default_ttl_s": 5.0,             # Unfinished runs go stale after 5 s
    "settings_cache_max_bytes": 1024 * 1024,
    "cache_file": None,                     # Optional JSON snapshot path

    # ===========================================================================
    # Histogram Normalization
    # ===========================================================================
    "histogram_range_padding": 0.1,  # Display padding as fraction of range
    "histogram_round_digits": 6,     # Round rebinned cells to 1e-6

    # ===========================================================================
    # Playback
    # ===========================================================================
    "playback_min_speed_ms": 1,
    "playback_max_speed_ms": 1000,
    "playback_speed_step_ms": 10,
    "playback_default_speed_ms": 100,
    "playback_tick_interval_ms": 16,  # Display cadence (~60 Hz)

    # ===========================================================================
    # Export
    # ===========================================================================
    "export_frame_delay_ms": 100,
    "export_snapshot_format": ".png",

    # ===========================================================================
    # Rendering
    # ===========================================================================
    "render_width": 800,
    "render_height": 400,
    "render_theme": "light",
    "render_x_ticks": 10,
    "render_y_ticks": 5,
    "render_tick_length": 5,
    "render_chart_spacing": 40,
    "render_bar_color_bgr": (246, 130, 59),  # rgba(59, 130, 246) in BGR
    "render_axis_color_light": "#666666",
    "render_axis_color_dark": "#94a3b8",

    # ===========================================================================
    # Line Charts
    # ===========================================================================
    "original_trace_opacity": 0.1,
}


def get_config() -> Dict[str, Any]:
    """Return a copy of the configuration dictionary."""
    return CONFIG.copy()


def get(key: str, default: Any = None) -> Any:
    """Get a configuration value by key."""
    return CONFIG.get(key, default)


def load_config(path: str) -> Dict[str, Any]:
    """
    Merge a YAML configuration file over the defaults.

    Unknown keys are kept so collaborators can stash their own settings.

    Args:
        path: Path to a YAML mapping.

    Returns:
        The updated configuration (a copy).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not contain a mapping.
    """
    config_path = Path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    for key, value in data.items():
        if key == "render_bar_color_bgr" and isinstance(value, list):
            value = tuple(value)
        CONFIG[key] = value

    logger.info("Loaded %d config values from %s", len(data), config_path.name)
    return get_config()


def save_config(path: str, overrides: Optional[Dict[str, Any]] = None) -> None:
    """Write the current configuration (plus overrides) as YAML."""
    data = get_config()
    if overrides:
        data.update(overrides)
    data["render_bar_color_bgr"] = list(data["render_bar_color_bgr"])

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False)
