# TrainScope — Chart Settings

"""
Per-chart preferences, persisted through a CacheStore.

Settings are scoped to (organization, project, run); the run-comparison
view uses the run id "all". Stored without a TTL, so they only leave the
store through size eviction or reset().
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from trainscope.core.cache_store import CacheStore
from trainscope.core.query_cache import NEVER_EXPIRES
from trainscope.core.smoothing import SmoothingConfig, parameter_range
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)

ALL_RUNS = "all"


@dataclass(frozen=True)
class ChartSettings:
    """Line chart preferences."""
    selected_log: str = "Step"   # "Step", "Absolute Time", "Relative Time" or a metric name
    x_axis_log_scale: bool = False
    y_axis_log_scale: bool = False
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)

    def to_dict(self) -> dict:
        return {
            "selectedLog": self.selected_log,
            "xAxisLogScale": self.x_axis_log_scale,
            "yAxisLogScale": self.y_axis_log_scale,
            "smoothing": self.smoothing.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChartSettings":
        smoothing = SmoothingConfig.from_dict(data.get("smoothing", {}))
        bounds = parameter_range(smoothing.algorithm)
        if not bounds.contains(smoothing.parameter):
            logger.warning(
                "Stored %s parameter %s outside [%s, %s], using default %s",
                smoothing.algorithm.value, smoothing.parameter, bounds.min, bounds.max, bounds.default,
            )
            smoothing = replace(smoothing, parameter=bounds.default)

        return cls(
            selected_log=str(data.get("selectedLog", "Step")),
            x_axis_log_scale=bool(data.get("xAxisLogScale", False)),
            y_axis_log_scale=bool(data.get("yAxisLogScale", False)),
            smoothing=smoothing,
        )


DEFAULT_SETTINGS = ChartSettings()


def settings_key(organization: str, project: str, run: Optional[str] = None) -> str:
    return f"{organization}-{project}-{run or ALL_RUNS}"


class SettingsStore:
    """
    Load and save ChartSettings.

    Usage:
        settings = SettingsStore(store)
        current = settings.load("org", "proj", "run-1")
        settings.update_smoothing("org", "proj", "run-1", enabled=True)
    """

    def __init__(self, store: CacheStore):
        self._store = store

    def load(self, organization: str, project: str, run: Optional[str] = None) -> ChartSettings:
        """Stored settings, or the defaults when none (or unreadable)."""
        raw = self._store.get(settings_key(organization, project, run))
        if raw is None:
            return DEFAULT_SETTINGS
        try:
            return ChartSettings.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable chart settings: %s", e)
            return DEFAULT_SETTINGS

    def save(self, organization: str, project: str, run: Optional[str],
             settings: ChartSettings) -> None:
        """
        Persist settings.

        Raises:
            ValueError: If the smoothing parameter is outside its algorithm's range.
        """
        smoothing = settings.smoothing
        bounds = parameter_range(smoothing.algorithm)
        if not bounds.contains(smoothing.parameter):
            raise ValueError(
                f"{smoothing.algorithm.value} parameter must be in "
                f"[{bounds.min}, {bounds.max}], got {smoothing.parameter}"
            )
        payload = json.dumps(settings.to_dict()).encode("utf-8")
        self._store.set(settings_key(organization, project, run), payload, ttl=NEVER_EXPIRES)

    def update(self, organization: str, project: str, run: Optional[str],
               **changes: Any) -> ChartSettings:
        """Change top-level fields (selected_log, x_axis_log_scale, ...)."""
        settings = replace(self.load(organization, project, run), **changes)
        self.save(organization, project, run, settings)
        return settings

    def update_smoothing(self, organization: str, project: str, run: Optional[str],
                         **changes: Any) -> ChartSettings:
        """
        Change smoothing fields.

        Switching algorithm without giving a parameter resets the parameter
        to the new algorithm's default, since the ranges do not overlap.
        """
        current = self.load(organization, project, run)
        if "algorithm" in changes and "parameter" not in changes:
            changes["parameter"] = parameter_range(changes["algorithm"]).default
        smoothing = replace(current.smoothing, **changes)
        settings = replace(current, smoothing=smoothing)
        self.save(organization, project, run, settings)
        return settings

    def reset(self, organization: str, project: str, run: Optional[str] = None) -> ChartSettings:
        self._store.delete(settings_key(organization, project, run))
        return DEFAULT_SETTINGS
