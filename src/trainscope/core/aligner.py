# TrainScope — Series Aligner

"""
Joins independently stepped scalar series on their step key.

Used when a line chart plots one metric against another instead of
against step or time: A supplies the x values, B the y values, and only
steps logged by both runs' series survive the join.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from trainscope.core.memo import IdentityMemo
from trainscope.core.models import MetricSample


@dataclass
class AlignedSeries:
    """Parallel x/y arrays, ascending in x."""
    x: np.ndarray
    y: np.ndarray

    @property
    def is_empty(self) -> bool:
        """No shared steps: the two series cannot be compared."""
        return len(self.x) == 0

    def __len__(self) -> int:
        return len(self.x)


def align_series(a: Sequence[MetricSample], b: Sequence[MetricSample]) -> AlignedSeries:
    """
    Inner-join two series on step.

    Pairs are keyed by A's value, so two B samples whose steps map to the
    same A value collapse to the one seen last.

    Args:
        a: Reference series (x axis).
        b: Value series (y axis).

    Returns:
        AlignedSeries sorted by A value; empty when no step is shared.
    """
    step_to_x: Dict[int, float] = {}
    for sample in a:
        step_to_x[sample.step] = sample.value

    pairs: Dict[float, float] = {}
    for sample in b:
        x_value = step_to_x.get(sample.step)
        if x_value is not None:
            pairs[x_value] = sample.value

    ordered = sorted(pairs.items(), key=lambda item: item[0])
    x = np.array([p[0] for p in ordered], dtype=np.float64)
    y = np.array([p[1] for p in ordered], dtype=np.float64)
    return AlignedSeries(x=x, y=y)


def cannot_compare_message(x_name: str, y_name: str) -> str:
    """User-facing notice for an empty alignment."""
    return f"Cannot compare {x_name} with {y_name}: no common steps"


# =============================================================================
# X-axis modes
# =============================================================================

class XAxisMode(Enum):
    STEP = "Step"
    ABSOLUTE_TIME = "Absolute Time"
    RELATIVE_TIME = "Relative Time"

    @classmethod
    def from_selection(cls, selected_log: str) -> Optional["XAxisMode"]:
        """Built-in mode for a selected x-axis log, None for a metric name."""
        for mode in cls:
            if mode.value == selected_log:
                return mode
        return None


# (upper bound in seconds, divisor, unit)
TIME_UNITS: List[Tuple[float, float, str]] = [
    (120, 1, "s"),
    (3600, 60, "min"),
    (86400, 3600, "hr"),
    (604800, 86400, "day"),
    (2629746, 604800, "week"),
    (31556952, 2629746, "month"),
]


def time_unit_for_span(max_seconds: float) -> Tuple[float, str]:
    """Pick a display unit so a time span reads naturally."""
    for upper, divisor, unit in TIME_UNITS:
        if max_seconds < upper:
            return divisor, unit
    return 31556952, "year"


def build_x_axis(samples: Sequence[MetricSample], mode: XAxisMode,
                 divisor: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray, str]:
    """
    X values for plotting a series against step or time.

    Args:
        samples: Series ordered by step.
        mode: Built-in x-axis mode.
        divisor: Relative-time unit divisor. Pass a shared value when
            several runs are drawn on one chart; otherwise chosen from
            this series' own span.

    Returns:
        (x, y, unit label) where unit is "" for step and absolute time.
    """
    y = np.array([s.value for s in samples], dtype=np.float64)
    if not samples:
        return np.array([], dtype=np.float64), y, ""

    if mode is XAxisMode.STEP:
        x = np.array([s.step for s in samples], dtype=np.float64)
        return x, y, ""

    ordered = sorted(samples, key=lambda s: s.time)
    y = np.array([s.value for s in ordered], dtype=np.float64)
    seconds = np.array([s.time.timestamp() for s in ordered], dtype=np.float64)

    if mode is XAxisMode.ABSOLUTE_TIME:
        return seconds, y, ""

    relative = seconds - seconds[0]
    if divisor is None:
        divisor, unit = time_unit_for_span(float(relative[-1]))
    else:
        unit = next((u for _, d, u in TIME_UNITS if d == divisor), "year")
    return relative / divisor, y, unit


def relative_time_span(samples: Sequence[MetricSample]) -> float:
    """Seconds between a series' first and last sample."""
    if len(samples) < 2:
        return 0.0
    times = [s.time.timestamp() for s in samples]
    return max(times) - min(times)


class SeriesAligner:
    """Re-joins only when either input series object changes."""

    def __init__(self):
        self._memo = IdentityMemo(align_series)

    def align(self, a: Sequence[MetricSample], b: Sequence[MetricSample]) -> AlignedSeries:
        return self._memo(a, b)
