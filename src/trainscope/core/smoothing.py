# TrainScope — Smoothing Pipeline

"""
Smooths noisy scalar series for line charts.

Algorithms:
- running:  trailing moving average over a fixed number of points
- ema:      exponential moving average with de-bias term
- twema:    time-weighted EMA; decay follows the x distance between points
- gaussian: symmetric kernel average with a Gaussian weight in x

x must be ascending but need not be evenly spaced.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Sequence

import numpy as np

from trainscope.core.memo import IdentityMemo
from trainscope.core.models import ChartSeries
from trainscope.utils import config


class SmoothingAlgorithm(str, Enum):
    EMA = "ema"
    TWEMA = "twema"
    GAUSSIAN = "gaussian"
    RUNNING = "running"


@dataclass(frozen=True)
class ParameterRange:
    """Slider bounds for an algorithm's parameter."""
    min: float
    max: float
    step: float
    default: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


PARAMETER_RANGES = {
    SmoothingAlgorithm.RUNNING: ParameterRange(1, 100, 1, 10),
    SmoothingAlgorithm.GAUSSIAN: ParameterRange(0.1, 10, 0.1, 2),
    SmoothingAlgorithm.EMA: ParameterRange(0, 0.999, 0.001, 0.6),
    SmoothingAlgorithm.TWEMA: ParameterRange(0, 0.999, 0.001, 0.6),
}


def parameter_range(algorithm) -> ParameterRange:
    return PARAMETER_RANGES[SmoothingAlgorithm(algorithm)]


@dataclass(frozen=True)
class SmoothingConfig:
    """Per-chart smoothing settings."""
    enabled: bool = False
    algorithm: SmoothingAlgorithm = SmoothingAlgorithm.GAUSSIAN
    parameter: float = 2.0
    show_original_data: bool = True

    def __post_init__(self):
        object.__setattr__(self, "algorithm", SmoothingAlgorithm(self.algorithm))

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "algorithm": self.algorithm.value,
            "parameter": self.parameter,
            "showOriginalData": self.show_original_data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SmoothingConfig":
        return cls(
            enabled=bool(data.get("enabled", False)),
            algorithm=data.get("algorithm", SmoothingAlgorithm.GAUSSIAN.value),
            parameter=float(data.get("parameter", 2.0)),
            show_original_data=bool(data.get("showOriginalData", True)),
        )


# =============================================================================
# Algorithms
# =============================================================================

def smooth_running(y: np.ndarray, window: int) -> np.ndarray:
    """Trailing mean: out[i] = mean(y[max(0, i - window + 1) .. i])."""
    n = len(y)
    if n == 0 or window <= 1:
        return y.copy()

    csum = np.cumsum(np.insert(y, 0, 0.0))
    idx = np.arange(n)
    start = np.maximum(0, idx - window + 1)
    return (csum[idx + 1] - csum[start]) / (idx + 1 - start)


def smooth_ema(y: np.ndarray, weight: float) -> np.ndarray:
    """
    Exponential moving average with bias correction.

    The running value starts at zero, so early outputs are divided by
    (1 - weight^(i+1)) to undo the pull toward zero.
    """
    if weight == 0:
        return y.copy()

    out = np.empty_like(y)
    last = 0.0
    for i, value in enumerate(y):
        last = last * weight + (1 - weight) * value
        out[i] = last / (1 - weight ** (i + 1))
    return out


def smooth_twema(x: np.ndarray, y: np.ndarray, weight: float) -> np.ndarray:
    """
    Time-weighted EMA.

    The decay between two points is weight ** (dx / mean_dx), so a gap
    twice the typical spacing decays like two ordinary steps. On evenly
    spaced data this matches smooth_ema().
    """
    n = len(y)
    if n == 0 or weight == 0:
        return y.copy()

    span = x[-1] - x[0]
    mean_dx = span / (n - 1) if n > 1 and span > 0 else 1.0

    out = np.empty_like(y)
    last = 0.0
    debias = 0.0
    for i in range(n):
        decay = weight if i == 0 else weight ** ((x[i] - x[i - 1]) / mean_dx)
        last = last * decay + (1 - decay) * y[i]
        debias = debias * decay + (1 - decay)
        out[i] = last / debias if debias > 0 else y[i]
    return out


def smooth_gaussian(x: np.ndarray, y: np.ndarray, sigma: float) -> np.ndarray:
    """
    Gaussian kernel average in x.

    Neighbours further than 3 sigma away are ignored; weights are
    renormalized per point so edges are not pulled toward zero.
    """
    n = len(y)
    if n == 0 or sigma <= 0:
        return y.copy()

    radius = 3 * sigma
    lo = np.searchsorted(x, x - radius, side="left")
    hi = np.searchsorted(x, x + radius, side="right")
    denom = 2 * sigma * sigma

    out = np.empty_like(y)
    for i in range(n):
        dx = x[lo[i]:hi[i]] - x[i]
        weights = np.exp(-(dx * dx) / denom)
        out[i] = np.dot(weights, y[lo[i]:hi[i]]) / weights.sum()
    return out


def smooth(x, y, algorithm, parameter: float) -> np.ndarray:
    """
    Smooth y according to the selected algorithm.

    Args:
        x: Ascending x values.
        y: Values to smooth (same length as x).
        algorithm: SmoothingAlgorithm or its string value.
        parameter: Window size (running), sigma (gaussian) or weight (ema/twema).

    Returns:
        New array of smoothed values.

    Raises:
        ValueError: On length mismatch, unknown algorithm or a parameter
            outside the algorithm's range.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError("x and y must have the same length")

    algorithm = SmoothingAlgorithm(algorithm)
    bounds = PARAMETER_RANGES[algorithm]
    if not bounds.contains(parameter):
        raise ValueError(
            f"{algorithm.value} parameter must be in [{bounds.min}, {bounds.max}], got {parameter}"
        )

    if algorithm is SmoothingAlgorithm.RUNNING:
        return smooth_running(y, int(round(parameter)))
    if algorithm is SmoothingAlgorithm.EMA:
        return smooth_ema(y, parameter)
    if algorithm is SmoothingAlgorithm.TWEMA:
        return smooth_twema(x, y, parameter)
    return smooth_gaussian(x, y, parameter)


def apply_smoothing(series: ChartSeries, settings: SmoothingConfig) -> List[ChartSeries]:
    """
    Render-ready traces for one series.

    Returns the series unchanged when smoothing is off; otherwise the
    smoothed trace first, followed by a faint copy of the raw data when
    show_original_data is set.
    """
    if not settings.enabled:
        return [series]

    traces = [
        ChartSeries(
            x=series.x,
            y=smooth(series.x, series.y, settings.algorithm, settings.parameter),
            label=series.label,
            color=series.color,
            opacity=1.0,
            hide_from_legend=False,
        )
    ]
    if settings.show_original_data:
        traces.append(ChartSeries(
            x=series.x,
            y=series.y,
            label=f"{series.label} (original)",
            color=series.color,
            opacity=config.get("original_trace_opacity", 0.1),
            hide_from_legend=True,
        ))
    return traces


class Smoother:
    """Re-smooths only when the series object or the settings change."""

    def __init__(self):
        self._memo = IdentityMemo(apply_smoothing)

    def traces(self, series: ChartSeries, settings: SmoothingConfig) -> List[ChartSeries]:
        return self._memo(series, settings)


def filter_for_log_scale(series: Sequence[ChartSeries], log_x: bool,
                         log_y: bool) -> List[ChartSeries]:
    """
    Drop points that cannot be drawn on a log axis.

    A point survives when its coordinate on every log-scaled axis is
    positive. Series left without points are dropped.
    """
    if not log_x and not log_y:
        return list(series)

    filtered = []
    for line in series:
        keep = np.ones(len(line), dtype=bool)
        if log_x:
            keep &= line.x > 0
        if log_y:
            keep &= line.y > 0
        if not keep.any():
            continue
        if keep.all():
            filtered.append(line)
        else:
            filtered.append(replace(line, x=line.x[keep], y=line.y[keep]))
    return filtered
