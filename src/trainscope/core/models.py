# TrainScope — Data Models

"""
Typed models for run data, decoded once at the fetch boundary.

Remote rows are loosely shaped dictionaries; from_dict() validates them
and raises PayloadError so the hot paths (rebinning, rendering) can rely
on a statically known shape.
"""

import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from trainscope.core.errors import PayloadError


def _as_int(value: Any, name: str) -> int:
    """Coerce an int (or an integer string, as the analytical store sends)."""
    if isinstance(value, bool):
        raise PayloadError(f"{name} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            pass
    raise PayloadError(f"{name} must be an integer, got {value!r}")


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise PayloadError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except ValueError:
        raise PayloadError(f"{name} must be a number, got {value!r}") from None
    if math.isnan(result):
        raise PayloadError(f"{name} must not be NaN")
    return result


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO8601 timestamp.

    Naive timestamps are treated as UTC, matching the analytical store
    which omits the zone designator.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise PayloadError(f"Invalid timestamp: {value!r}") from None
    else:
        raise PayloadError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Log kinds
# =============================================================================

class LogKind(Enum):
    """Closed set of loggable data kinds."""
    METRIC = "METRIC"
    HISTOGRAM = "HISTOGRAM"
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"

    @classmethod
    def parse(cls, value: str) -> "LogKind":
        """Decode a free-form type string from the fetch boundary."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise PayloadError(f"Unknown log type: {value!r}") from None


@dataclass(frozen=True)
class PanelCapabilities:
    """What a panel for a given log kind can do."""
    label: str
    supports_playback: bool   # Step slider / play button
    supports_smoothing: bool  # Line smoothing settings


PANEL_CAPABILITIES: Dict[LogKind, PanelCapabilities] = {
    LogKind.METRIC: PanelCapabilities("Line chart", False, True),
    LogKind.HISTOGRAM: PanelCapabilities("Distribution", True, False),
    LogKind.IMAGE: PanelCapabilities("Images", True, False),
    LogKind.AUDIO: PanelCapabilities("Audio", True, False),
    LogKind.VIDEO: PanelCapabilities("Video", True, False),
}

_missing = set(LogKind) - set(PANEL_CAPABILITIES)
if _missing:
    raise RuntimeError(f"No panel capabilities for: {sorted(k.value for k in _missing)}")


def capabilities_for(kind: LogKind) -> PanelCapabilities:
    return PANEL_CAPABILITIES[kind]


# =============================================================================
# Scalars
# =============================================================================

@dataclass(frozen=True)
class MetricSample:
    """One scalar sample of a (run, logName) series."""
    step: int
    time: datetime
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "time": self.time.isoformat(),
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricSample":
        if not isinstance(data, dict):
            raise PayloadError(f"Metric row must be a mapping, got {type(data).__name__}")
        for key in ("step", "time", "value"):
            if key not in data:
                raise PayloadError(f"Metric row missing '{key}'")
        return cls(
            step=_as_int(data["step"], "step"),
            time=parse_timestamp(data["time"]),
            value=_as_float(data["value"], "value"),
        )


def decode_metric_rows(rows: Sequence[Dict[str, Any]]) -> List[MetricSample]:
    """Decode metric rows, ordered by step."""
    if not isinstance(rows, (list, tuple)):
        raise PayloadError("Metric payload must be a list of rows")
    samples = [MetricSample.from_dict(row) for row in rows]
    return sorted(samples, key=lambda s: s.step)


# =============================================================================
# Histograms
# =============================================================================

@dataclass(frozen=True)
class BinSpec:
    """Uniform bin scheme: `count` equal bins spanning [min, max]."""
    min: float
    max: float
    count: int

    def __post_init__(self):
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise PayloadError("Bin range must be finite")
        if self.min > self.max:
            raise PayloadError(f"Bin min {self.min} exceeds max {self.max}")
        if self.count < 1:
            raise PayloadError(f"Bin count must be >= 1, got {self.count}")

    @property
    def width(self) -> float:
        """Width of a single bin."""
        return (self.max - self.min) / self.count

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max, "num": self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BinSpec":
        if not isinstance(data, dict):
            raise PayloadError("bins must be a mapping")
        count = data.get("num", data.get("count"))
        if count is None or "min" not in data or "max" not in data:
            raise PayloadError("bins requires min, max and num")
        return cls(
            min=_as_float(data["min"], "bins.min"),
            max=_as_float(data["max"], "bins.max"),
            count=_as_int(count, "bins.num"),
        )


@dataclass(frozen=True, eq=False)
class HistogramFrame:
    """One distribution sample at a single step."""
    step: int
    bins: BinSpec
    freq: np.ndarray

    def __post_init__(self):
        freq = np.array(self.freq, dtype=np.float64)
        if freq.ndim != 1 or len(freq) != self.bins.count:
            raise PayloadError(
                f"freq length {freq.size} does not match bin count {self.bins.count}"
            )
        if not np.all(np.isfinite(freq)) or np.any(freq < 0):
            raise PayloadError("freq values must be finite and non-negative")
        freq.setflags(write=False)
        object.__setattr__(self, "freq", freq)

    @property
    def mass(self) -> float:
        """Sum of all frequency values."""
        return float(self.freq.sum())

    @property
    def max_freq(self) -> float:
        return float(self.freq.max()) if self.freq.size else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "histogramData": {
                "freq": self.freq.tolist(),
                "bins": self.bins.to_dict(),
                "maxFreq": self.max_freq,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistogramFrame":
        if not isinstance(data, dict):
            raise PayloadError(f"Histogram row must be a mapping, got {type(data).__name__}")
        if "step" not in data or "histogramData" not in data:
            raise PayloadError("Histogram row requires step and histogramData")

        hist = data["histogramData"]
        # The analytical store returns the payload as a JSON string
        if isinstance(hist, str):
            try:
                hist = json.loads(hist)
            except ValueError:
                raise PayloadError("histogramData is not valid JSON") from None
        if not isinstance(hist, dict) or "freq" not in hist or "bins" not in hist:
            raise PayloadError("histogramData requires freq and bins")
        if not isinstance(hist["freq"], (list, tuple)):
            raise PayloadError("freq must be a list")

        freq = [_as_float(v, "freq") for v in hist["freq"]]
        return cls(
            step=_as_int(data["step"], "step"),
            bins=BinSpec.from_dict(hist["bins"]),
            freq=np.asarray(freq, dtype=np.float64),
        )


def decode_histogram_rows(rows: Sequence[Dict[str, Any]]) -> List[HistogramFrame]:
    """Decode histogram rows, ordered by step."""
    if not isinstance(rows, (list, tuple)):
        raise PayloadError("Histogram payload must be a list of rows")
    frames = [HistogramFrame.from_dict(row) for row in rows]
    return sorted(frames, key=lambda f: f.step)


# =============================================================================
# Media
# =============================================================================

@dataclass(frozen=True)
class MediaFrame:
    """One image/audio/video sample; the file itself lives in object storage."""
    step: int
    file_name: str
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaFrame":
        if not isinstance(data, dict) or "step" not in data:
            raise PayloadError("Media row requires step")
        file_name = data.get("fileName", data.get("file_name"))
        if not isinstance(file_name, str) or not file_name:
            raise PayloadError("Media row requires fileName")
        url = data.get("url")
        if url is not None and not isinstance(url, str):
            raise PayloadError("Media url must be a string")
        return cls(step=_as_int(data["step"], "step"), file_name=file_name, url=url)


def decode_media_rows(rows: Sequence[Dict[str, Any]]) -> List[MediaFrame]:
    if not isinstance(rows, (list, tuple)):
        raise PayloadError("Media payload must be a list of rows")
    return sorted((MediaFrame.from_dict(row) for row in rows), key=lambda m: m.step)


# =============================================================================
# Render-ready series
# =============================================================================

@dataclass
class ChartSeries:
    """A single line trace ready for a chart surface."""
    x: np.ndarray
    y: np.ndarray
    label: str
    color: str = "#3b82f6"
    opacity: float = 1.0
    hide_from_legend: bool = False

    def __post_init__(self):
        self.x = np.asarray(self.x, dtype=np.float64)
        self.y = np.asarray(self.y, dtype=np.float64)
        if self.x.shape != self.y.shape:
            raise ValueError("x and y must have the same length")

    def __len__(self) -> int:
        return len(self.x)
