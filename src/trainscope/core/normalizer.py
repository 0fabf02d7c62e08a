# TrainScope — Multi-Frame Normalizer

"""
Puts a batch of histogram frames onto one shared bin grid.

A batch is either the steps of one run (single-run view) or the steps of
several runs (comparison view). Every frame of the batch is rebinned onto
the union range at the finest observed resolution, and the maximum cell
value across the whole batch gives a vertical scale that stays put while
frames are played back.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence


from trainscope.core.memo import IdentityMemo
from trainscope.core.models import BinSpec, HistogramFrame
from trainscope.core.rebinner import GlobalBinGrid, rebin_frame
from trainscope.utils import config
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class NormalizedSet:
    """Frames of one batch rebinned onto one grid."""
    grid: Optional[GlobalBinGrid]
    frames: List[HistogramFrame] = field(default_factory=list)
    global_max_freq: float = 0.0

    @property
    def is_empty(self) -> bool:
        """True when there is no data to show."""
        return not self.frames

    @property
    def steps(self) -> List[int]:
        return [f.step for f in self.frames]

    @property
    def max_index(self) -> int:
        return max(0, len(self.frames) - 1)

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> HistogramFrame:
        return self.frames[index]


@dataclass
class MultiRunNormalizedSet:
    """Several runs' frames sharing one grid and one vertical scale."""
    grid: Optional[GlobalBinGrid]
    runs: Dict[str, List[HistogramFrame]] = field(default_factory=dict)
    run_max_freq: Dict[str, float] = field(default_factory=dict)
    step_values: List[int] = field(default_factory=list)
    global_max_freq: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.step_values

    @property
    def max_index(self) -> int:
        return max(0, len(self.step_values) - 1)

    def step_at(self, index: int) -> int:
        """Step value shown at a playback index."""
        return self.step_values[index]

    def frame_at(self, run_id: str, step: int) -> Optional[HistogramFrame]:
        """Frame of `run_id` logged at `step`, if the run has one."""
        for frame in self.runs.get(run_id, []):
            if frame.step == step:
                return frame
        return None

    def frames_at_index(self, index: int) -> Dict[str, Optional[HistogramFrame]]:
        step = self.step_at(index)
        return {run_id: self.frame_at(run_id, step) for run_id in self.runs}


def compute_global_grid(frames: Sequence[HistogramFrame]) -> Optional[GlobalBinGrid]:
    """
    Union range and finest resolution across a batch.

    Returns:
        The grid, or None for an empty batch.
    """
    if not frames:
        return None

    global_min = min(f.bins.min for f in frames)
    global_max = max(f.bins.max for f in frames)
    max_count = max(f.bins.count for f in frames)
    return GlobalBinGrid(
        min=global_min,
        max=global_max,
        count=max_count,
        padding=config.get("histogram_range_padding", 0.1),
    )


def _rebinned(frame: HistogramFrame, grid: GlobalBinGrid) -> HistogramFrame:
    if grid.is_degenerate:
        logger.debug("Degenerate grid for step %d; returning empty frame", frame.step)
    freq = rebin_frame(frame, grid)
    bins = BinSpec(min=grid.min, max=grid.max, count=grid.count)
    return HistogramFrame(step=frame.step, bins=bins, freq=freq)


def normalize_frames(frames: Sequence[HistogramFrame]) -> NormalizedSet:
    """
    Rebin the steps of one run onto a shared grid.

    Frames are ordered by step. An empty batch gives an empty set.
    """
    if not frames:
        return NormalizedSet(grid=None)

    ordered = sorted(frames, key=lambda f: f.step)
    grid = compute_global_grid(ordered)
    normalized = [_rebinned(f, grid) for f in ordered]
    global_max = max((f.max_freq for f in normalized), default=0.0)
    return NormalizedSet(grid=grid, frames=normalized, global_max_freq=global_max)


def normalize_runs(runs: Mapping[str, Sequence[HistogramFrame]]) -> MultiRunNormalizedSet:
    """
    Rebin several runs' frames onto one grid for side-by-side comparison.

    Args:
        runs: run id -> that run's frames (any order).

    Returns:
        MultiRunNormalizedSet whose step_values is the sorted union of
        all runs' steps.
    """
    all_frames = [f for frames in runs.values() for f in frames]
    grid = compute_global_grid(all_frames)
    if grid is None:
        return MultiRunNormalizedSet(grid=None, runs={run_id: [] for run_id in runs})

    result = MultiRunNormalizedSet(grid=grid)
    steps = set()
    for run_id, frames in runs.items():
        ordered = [_rebinned(f, grid) for f in sorted(frames, key=lambda f: f.step)]
        result.runs[run_id] = ordered
        result.run_max_freq[run_id] = max((f.max_freq for f in ordered), default=0.0)
        steps.update(f.step for f in ordered)

    result.step_values = sorted(steps)
    result.global_max_freq = max(result.run_max_freq.values(), default=0.0)
    return result


class HistogramNormalizer:
    """
    Memoizing front for the normalizer.

    Recomputes only when a different batch object is passed in; fetched
    batches are immutable so identity is enough.

    Usage:
        normalizer = HistogramNormalizer()
        normalized = normalizer.normalize(frames)
    """

    def __init__(self):
        self._single = IdentityMemo(normalize_frames)
        self._multi = IdentityMemo(normalize_runs)

    def normalize(self, frames: Sequence[HistogramFrame]) -> NormalizedSet:
        return self._single(frames)

    def normalize_runs(self, runs: Mapping[str, Sequence[HistogramFrame]]) -> MultiRunNormalizedSet:
        return self._multi(runs)

    @property
    def compute_count(self) -> int:
        """How many times a batch was actually rebinned."""
        return self._single.misses + self._multi.misses
