# TrainScope — Histogram Rebinner

"""
Remaps one histogram frame onto a target bin grid, preserving total mass.

A source bin that falls entirely inside one target bin is moved whole.
A source bin straddling several target bins is split in proportion to
the width it shares with each of them.
"""

import math
from dataclasses import dataclass

import numpy as np

from trainscope.core.models import HistogramFrame
from trainscope.utils import config


ROUND_DIGITS = 6


@dataclass(frozen=True)
class GlobalBinGrid:
    """
    Shared (min, max, count) scheme for a batch of frames.

    min/max span the union of the frames' ranges; display_min/display_max
    add the padding used for the x-axis so edge bars are not flush with
    the plot border.
    """
    min: float
    max: float
    count: int
    padding: float = 0.1

    @property
    def width(self) -> float:
        """Width of one target bin (0 for a degenerate grid)."""
        if self.count <= 0:
            return 0.0
        return (self.max - self.min) / self.count

    @property
    def is_degenerate(self) -> bool:
        return self.count <= 0 or not self.max > self.min

    @property
    def display_min(self) -> float:
        return self.min - (self.max - self.min) * self.padding

    @property
    def display_max(self) -> float:
        return self.max + (self.max - self.min) * self.padding

    def edges(self) -> np.ndarray:
        """Bin edges, length count + 1."""
        return self.min + np.arange(self.count + 1) * self.width


def rebin_frame(frame: HistogramFrame, grid: GlobalBinGrid) -> np.ndarray:
    """
    Redistribute a frame's frequencies onto `grid`.

    Args:
        frame: Source histogram.
        grid: Target bin scheme.

    Returns:
        Array of length grid.count. All zeros when the grid is degenerate
        (zero width or zero count).
    """
    count = max(0, int(grid.count))
    out = np.zeros(count, dtype=np.float64)
    if grid.is_degenerate:
        return out

    target_width = grid.width
    src = frame.bins
    src_width = src.width

    for i in np.flatnonzero(frame.freq > 0):
        value = frame.freq[i]
        src_start = src.min + i * src_width
        src_end = src_start + src_width

        if src_width <= 0:
            # Point mass: the whole source range collapsed to one value
            idx = math.floor((src_start - grid.min) / target_width)
            if src_start == grid.max:
                idx = count - 1
            if 0 <= idx < count:
                out[idx] += value
            continue

        start_bin = math.floor((src_start - grid.min) / target_width)
        end_bin = math.ceil((src_end - grid.min) / target_width) - 1
        end_bin = max(start_bin, end_bin)

        if start_bin == end_bin:
            if 0 <= start_bin < count:
                out[start_bin] += value
            continue

        lo = max(0, start_bin)
        hi = min(count - 1, end_bin)
        if lo > hi:
            continue

        bins = np.arange(lo, hi + 1)
        bin_start = grid.min + bins * target_width
        bin_end = bin_start + target_width
        overlap = np.minimum(src_end, bin_end) - np.maximum(src_start, bin_start)
        overlap = np.clip(overlap, 0.0, None)
        out[lo:hi + 1] += value * overlap / src_width

    out = np.round(np.clip(out, 0.0, None), config.get("histogram_round_digits", ROUND_DIGITS))
    return out
