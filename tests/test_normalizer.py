"""
Unit tests for the Multi-Frame Normalizer.

Tests the shared grid, the stable vertical scale and memoization.
"""

import pytest
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainscope.core.models import BinSpec, HistogramFrame
from trainscope.core.normalizer import (
    HistogramNormalizer,
    compute_global_grid,
    normalize_frames,
    normalize_runs,
)


def make_frame(step, freq, lo, hi):
    """Helper to create HistogramFrame."""
    return HistogramFrame(step=step, bins=BinSpec(lo, hi, len(freq)), freq=np.asarray(freq, float))


@pytest.fixture
def frames():
    """Three steps with drifting ranges and resolutions."""
    return [
        make_frame(20, [1, 2, 1], 0.0, 3.0),
        make_frame(0, [4, 4], -1.0, 1.0),
        make_frame(10, [0, 1, 6, 1], 1.0, 5.0),
    ]


class TestGlobalGrid:
    """Tests for compute_global_grid()."""

    def test_union_and_finest_count(self, frames):
        """Test the grid spans the union at the largest bin count."""
        grid = compute_global_grid(frames)
        assert grid.min == -1.0
        assert grid.max == 5.0
        assert grid.count == 4

    def test_empty(self):
        assert compute_global_grid([]) is None


class TestNormalizeFrames:
    """Tests for single-run normalization."""

    def test_all_frames_share_grid(self, frames):
        """Test every output frame uses the global bin scheme."""
        result = normalize_frames(frames)
        for frame in result.frames:
            assert frame.bins == BinSpec(-1.0, 5.0, 4)
            assert len(frame.freq) == 4

    def test_ordered_by_step(self, frames):
        assert normalize_frames(frames).steps == [0, 10, 20]

    def test_stable_scale(self, frames):
        """Test global_max_freq bounds every frame of the set."""
        result = normalize_frames(frames)
        assert result.global_max_freq == max(f.max_freq for f in result.frames)
        assert all(f.max_freq <= result.global_max_freq for f in result.frames)

    def test_mass_conserved(self, frames):
        """Test each frame keeps its mass on the covering grid."""
        result = normalize_frames(frames)
        by_step = {f.step: f for f in frames}
        for frame in result.frames:
            assert frame.mass == pytest.approx(by_step[frame.step].mass, rel=1e-4)

    def test_empty_input(self):
        """Test no frames gives an explicit empty state."""
        result = normalize_frames([])
        assert result.is_empty
        assert result.grid is None
        assert result.global_max_freq == 0.0

    def test_single_valued_batch(self):
        """Test a zero-width union range yields empty frames, not an error."""
        result = normalize_frames([make_frame(0, [3], 2.0, 2.0), make_frame(1, [5], 2.0, 2.0)])
        assert len(result) == 2
        assert result.global_max_freq == 0.0


class TestNormalizeRuns:
    """Tests for run comparison."""

    def test_shared_grid_and_steps(self):
        """Test runs share one grid and the union of steps."""
        runs = {
            "a": [make_frame(0, [1, 1], 0.0, 2.0), make_frame(5, [2, 2], 0.0, 2.0)],
            "b": [make_frame(5, [1, 3, 1], 1.0, 4.0)],
        }
        result = normalize_runs(runs)
        assert result.grid.min == 0.0
        assert result.grid.max == 4.0
        assert result.step_values == [0, 5]
        assert result.frame_at("b", 0) is None
        assert result.frame_at("b", 5).bins.count == 3
        assert result.global_max_freq == max(result.run_max_freq.values())

    def test_frames_at_index(self):
        runs = {"a": [make_frame(1, [1], 0.0, 1.0)], "b": [make_frame(2, [1], 0.0, 1.0)]}
        result = normalize_runs(runs)
        at_first = result.frames_at_index(0)
        assert at_first["a"] is not None
        assert at_first["b"] is None

    def test_empty_runs(self):
        result = normalize_runs({"a": [], "b": []})
        assert result.is_empty
        assert set(result.runs) == {"a", "b"}


class TestHistogramNormalizer:
    """Tests for memoization."""

    def test_same_batch_not_recomputed(self, frames):
        """Test repeated calls with the same batch reuse the result."""
        normalizer = HistogramNormalizer()
        first = normalizer.normalize(frames)
        second = normalizer.normalize(frames)
        assert first is second
        assert normalizer.compute_count == 1

    def test_new_batch_recomputed(self, frames):
        normalizer = HistogramNormalizer()
        normalizer.normalize(frames)
        normalizer.normalize(list(frames))
        assert normalizer.compute_count == 2
