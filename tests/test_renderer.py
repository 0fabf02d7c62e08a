"""
Unit tests for the OpenCV histogram renderer.
"""

import pytest
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainscope.core.models import BinSpec, HistogramFrame
from trainscope.core.normalizer import normalize_frames, normalize_runs
from trainscope.core.renderer import (
    HistogramRenderer,
    format_number,
    generate_nice_numbers,
    hex_to_bgr,
)


def make_frame(step, freq, lo=0.0, hi=4.0):
    """Helper to create HistogramFrame."""
    return HistogramFrame(step=step, bins=BinSpec(lo, hi, len(freq)), freq=np.asarray(freq, float))


class TestHelpers:
    """Tests for axis helpers."""

    def test_nice_numbers(self):
        assert generate_nice_numbers(0, 40, 5) == [0, 10, 20, 30, 40]

    def test_nice_numbers_degenerate(self):
        assert generate_nice_numbers(3, 3, 5) == [3]

    def test_format_number(self):
        assert format_number(0) == "0"
        assert format_number(12.0, is_integer=True) == "12"
        assert format_number(0.5) == "0.500"
        assert format_number(2_000_000) == "2.00e+06"

    def test_hex_to_bgr(self):
        assert hex_to_bgr("#3b82f6") == (246, 130, 59)
        assert hex_to_bgr("#fff") == (255, 255, 255)


class TestHistogramRenderer:
    """Tests for rasters."""

    @pytest.fixture
    def renderer(self):
        return HistogramRenderer(320, 200, theme="light")

    def test_size_and_dtype(self, renderer):
        normalized = normalize_frames([make_frame(0, [1, 2, 3, 4])])
        image = renderer.render_set_index(normalized, 0)
        assert image.shape == (200, 320, 3)
        assert image.dtype == np.uint8

    def test_bars_drawn(self, renderer):
        """Test a non-empty frame paints more than the empty one."""
        normalized = normalize_frames([make_frame(0, [0, 0, 0, 0]), make_frame(1, [4, 4, 4, 4])])
        empty = renderer.render_set_index(normalized, 0)
        full = renderer.render_set_index(normalized, 1)
        background = np.array([255, 255, 255], dtype=np.uint8)
        painted = lambda img: int((img != background).any(axis=2).sum())
        assert painted(full) > painted(empty)

    def test_empty_set_blank(self, renderer):
        image = renderer.render_set_index(normalize_frames([]), 0)
        assert (image == 255).all()

    def test_dark_theme_background(self):
        renderer = HistogramRenderer(200, 150, theme="dark")
        assert (renderer.blank() == 0).all()

    def test_too_small(self):
        with pytest.raises(ValueError):
            HistogramRenderer(50, 50)

    def test_runs(self, renderer):
        """Test the comparison view renders one chart per run."""
        normalized = normalize_runs({
            "a": [make_frame(0, [1, 2]), make_frame(1, [2, 1])],
            "b": [make_frame(1, [3, 3, 3])],
        })
        image = renderer.render_runs(normalized, 0, colors={"a": "#ff0000"}, names={"a": "baseline"})
        assert image.shape == (200, 320, 3)

    def test_runs_empty(self, renderer):
        image = renderer.render_runs(normalize_runs({}), 0)
        assert (image == 255).all()
