"""
Unit tests for the Smoothing Pipeline.

Tests each algorithm numerically and the trace assembly.
"""

import pytest
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainscope.core.models import ChartSeries
from trainscope.core.smoothing import (
    SmoothingAlgorithm,
    SmoothingConfig,
    Smoother,
    apply_smoothing,
    filter_for_log_scale,
    parameter_range,
    smooth,
    smooth_ema,
    smooth_gaussian,
    smooth_running,
    smooth_twema,
)


class TestRunningAverage:
    """Tests for the trailing moving average."""

    def test_trailing_window(self):
        """Test out[i] averages the last `window` points only."""
        out = smooth_running(np.array([1.0, 2.0, 3.0, 4.0]), 3)
        assert out[2] == pytest.approx(2.0)
        np.testing.assert_allclose(out, [1.0, 1.5, 2.0, 3.0])

    def test_window_one_is_identity(self):
        y = np.array([5.0, 1.0, 3.0])
        np.testing.assert_array_equal(smooth_running(y, 1), y)


class TestEma:
    """Tests for the bias-corrected EMA."""

    def test_bias_correction(self):
        """Test a constant series is not pulled toward zero at the start."""
        out = smooth_ema(np.array([10.0, 10.0, 10.0]), 0.6)
        assert out[0] == pytest.approx(10.0)
        np.testing.assert_allclose(out, [10.0, 10.0, 10.0])

    def test_constant_series_half_weight(self):
        out = smooth_ema(np.array([10.0, 10.0, 10.0]), 0.5)
        assert out[0] == 10.0
        np.testing.assert_allclose(out, [10.0, 10.0, 10.0])

    def test_weight_zero_is_identity(self):
        y = np.array([1.0, 5.0, 2.0])
        np.testing.assert_array_equal(smooth_ema(y, 0.0), y)

    def test_values(self):
        """Test the second point against a hand computation."""
        out = smooth_ema(np.array([0.0, 1.0]), 0.5)
        # last = 0.5 * 0 + 0.5 * 1 = 0.5; debias 1 - 0.25
        assert out[1] == pytest.approx(0.5 / 0.75)


class TestTwema:
    """Tests for the time-weighted EMA."""

    def test_matches_ema_when_evenly_spaced(self):
        """Test even spacing reduces to the ordinary EMA."""
        x = np.arange(6, dtype=float)
        y = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0])
        np.testing.assert_allclose(smooth_twema(x, y, 0.6), smooth_ema(y, 0.6))

    def test_large_gap_decays_more(self):
        """Test a longer gap gives the new value more weight."""
        y = np.array([0.0, 0.0, 10.0])
        near = smooth_twema(np.array([0.0, 1.0, 2.0]), y, 0.9)
        far = smooth_twema(np.array([0.0, 1.0, 10.0]), y, 0.9)
        assert far[-1] > near[-1]


class TestGaussian:
    """Tests for the Gaussian kernel."""

    def test_constant_series(self):
        x = np.array([0.0, 0.5, 2.0, 3.0])
        np.testing.assert_allclose(smooth_gaussian(x, np.full(4, 7.0), 1.0), 7.0)

    def test_symmetric_spike(self):
        """Test a centred spike spreads evenly to both neighbours."""
        x = np.arange(5, dtype=float)
        out = smooth_gaussian(x, np.array([0.0, 0.0, 1.0, 0.0, 0.0]), 1.0)
        assert out[1] == pytest.approx(out[3])
        assert out[2] < 1.0

    def test_uneven_spacing(self):
        """Test weights follow exp(-dx^2 / 2 sigma^2) on uneven x."""
        out = smooth_gaussian(np.array([0.0, 1.0, 3.0]), np.array([0.0, 1.0, 0.0]), 1.0)
        assert out[1] == pytest.approx(1.0 / (1.0 + np.exp(-0.5) + np.exp(-2.0)))
        assert out[0] == pytest.approx(np.exp(-0.5) / (1.0 + np.exp(-0.5) + np.exp(-4.5)))

    def test_three_sigma_cutoff(self):
        """Test points further than 3 sigma apart do not mix."""
        out = smooth_gaussian(np.array([0.0, 4.0]), np.array([0.0, 10.0]), 1.0)
        np.testing.assert_array_equal(out, [0.0, 10.0])


class TestSmooth:
    """Tests for smooth() validation and dispatch."""

    def test_dispatch(self):
        y = [1.0, 2.0, 3.0, 4.0]
        np.testing.assert_allclose(smooth(range(4), y, "running", 3), smooth_running(np.array(y), 3))

    def test_parameter_out_of_range(self):
        with pytest.raises(ValueError):
            smooth([0, 1], [1, 2], SmoothingAlgorithm.EMA, 1.0)
        with pytest.raises(ValueError):
            smooth([0, 1], [1, 2], SmoothingAlgorithm.GAUSSIAN, 0.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            smooth([0, 1, 2], [1, 2], "running", 2)

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            smooth([0], [1], "median", 2)

    def test_empty_series(self):
        assert len(smooth([], [], "gaussian", 2.0)) == 0

    def test_ranges(self):
        assert parameter_range("running").default == 10
        assert parameter_range("gaussian").max == 10
        assert parameter_range(SmoothingAlgorithm.TWEMA).default == 0.6


class TestTraces:
    """Tests for apply_smoothing() and Smoother."""

    @pytest.fixture
    def raw(self):
        return ChartSeries(x=[0, 1, 2, 3], y=[1, 3, 2, 4], label="loss", color="#ff0000")

    def test_disabled_passthrough(self, raw):
        assert apply_smoothing(raw, SmoothingConfig(enabled=False)) == [raw]

    def test_smoothed_and_original(self, raw):
        """Test the faint original trace is appended and hidden from the legend."""
        settings = SmoothingConfig(enabled=True, algorithm="running", parameter=2)
        smoothed, original = apply_smoothing(raw, settings)
        assert smoothed.opacity == 1.0
        assert not smoothed.hide_from_legend
        np.testing.assert_allclose(smoothed.y, [1, 2, 2.5, 3])
        assert original.opacity == pytest.approx(0.1)
        assert original.hide_from_legend
        assert original.label == "loss (original)"

    def test_without_original(self, raw):
        settings = SmoothingConfig(enabled=True, show_original_data=False)
        assert len(apply_smoothing(raw, settings)) == 1

    def test_config_dict(self):
        settings = SmoothingConfig.from_dict({"enabled": True, "algorithm": "ema",
                                              "parameter": 0.9, "showOriginalData": False})
        assert settings.algorithm is SmoothingAlgorithm.EMA
        assert settings.to_dict()["showOriginalData"] is False

    def test_smoother_memoizes_on_equal_settings(self, raw):
        """Test equal settings objects reuse the cached traces."""
        smoother = Smoother()
        first = smoother.traces(raw, SmoothingConfig(enabled=True))
        second = smoother.traces(raw, SmoothingConfig(enabled=True))
        assert first is second
        third = smoother.traces(raw, SmoothingConfig(enabled=True, parameter=3.0))
        assert third is not first


class TestLogScaleFilter:
    """Tests for filter_for_log_scale()."""

    @pytest.fixture
    def series(self):
        return ChartSeries(x=[0.0, 1.0, 2.0, 3.0], y=[5.0, -1.0, 0.0, 2.0], label="loss")

    def test_linear_axes_untouched(self, series):
        assert filter_for_log_scale([series], False, False) == [series]

    def test_log_x(self, series):
        (line,) = filter_for_log_scale([series], True, False)
        np.testing.assert_array_equal(line.x, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(line.y, [-1.0, 0.0, 2.0])
        assert line.label == "loss"

    def test_log_y(self, series):
        (line,) = filter_for_log_scale([series], False, True)
        np.testing.assert_array_equal(line.x, [0.0, 3.0])
        np.testing.assert_array_equal(line.y, [5.0, 2.0])

    def test_log_both(self, series):
        """Test both coordinates must be positive on a log-log chart."""
        (line,) = filter_for_log_scale([series], True, True)
        np.testing.assert_array_equal(line.x, [3.0])
        np.testing.assert_array_equal(line.y, [2.0])

    def test_empty_series_dropped(self, series):
        """Test a series with nothing drawable disappears."""
        negative = ChartSeries(x=[1.0, 2.0], y=[-3.0, 0.0], label="grad")
        kept = filter_for_log_scale([negative, series], False, True)
        assert [line.label for line in kept] == ["loss"]
        assert filter_for_log_scale([negative], False, True) == []
