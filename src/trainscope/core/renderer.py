# TrainScope — Histogram Renderer

"""
Paints normalized histogram frames onto BGR rasters with OpenCV.

The raster is what the playback view shows and what the exporter
encodes, so both always agree. Bars are scaled by the set's
global_max_freq so the vertical axis does not jump between frames.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from trainscope.core.models import HistogramFrame
from trainscope.core.normalizer import MultiRunNormalizedSet, NormalizedSet
from trainscope.core.rebinner import GlobalBinGrid
from trainscope.utils import config


FONT = cv2.FONT_HERSHEY_SIMPLEX
MAX_X_LABELS = 7


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    """'#RRGGBB' -> (B, G, R)."""
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def format_number(value: float, is_integer: bool = False) -> str:
    """Compact axis label."""
    if value == 0:
        return "0"
    if is_integer:
        return f"{value:.0f}"

    abs_value = abs(value)
    if abs_value >= 1e6 or abs_value < 0.001:
        return f"{value:.2e}"
    if abs_value < 0.01:
        return f"{value:.4f}"
    if abs_value < 1:
        return f"{value:.3f}"
    if abs_value < 1000:
        return f"{value:.2f}"
    return f"{value:.1f}"


def generate_nice_numbers(min_value: float, max_value: float, tick_count: int) -> List[float]:
    """Round tick positions covering [min_value, max_value]."""
    value_range = max_value - min_value
    if value_range <= 0 or tick_count < 2:
        return [min_value]

    raw_step = value_range / (tick_count - 1)
    exponent = math.ceil(math.log10(raw_step) - 1)
    pow10 = 10 ** exponent
    step = math.ceil(raw_step / pow10) * pow10

    nice_min = math.floor(min_value / step) * step
    nice_max = math.ceil(max_value / step) * step

    ticks = []
    tick = nice_min
    while tick <= nice_max + step * 1e-9:
        ticks.append(round(tick, 10))
        tick += step
    return ticks


@dataclass
class Theme:
    background: Tuple[int, int, int]
    axis: Tuple[int, int, int]

    @classmethod
    def named(cls, name: str) -> "Theme":
        if name == "dark":
            return cls((0, 0, 0), hex_to_bgr(config.get("render_axis_color_dark", "#94a3b8")))
        return cls((255, 255, 255), hex_to_bgr(config.get("render_axis_color_light", "#666666")))


class HistogramRenderer:
    """
    Draws one step of a NormalizedSet (or of several runs) to a raster.

    Usage:
        renderer = HistogramRenderer(800, 400)
        image = renderer.render_frame(normalized[3], normalized.grid,
                                      normalized.global_max_freq)
    """

    def __init__(self, width: Optional[int] = None, height: Optional[int] = None,
                 theme: Optional[str] = None):
        self.width = int(width or config.get("render_width", 800))
        self.height = int(height or config.get("render_height", 400))
        if self.width < 100 or self.height < 100:
            raise ValueError("Render surface must be at least 100x100")
        self.theme = Theme.named(theme or config.get("render_theme", "light"))
        self.bar_color = tuple(config.get("render_bar_color_bgr", (246, 130, 59)))

        min_dim = min(self.width, self.height)
        self._font_scale = max(0.35, min(0.5, min_dim / 900))

    # =========================================================================
    # Public
    # =========================================================================

    def blank(self) -> np.ndarray:
        image = np.empty((self.height, self.width, 3), dtype=np.uint8)
        image[:] = self.theme.background
        return image

    def render_frame(self, frame: HistogramFrame, grid: GlobalBinGrid,
                     global_max_freq: float) -> np.ndarray:
        """Single-run view: one histogram with gradient bars."""
        image = self.blank()
        min_dim = min(self.width, self.height)
        pad = int(max(40, min(60, min_dim * 0.1)))
        left, right = pad, self.width - pad
        top, bottom = pad, self.height - pad

        self._draw_axes(image, left, right, top, bottom)
        self._draw_x_ticks(image, grid, left, right, bottom)
        self._draw_y_ticks(image, global_max_freq, left, top, bottom)
        self._draw_bars(image, frame, grid, global_max_freq, left, right, top, bottom,
                        self.bar_color, gradient=True)
        self._draw_step(image, frame.step, right, top - 10)
        return image

    def render_set_index(self, normalized: NormalizedSet, index: int) -> np.ndarray:
        """Frame `index` of a single-run set (blank canvas when empty)."""
        if normalized.is_empty:
            return self.blank()
        return self.render_frame(normalized[index], normalized.grid, normalized.global_max_freq)

    def render_runs(self, normalized: MultiRunNormalizedSet, index: int,
                    colors: Optional[Dict[str, str]] = None,
                    names: Optional[Dict[str, str]] = None) -> np.ndarray:
        """Comparison view: one stacked histogram per run at a shared step."""
        image = self.blank()
        if normalized.is_empty:
            return image

        colors = colors or {}
        names = names or {}
        step = normalized.step_at(index)
        run_ids = list(normalized.runs)

        min_dim = min(self.width, self.height)
        pad = int(max(20, min(40, min_dim * 0.08)))
        legend = int(max(20, min(30, min_dim * 0.06)))
        spacing = int(config.get("render_chart_spacing", 40))
        left = max(pad, self._y_label_width(normalized.global_max_freq) + 15)
        right = self.width - pad
        bottom = self.height - pad

        available = self.height - (pad * 2 + legend + spacing * (len(run_ids) - 1))
        chart_height = max(30, available // max(1, len(run_ids)))

        cv2.line(image, (left, bottom), (right, bottom), self.theme.axis, 1, cv2.LINE_AA)
        self._draw_x_ticks(image, normalized.grid, left, right, bottom)

        for i, run_id in enumerate(run_ids):
            y_start = pad + legend + i * (chart_height + spacing)
            y_end = y_start + chart_height
            color = hex_to_bgr(colors[run_id]) if run_id in colors else self.bar_color

            cv2.line(image, (left, y_start), (left, y_end), self.theme.axis, 1, cv2.LINE_AA)
            self._put_text(image, self._truncate(names.get(run_id, run_id), right - left - 10),
                           (left, y_start - 5), color)

            frame = normalized.frame_at(run_id, step)
            if frame is not None:
                self._draw_bars(image, frame, normalized.grid, normalized.global_max_freq,
                                left, right, y_start, y_end, color, gradient=False)
            self._draw_y_ticks(image, normalized.global_max_freq, left, y_start, y_end)

        self._draw_step(image, step, right, pad - 5)
        return image

    # =========================================================================
    # Drawing helpers
    # =========================================================================

    def _draw_axes(self, image, left, right, top, bottom) -> None:
        cv2.line(image, (left, top), (left, bottom), self.theme.axis, 2, cv2.LINE_AA)
        cv2.line(image, (left, bottom), (right, bottom), self.theme.axis, 2, cv2.LINE_AA)

    def _x_to_px(self, value: float, grid: GlobalBinGrid, left: int, right: int) -> float:
        lo, hi = grid.display_min, grid.display_max
        if hi <= lo:
            return (left + right) / 2
        return left + (value - lo) / (hi - lo) * (right - left)

    def _draw_x_ticks(self, image, grid: Optional[GlobalBinGrid], left, right, bottom) -> None:
        if grid is None:
            return
        tick_len = int(config.get("render_tick_length", 5))
        ticks = generate_nice_numbers(grid.display_min, grid.display_max,
                                      int(config.get("render_x_ticks", 10)))
        positions = [(t, self._x_to_px(t, grid, left, right)) for t in ticks]
        positions = [(t, x) for t, x in positions if left <= x <= right]

        for _, x in positions:
            cv2.line(image, (int(x), bottom), (int(x), bottom + tick_len), self.theme.axis, 1)

        for t, x in self._thin_labels(positions):
            label = format_number(t)
            (w, h), _ = cv2.getTextSize(label, FONT, self._font_scale, 1)
            x_text = int(min(max(x - w / 2, left), right - w))
            self._put_text(image, label, (x_text, bottom + tick_len + h + 4))

    @staticmethod
    def _thin_labels(positions: Sequence[Tuple[float, float]]) -> List[Tuple[float, float]]:
        """First, last and evenly spaced ticks in between."""
        if len(positions) <= MAX_X_LABELS:
            return list(positions)
        step = (len(positions) - 1) / (MAX_X_LABELS - 1)
        indices = sorted({round(i * step) for i in range(MAX_X_LABELS)})
        return [positions[i] for i in indices]

    def _draw_y_ticks(self, image, max_freq: float, left, top, bottom) -> None:
        if max_freq <= 0:
            return
        tick_len = int(config.get("render_tick_length", 5))
        for t in generate_nice_numbers(0, max_freq, int(config.get("render_y_ticks", 5))):
            if t > max_freq:
                continue
            y = int(bottom - t / max_freq * (bottom - top))
            cv2.line(image, (left - tick_len, y), (left, y), self.theme.axis, 1)
            label = format_number(t, is_integer=True)
            (w, h), _ = cv2.getTextSize(label, FONT, self._font_scale, 1)
            self._put_text(image, label, (left - tick_len - 3 - w, y + h // 2))

    def _draw_bars(self, image, frame: HistogramFrame, grid: GlobalBinGrid, max_freq: float,
                   left, right, top, bottom, color, gradient: bool) -> None:
        if max_freq <= 0 or grid is None:
            return
        bins = frame.bins
        chart_height = bottom - top
        bg = np.array(self.theme.background, dtype=np.float32)
        fg = np.array(color, dtype=np.float32)

        for i in np.flatnonzero(frame.freq > 0):
            start = bins.min + i * bins.width
            x0 = self._x_to_px(start, grid, left, right)
            x1 = self._x_to_px(start + bins.width, grid, left, right)
            x0, x1 = int(max(x0, left)), int(min(max(x1, x0 + 1), right))
            bar_height = int(round(frame.freq[i] / max_freq * chart_height))
            if x1 <= x0 or bar_height <= 0:
                continue

            y0 = bottom - bar_height
            if gradient:
                alpha = np.linspace(0.8, 0.2, bar_height, dtype=np.float32)[:, None, None]
            else:
                alpha = np.full((bar_height, 1, 1), 0.8, dtype=np.float32)
            roi = (alpha * fg + (1 - alpha) * bg).astype(np.uint8)
            image[y0:bottom, x0:x1] = np.broadcast_to(roi, (bar_height, x1 - x0, 3))

    def _draw_step(self, image, step: int, right: int, baseline: int) -> None:
        label = f"Step: {format_number(step, is_integer=True)}"
        (w, _), _ = cv2.getTextSize(label, FONT, self._font_scale * 1.2, 1)
        cv2.putText(image, label, (right - w, max(12, baseline)), FONT,
                    self._font_scale * 1.2, self.theme.axis, 1, cv2.LINE_AA)

    def _put_text(self, image, text: str, origin, color=None) -> None:
        cv2.putText(image, text, (int(origin[0]), int(origin[1])), FONT, self._font_scale,
                    color or self.theme.axis, 1, cv2.LINE_AA)

    def _y_label_width(self, max_freq: float) -> int:
        labels = [format_number(t, is_integer=True)
                  for t in generate_nice_numbers(0, max(max_freq, 0), 5)]
        return max(cv2.getTextSize(l, FONT, self._font_scale, 1)[0][0] for l in labels)

    def _truncate(self, text: str, max_width: int) -> str:
        if cv2.getTextSize(text, FONT, self._font_scale, 1)[0][0] <= max_width:
            return text
        while text and cv2.getTextSize(text + "...", FONT, self._font_scale, 1)[0][0] > max_width:
            text = text[:-1]
        return text + "..."
