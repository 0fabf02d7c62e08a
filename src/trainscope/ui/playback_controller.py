# TrainScope — Playback Controller

"""
Step-by-step playback over an ordered frame sequence.

Features:
- Stopped / Playing / Paused state machine
- Speed in milliseconds per frame (1 to 1000)
- Scrubbing from any state
- Single pass per play(): reaching the last frame stops and rewinds
- Snapshot and animation export of the rendered frames
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Optional, Protocol

import numpy as np
from PySide6.QtCore import QObject, QTimer, Signal

from trainscope.core import exporter
from trainscope.utils import config


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameTicker(Protocol):
    """Calls back once per display tick while active."""

    @property
    def is_active(self) -> bool:
        ...

    def start(self, callback: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


class QtFrameTicker(QObject):
    """FrameTicker driven by a QTimer at display cadence."""

    def __init__(self, interval_ms: Optional[int] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms or config.get("playback_tick_interval_ms", 16)))
        self._callback: Optional[Callable[[], None]] = None
        self._timer.timeout.connect(self._on_timeout)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    def _on_timeout(self) -> None:
        if self._callback is not None:
            self._callback()


class PlaybackController(QObject):
    """
    Drives the current frame index of a histogram (or media) panel.

    The ticker calls tick() on every display refresh; tick() advances one
    frame once `speed_ms` has elapsed since the last advance.

    Signals:
        frame_changed(int): Emitted when the current index changes
        state_changed(PlaybackState): Emitted on state transitions
    """

    frame_changed = Signal(int)
    state_changed = Signal(object)

    def __init__(
        self,
        frame_count: int = 0,
        speed_ms: Optional[int] = None,
        clock: Callable[[], float] = monotonic_ms,
        ticker: Optional[FrameTicker] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._clock = clock
        self._ticker = ticker if ticker is not None else QtFrameTicker(parent=self)
        self._frame_count = max(0, int(frame_count))
        self._state = PlaybackState.STOPPED
        self._index = 0
        self._last_advance = 0.0
        self._speed_ms = 0
        self.set_speed(speed_ms if speed_ms is not None
                       else config.get("playback_default_speed_ms", 100))

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def max_index(self) -> int:
        return max(0, self._frame_count - 1)

    @property
    def speed_ms(self) -> int:
        return self._speed_ms

    def set_frame_count(self, frame_count: int) -> None:
        """New sequence length (e.g. after the data refreshed)."""
        self._frame_count = max(0, int(frame_count))
        if self._frame_count == 0:
            self.stop()
        elif self._index > self.max_index:
            self.seek(self.max_index)

    # ========================================================================
    # Speed Control
    # ========================================================================

    def set_speed(self, speed_ms: int) -> None:
        """
        Set the frame interval in milliseconds.

        Raises:
            ValueError: If outside the configured [min, max] range.
        """
        lo = config.get("playback_min_speed_ms", 1)
        hi = config.get("playback_max_speed_ms", 1000)
        speed_ms = int(speed_ms)
        if not lo <= speed_ms <= hi:
            raise ValueError(f"playback speed must be within [{lo}, {hi}] ms, got {speed_ms}")
        self._speed_ms = speed_ms

    def adjust_speed(self, steps: int) -> int:
        """Move the speed by whole slider steps, clamped to the valid range."""
        lo = config.get("playback_min_speed_ms", 1)
        hi = config.get("playback_max_speed_ms", 1000)
        step = config.get("playback_speed_step_ms", 10)
        self.set_speed(max(lo, min(hi, self._speed_ms + steps * step)))
        return self._speed_ms

    # ========================================================================
    # Playback Control
    # ========================================================================

    def play(self) -> None:
        """Start (or resume) playback from the current index."""
        if self._frame_count == 0 or self.is_playing:
            return
        self._last_advance = self._clock()
        self._ticker.start(self.tick)
        self._set_state(PlaybackState.PLAYING)

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._ticker.stop()
        self._set_state(PlaybackState.PAUSED)

    def toggle_play_pause(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Stop playback and return to the first frame."""
        self._ticker.stop()
        self._set_state(PlaybackState.STOPPED)
        self._set_index(0)

    def tick(self, now: Optional[float] = None) -> None:
        """Render-loop callback: advance one frame when the interval elapsed."""
        if not self.is_playing:
            return
        now = self._clock() if now is None else now
        if now - self._last_advance < self._speed_ms:
            return

        self._last_advance = now
        if self._index >= self.max_index:
            self.stop()
            return
        self._set_index(self._index + 1)

    # ========================================================================
    # Navigation
    # ========================================================================

    def seek(self, index: int) -> None:
        """Jump to an index (clamped). Allowed in any state; timers keep running."""
        self._set_index(max(0, min(self.max_index, int(index))))

    def step_forward(self) -> None:
        self.seek(self._index + 1)

    def step_backward(self) -> None:
        self.seek(self._index - 1)

    def seek_to_position(self, position: float) -> None:
        """Seek to a normalized position (0.0 to 1.0)."""
        position = max(0.0, min(1.0, position))
        self.seek(int(round(position * self.max_index)))

    def get_normalized_position(self) -> float:
        if self.max_index == 0:
            return 0.0
        return self._index / self.max_index

    # ========================================================================
    # Export
    # ========================================================================

    def export_snapshot(self, render_frame: Callable[[int], np.ndarray]) -> bytes:
        """Encode the currently displayed frame."""
        return exporter.export_snapshot(render_frame(self._index))

    def export_animation(
        self,
        render_frame: Callable[[int], np.ndarray],
        on_progress: Optional[Callable[[float], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> bytes:
        """Encode every frame of the sequence, pausing playback first."""
        self.pause()
        return exporter.export_animation(
            self._frame_count,
            render_frame,
            delay_ms=config.get("export_frame_delay_ms", 100),
            on_progress=on_progress,
            should_cancel=should_cancel,
        )

    # ========================================================================
    # Internal
    # ========================================================================

    def _set_index(self, index: int) -> None:
        if index == self._index:
            return
        self._index = index
        self.frame_changed.emit(index)

    def _set_state(self, state: PlaybackState) -> None:
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state)
