# TrainScope — Export Worker

"""
Background thread for animated histogram export.

The worker renders and encodes every frame off the UI thread, reports
fractional progress, and finishes with either the GIF bytes or a
user-facing failure message.
"""

from typing import Callable, Optional

import numpy as np
from PySide6.QtCore import QObject, QThread, Signal

from trainscope.core.errors import ExportCancelled, ExportError
from trainscope.core.exporter import export_animation
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)


class ExportWorker(QObject):
    """
    Runs export_animation() and reports through signals.

    Signals:
        progress(float): Completed fraction, 0.0 to 1.0
        finished(bool, str): (success, message)
    """

    progress = Signal(float)
    finished = Signal(bool, str)

    def __init__(self, frame_count: int, render_frame: Callable[[int], np.ndarray],
                 delay_ms: Optional[int] = None):
        super().__init__()
        self.frame_count = frame_count
        self.render_frame = render_frame
        self.delay_ms = delay_ms
        self.result: Optional[bytes] = None
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation before the next frame."""
        self._cancelled = True

    def run(self) -> None:
        self.result = None
        try:
            self.result = export_animation(
                self.frame_count,
                self.render_frame,
                delay_ms=self.delay_ms,
                on_progress=self.progress.emit,
                should_cancel=lambda: self._cancelled,
            )
        except ExportCancelled:
            self.finished.emit(False, "Export cancelled")
            return
        except ExportError as e:
            self.finished.emit(False, f"Failed to export animation: {e}")
            return
        except Exception as e:
            logger.exception("Unexpected export failure")
            self.finished.emit(False, f"Failed to export animation: {e}")
            return

        self.finished.emit(True, f"Exported {self.frame_count} frames")


class ExportRunner(QObject):
    """
    Owns the export thread. One export at a time.

    Signals:
        progress(float): Forwarded from the worker
        finished(bool, str, object): (success, message, GIF bytes or None)
    """

    progress = Signal(float)
    finished = Signal(bool, str, object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._thread: Optional[QThread] = None
        self._worker: Optional[ExportWorker] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.isRunning()

    def start(self, frame_count: int, render_frame: Callable[[int], np.ndarray],
              delay_ms: Optional[int] = None) -> bool:
        """Start an export. Returns False if one is already running."""
        if self.is_running:
            logger.warning("Export already running")
            return False

        self._thread = QThread()
        # Keep a reference so the worker is not garbage collected
        self._worker = ExportWorker(frame_count, render_frame, delay_ms)
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.run)
        self._worker.progress.connect(self.progress.emit)
        self._worker.finished.connect(self._on_finished)

        self._thread.start()
        return True

    def cancel(self) -> None:
        if self._worker is not None:
            self._worker.cancel()

    def wait(self, timeout_ms: int = 5000) -> bool:
        """Block until the export thread exits."""
        if self._thread is None:
            return True
        return self._thread.wait(timeout_ms)

    def _on_finished(self, success: bool, message: str) -> None:
        data = self._worker.result if self._worker is not None else None
        if not success:
            logger.warning(message)
        if self._thread is not None:
            self._thread.quit()
        self.finished.emit(success, message, data)
