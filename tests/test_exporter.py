"""
Unit tests for snapshot and animation export.
"""

import pytest
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainscope.core.errors import ExportCancelled, ExportError
from trainscope.core.exporter import (
    animation_filename,
    export_animation,
    export_snapshot,
    snapshot_filename,
)
from trainscope.ui.export_worker import ExportRunner, ExportWorker

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def solid_frame(index, size=(24, 32)):
    """Helper: distinct solid-colour BGR frame per index."""
    frame = np.zeros((size[0], size[1], 3), dtype=np.uint8)
    frame[:] = ((index * 50) % 256, 100, 200)
    return frame


class TestSnapshot:
    """Tests for export_snapshot()."""

    def test_png(self):
        assert export_snapshot(solid_frame(0)).startswith(PNG_MAGIC)

    def test_jpeg(self):
        assert export_snapshot(solid_frame(0), ".jpg")[:2] == b"\xff\xd8"

    def test_empty_image(self):
        with pytest.raises(ExportError):
            export_snapshot(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_filenames(self):
        assert snapshot_filename("weights/fc1", 20) == "histogram-weights_fc1-step-20.png"
        assert animation_filename("grads") == "histogram-grads-animation.gif"


class TestAnimation:
    """Tests for export_animation()."""

    def test_gif_output(self):
        data = export_animation(4, solid_frame)
        assert data[:4] == b"GIF8"

    def test_renders_every_frame_in_order(self):
        seen = []

        def render(index):
            seen.append(index)
            return solid_frame(index)

        export_animation(5, render)
        assert seen == [0, 1, 2, 3, 4]

    def test_progress_reaches_one(self):
        """Test fractional progress ends at 1.0."""
        progress = []
        export_animation(4, solid_frame, on_progress=progress.append)
        assert progress == [0.25, 0.5, 0.75, 1.0]

    def test_frame_failure_aborts(self, caplog):
        """Test one failing frame aborts the whole export."""
        def render(index):
            if index == 2:
                raise RuntimeError("surface lost")
            return solid_frame(index)

        progress = []
        with pytest.raises(ExportError, match="Frame 2"):
            export_animation(4, render, on_progress=progress.append)
        assert progress == [0.25, 0.5]
        assert "aborted" in caplog.text

    def test_size_change_aborts(self):
        with pytest.raises(ExportError):
            export_animation(2, lambda i: solid_frame(i, size=(24 + i, 32)))

    def test_cancel(self):
        with pytest.raises(ExportCancelled):
            export_animation(4, solid_frame, should_cancel=lambda: True)

    def test_nothing_to_export(self):
        with pytest.raises(ExportError):
            export_animation(0, solid_frame)


class TestExportWorker:
    """Tests for the background export worker."""

    def test_run_success(self, qapp):
        worker = ExportWorker(3, solid_frame)
        results = []
        progress = []
        worker.finished.connect(lambda ok, msg: results.append((ok, msg)))
        worker.progress.connect(progress.append)
        worker.run()
        assert results == [(True, "Exported 3 frames")]
        assert progress[-1] == 1.0
        assert worker.result[:4] == b"GIF8"

    def test_run_failure_message(self, qapp):
        def render(index):
            raise RuntimeError("boom")

        worker = ExportWorker(2, render)
        results = []
        worker.finished.connect(lambda ok, msg: results.append((ok, msg)))
        worker.run()
        ok, message = results[0]
        assert not ok
        assert message.startswith("Failed to export animation")
        assert worker.result is None

    def test_cancelled(self, qapp):
        worker = ExportWorker(3, solid_frame)
        worker.cancel()
        results = []
        worker.finished.connect(lambda ok, msg: results.append((ok, msg)))
        worker.run()
        assert results == [(False, "Export cancelled")]

    def test_runner_thread(self, qapp, qtbot):
        """Test the runner exports on a QThread and hands back the bytes."""
        runner = ExportRunner()
        with qtbot.waitSignal(runner.finished, timeout=10000) as blocker:
            assert runner.start(3, solid_frame)
        ok, _, data = blocker.args
        assert ok
        assert data[:4] == b"GIF8"
        assert runner.wait(2000)
