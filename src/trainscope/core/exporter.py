# TrainScope — Histogram Export

"""
Snapshot and animation export of rendered histogram frames.

A snapshot is the current raster encoded as a still image. An animation
renders every frame in order into an in-memory GIF; if any frame fails the
whole export is abandoned and nothing is returned.
"""

import io
import re
from fractions import Fraction
from typing import Callable, Optional

import av
import cv2
import numpy as np

from trainscope.core.errors import ExportCancelled, ExportError
from trainscope.utils import config
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)

RenderFn = Callable[[int], np.ndarray]
ProgressFn = Callable[[float], None]
CancelFn = Callable[[], bool]


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_") or "histogram"


def snapshot_filename(log_name: str, step: int) -> str:
    return f"histogram-{_safe_name(log_name)}-step-{step}.png"


def animation_filename(log_name: str) -> str:
    return f"histogram-{_safe_name(log_name)}-animation.gif"


def export_snapshot(image: np.ndarray, fmt: Optional[str] = None) -> bytes:
    """
    Encode one BGR raster.

    Args:
        image: HxWx3 uint8 BGR image.
        fmt: Image extension understood by OpenCV (default ".png").

    Returns:
        Encoded image bytes.

    Raises:
        ExportError: If the image cannot be encoded.
    """
    fmt = fmt or config.get("export_snapshot_format", ".png")
    if image is None or image.ndim != 3 or image.size == 0:
        raise ExportError("Snapshot needs a non-empty HxWx3 image")

    try:
        ok, encoded = cv2.imencode(fmt, image)
    except cv2.error as e:
        raise ExportError(f"Snapshot encoding failed: {e}") from e
    if not ok:
        raise ExportError(f"Snapshot encoding to {fmt} failed")
    return encoded.tobytes()


def export_animation(
    frame_count: int,
    render_frame: RenderFn,
    delay_ms: Optional[int] = None,
    on_progress: Optional[ProgressFn] = None,
    should_cancel: Optional[CancelFn] = None,
) -> bytes:
    """
    Render frames 0..frame_count-1 and encode them as an animated GIF.

    Args:
        frame_count: Number of frames to render.
        render_frame: Returns the BGR raster for a frame index.
        delay_ms: Per-frame delay (default from config, 100 ms).
        on_progress: Called with the completed fraction after each frame.
        should_cancel: Polled before each frame; True aborts the export.

    Returns:
        GIF bytes.

    Raises:
        ExportError: If any frame fails to render or encode.
        ExportCancelled: If should_cancel() returned True.
    """
    if frame_count <= 0:
        raise ExportError("Nothing to export")

    delay_ms = int(delay_ms or config.get("export_frame_delay_ms", 100))
    if delay_ms <= 0:
        raise ValueError("delay_ms must be > 0")

    buffer = io.BytesIO()
    container = av.open(buffer, mode="w", format="gif")
    try:
        stream = None
        for index in range(frame_count):
            if should_cancel is not None and should_cancel():
                raise ExportCancelled(f"Export cancelled at frame {index}/{frame_count}")

            try:
                image = render_frame(index)
                if stream is None:
                    stream = _open_stream(container, image, delay_ms)
                elif image.shape[:2] != (stream.height, stream.width):
                    raise ExportError(
                        f"Frame size {image.shape[1]}x{image.shape[0]} differs from "
                        f"{stream.width}x{stream.height}"
                    )

                rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
                frame = av.VideoFrame.from_ndarray(rgb, format="rgb24")
                frame.pts = index
                frame.time_base = Fraction(delay_ms, 1000)
                for packet in stream.encode(frame):
                    container.mux(packet)
            except ExportError:
                raise
            except Exception as e:
                raise ExportError(f"Frame {index} failed: {e}") from e

            if on_progress is not None:
                on_progress((index + 1) / frame_count)

        try:
            for packet in stream.encode():
                container.mux(packet)
            container.close()
        except Exception as e:
            raise ExportError(f"Finalizing animation failed: {e}") from e
    except ExportError as e:
        logger.warning("Animation export aborted: %s", e)
        _discard(container)
        raise

    data = buffer.getvalue()
    logger.info("Exported %d frames (%d bytes)", frame_count, len(data))
    return data


def _discard(container) -> None:
    """Close an aborted container; its partial output is never returned."""
    try:
        container.close()
    except Exception as e:
        logger.debug("Ignoring error while closing aborted export: %s", e)


def _open_stream(container, image: np.ndarray, delay_ms: int):
    if image is None or image.ndim != 3 or image.shape[2] != 3:
        raise ExportError("Frames must be HxWx3 BGR images")
    stream = container.add_stream("gif", rate=Fraction(1000, delay_ms))
    stream.width = image.shape[1]
    stream.height = image.shape[0]
    stream.pix_fmt = "rgb8"
    return stream
