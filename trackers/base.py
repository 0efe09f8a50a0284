"""
Base vision processor that every tracker backend implements. The base class owns the
trajectory, renders the overlay and the inference trace, and runs frames on its own QThread.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import cv2
import numpy as np
from PySide6.QtCore import QObject, QThread, Qt, Signal, Slot

from core import config

logger = logging.getLogger(__name__)

Point3 = tuple[float, float, float]
FrameCallback = Callable[[Any, Any], None]

_TRAIL_COLOR = (0, 255, 255)
_POINT_COLOR = (0, 0, 255)


def letterbox(image: np.ndarray, width: int, height: int, fill: int = 0) -> np.ndarray:
    """Resize keeping aspect ratio and pad to (width, height)."""
    h, w = image.shape[:2]
    scale = min(width / w, height / h)
    new_w, new_h = max(1, int(w * scale)), max(1, int(h * scale))
    resized = cv2.resize(image, (new_w, new_h))
    canvas = np.full((height, width) + image.shape[2:], fill, dtype=image.dtype)
    pad_x = (width - new_w) // 2
    pad_y = (height - new_h) // 2
    canvas[pad_y:pad_y + new_h, pad_x:pad_x + new_w] = resized
    return canvas


def render_trace(points: list[Point3], side: int, margin: float = 0.15) -> np.ndarray | None:
    """
    Draw the (x, y) path white on black, cropped to its bounding box plus margin, as a
    side x side BGRA image. None when there is nothing to draw.
    """
    if not points:
        return None
    xy = np.array([(p[0], p[1]) for p in points], dtype=np.float32)
    lo = xy.min(axis=0)
    extent = float(max((xy.max(axis=0) - lo).max(), 1.0))
    work = side * 10
    pad = work * margin
    scale = (work - 2 * pad) / extent
    # centre the shorter axis
    offset = (work - (xy.max(axis=0) - lo) * scale) / 2
    pts = ((xy - lo) * scale + offset).astype(np.int32)
    canvas = np.zeros((work, work), dtype=np.uint8)
    thickness = max(1, work // 14)
    if len(pts) == 1:
        cv2.circle(canvas, tuple(int(v) for v in pts[0]), thickness // 2, 255, -1)
    else:
        cv2.polylines(canvas, [pts.reshape(-1, 1, 2)], False, 255, thickness, cv2.LINE_AA)
    small = cv2.resize(canvas, (side, side), interpolation=cv2.INTER_AREA)
    return cv2.cvtColor(small, cv2.COLOR_GRAY2BGRA)


def format_coordinates(points: list[Point3]) -> str:
    """'x,y,z;x,y,z;...'"""
    return ";".join(f"{x:.1f},{y:.1f},{z:.1f}" for x, y, z in points)


class _FrameWorker(QObject):
    """Lives in the processor thread; runs one frame and invokes the callback there."""

    def __init__(self, processor: VisionProcessorBase) -> None:
        super().__init__()
        self._processor = processor

    @Slot(object, object, int)
    def run(self, frame: np.ndarray, callback: FrameCallback, generation: int) -> None:
        try:
            overlay, normalized = self._processor.process_frame(frame, generation)
        except Exception:  # noqa: BLE001
            logger.exception("%s failed to process frame", self._processor.display_name)
            overlay, normalized = None, None
        callback(overlay, normalized)


class VisionProcessorBase(QObject):
    """Interface for tracker backends. Subclasses must override `locate`."""

    tracker_id: str = ""
    display_name: str = ""
    requires_interpreter: bool = True

    _submit = Signal(object, object, int)

    def __init__(self, trace_side: int = config.CLASSIFIER_INPUT_SIDE, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.trace_side = trace_side
        self._interpreter: Any = None
        # Written from the processor thread, read/reset from the GUI thread
        self._lock = threading.Lock()
        self._trajectory: list[Point3] = []
        self._generation = 0
        self._thread: QThread | None = None
        self._worker: _FrameWorker | None = None

    # --- model binding ---

    def set_interpreter(self, interpreter: Any) -> None:
        self._interpreter = interpreter
        logger.info("%s: tracking model bound", self.display_name)

    @property
    def has_interpreter(self) -> bool:
        return self._interpreter is not None

    def get_model_dimensions(self) -> tuple[int, int]:
        """(width, height) of normalized frames."""
        return config.DEFAULT_MODEL_WIDTH, config.DEFAULT_MODEL_HEIGHT

    # --- session ---

    def reset(self) -> None:
        """Forget the trajectory. Frames dispatched before the reset no longer append to it."""
        with self._lock:
            self._trajectory.clear()
            self._generation += 1

    def trajectory(self) -> list[Point3]:
        with self._lock:
            return list(self._trajectory)

    def get_tracking_coordinates_string(self) -> str:
        return format_coordinates(self.trajectory())

    def export_trace_for_inference(self) -> np.ndarray | None:
        return render_trace(self.trajectory(), self.trace_side)

    # --- frames ---

    def process(self, frame: np.ndarray, callback: FrameCallback) -> None:
        """
        Process asynchronously on the processor thread. callback(overlay, normalized) is
        called from that thread; both are None if processing failed.
        """
        self._ensure_thread()
        with self._lock:
            generation = self._generation
        self._submit.emit(frame, callback, generation)

    def process_frame(self, frame: np.ndarray, generation: int | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Synchronous processing of one BGR frame. Returns (overlay, normalized)."""
        point = self.locate(frame)
        with self._lock:
            if point is not None and (generation is None or generation == self._generation):
                self._trajectory.append(point)
            points = list(self._trajectory)
        overlay = self.draw_overlay(frame, points, point)
        width, height = self.get_model_dimensions()
        return overlay, letterbox(overlay, width, height)

    def locate(self, frame: np.ndarray) -> Point3 | None:
        """Tracked point (x, y in frame pixels, z) for this frame, or None."""
        raise NotImplementedError

    def draw_overlay(self, frame: np.ndarray, points: list[Point3], current: Point3 | None) -> np.ndarray:
        overlay = frame.copy()
        if len(points) > 1:
            pts = np.array([(p[0], p[1]) for p in points], dtype=np.int32).reshape(-1, 1, 2)
            cv2.polylines(overlay, [pts], False, _TRAIL_COLOR, 3, cv2.LINE_AA)
        if current is not None:
            cv2.circle(overlay, (int(current[0]), int(current[1])), 8, _POINT_COLOR, -1)
        return overlay

    # --- thread ---

    def _ensure_thread(self) -> None:
        if self._thread is not None:
            return
        self._worker = _FrameWorker(self)
        self._thread = QThread()
        self._worker.moveToThread(self._thread)
        self._submit.connect(self._worker.run, Qt.ConnectionType.QueuedConnection)
        self._thread.start()

    def shutdown(self) -> None:
        """Stop the processor thread and release backend resources."""
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait()
            self._thread = None
            self._worker = None
        self.close()

    def close(self) -> None:
        """Release backend resources (e.g. MediaPipe task instance)."""
