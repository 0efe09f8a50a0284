"""
YOLO tracker: runs the tracking TFLite interpreter on the letterboxed frame and follows the
centre of the most confident detection.
"""

from __future__ import annotations

import logging
from typing import Any

import cv2
import numpy as np

from core import config
from trackers.base import Point3, VisionProcessorBase, letterbox

logger = logging.getLogger(__name__)


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1 / (1 + np.exp(-x))


def _as_probability(x: np.ndarray) -> np.ndarray:
    # Some exports emit logits, others already-activated scores
    if x.size and (x.min() < 0.0 or x.max() > 1.0):
        return _sigmoid(x)
    return x


def decode_best_box(
    raw: np.ndarray, threshold: float, input_w: int, input_h: int
) -> tuple[float, float, float] | None:
    """
    Best (cx, cy, confidence) in model-input pixels from a YOLO output of shape
    (..., 5 + classes) laid out as x, y, w, h, objectness, class scores.
    """
    data = np.asarray(raw, dtype=np.float32)
    data = data.reshape(-1, data.shape[-1])
    if data.shape[1] < 5 or data.shape[0] == 0:
        return None
    objectness = _as_probability(data[:, 4])
    if data.shape[1] > 5:
        class_scores = _as_probability(data[:, 5:]).max(axis=1)
        confidence = objectness * class_scores
    else:
        confidence = objectness
    best = int(np.argmax(confidence))
    if confidence[best] < threshold:
        return None
    cx, cy = float(data[best, 0]), float(data[best, 1])
    # normalized centres are scaled to input pixels
    if abs(cx) <= 1.5 and abs(cy) <= 1.5:
        cx *= input_w
        cy *= input_h
    return cx, cy, float(confidence[best])


class YoloTracker(VisionProcessorBase):
    tracker_id = "yolo"
    display_name = "YOLO Tracker"
    requires_interpreter = True

    def __init__(self, threshold: float = config.DETECTION_THRESHOLD, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.threshold = threshold

    def get_model_dimensions(self) -> tuple[int, int]:
        if self._interpreter is None:
            return super().get_model_dimensions()
        shape = self._interpreter.get_input_details()[0]["shape"]
        return int(shape[2]), int(shape[1])

    def locate(self, frame: np.ndarray) -> Point3 | None:
        interpreter = self._interpreter
        if interpreter is None:
            return None
        width, height = self.get_model_dimensions()
        h, w = frame.shape[:2]
        scale = min(width / w, height / h)
        pad_x = (width - int(w * scale)) // 2
        pad_y = (height - int(h * scale)) // 2
        rgb = cv2.cvtColor(letterbox(frame, width, height), cv2.COLOR_BGR2RGB)
        input_detail = interpreter.get_input_details()[0]
        if input_detail["dtype"] == np.uint8:
            tensor = rgb[np.newaxis, ...]
        else:
            tensor = (rgb.astype(np.float32) / 255.0)[np.newaxis, ...]
        interpreter.set_tensor(input_detail["index"], tensor)
        interpreter.invoke()
        raw = interpreter.get_tensor(interpreter.get_output_details()[0]["index"])
        best = decode_best_box(raw, self.threshold, width, height)
        if best is None:
            return None
        cx, cy, _ = best
        return (cx - pad_x) / scale, (cy - pad_y) / scale, 0.0
