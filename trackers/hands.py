"""
MediaPipe hand tracker: follows the index fingertip. Needs no tracking interpreter; the
hand landmarker model is created lazily on the processor thread.
"""

from __future__ import annotations

import time
from typing import Any

import cv2
import mediapipe as mp
import numpy as np

from core.model_loader import get_model_path
from trackers.base import Point3, VisionProcessorBase

INDEX_FINGER_TIP = 8


class HandTracker(VisionProcessorBase):
    tracker_id = "hands"
    display_name = "Hand Tracker"
    requires_interpreter = False

    def __init__(self, min_detection_confidence: float = 0.5, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._min_detection_confidence = min_detection_confidence
        self._landmarker: mp.tasks.vision.HandLandmarker | None = None
        self._last_ts_ms = -1

    def _ensure_landmarker(self) -> mp.tasks.vision.HandLandmarker:
        if self._landmarker is None:
            model_path = str(get_model_path("hand_landmarker.task"))
            options = mp.tasks.vision.HandLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=model_path),
                running_mode=mp.tasks.vision.RunningMode.VIDEO,
                num_hands=1,
                min_hand_detection_confidence=self._min_detection_confidence,
            )
            self._landmarker = mp.tasks.vision.HandLandmarker.create_from_options(options)
        return self._landmarker

    def locate(self, frame: np.ndarray) -> Point3 | None:
        landmarker = self._ensure_landmarker()
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        # VIDEO mode requires strictly increasing timestamps
        ts_ms = max(int(time.perf_counter() * 1000), self._last_ts_ms + 1)
        self._last_ts_ms = ts_ms
        result = landmarker.detect_for_video(mp_image, ts_ms)
        if not result.hand_landmarks:
            return None
        tip = result.hand_landmarks[0][INDEX_FINGER_TIP]
        h, w = frame.shape[:2]
        return tip.x * w, tip.y * h, float(tip.z or 0.0)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
