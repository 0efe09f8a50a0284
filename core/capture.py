"""
Camera controller: opens a webcam, polls it on the GUI thread with a QTimer and announces
each new preview frame through `frame_available`.
"""

from __future__ import annotations

import logging
import sys

import cv2
import numpy as np
from PySide6.QtCore import QObject, QTimer, Signal

from core.camera_list import get_camera_list

logger = logging.getLogger(__name__)


class CameraController(QObject):
    """Webcam by index, with back/front switching between the first two devices."""

    frame_available = Signal()
    opened = Signal(str)
    error = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._cap: cv2.VideoCapture | None = None
        self._frame: np.ndarray | None = None
        self.is_front_camera = False
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._poll)

    def _facing_index(self) -> int:
        cameras = [index for index, _ in get_camera_list()]
        if not cameras:
            return 0
        if self.is_front_camera and len(cameras) > 1:
            return cameras[1]
        return cameras[0]

    def open_camera(self, index: int | None = None) -> bool:
        """Open the given webcam (or the one for the current facing). Returns True on success."""
        self.close_camera()
        if index is None:
            index = self._facing_index()
        # On Windows, use DirectShow so index order matches enumerated camera list (pygrabber)
        if sys.platform == "win32":
            self._cap = cv2.VideoCapture(index, cv2.CAP_DSHOW)
        else:
            self._cap = cv2.VideoCapture(index)
        if not self._cap.isOpened():
            self._cap = None
            message = f"Failed to open camera (index {index})."
            logger.info(message)
            self.error.emit(message)
            return False
        self._timer.start(max(1, int(1000 / self.get_fps())))
        self.opened.emit(f"Opened camera index {index}.")
        return True

    def close_camera(self) -> None:
        self._timer.stop()
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._frame = None

    def switch_facing(self) -> bool:
        """Toggle back/front and reopen the device."""
        self.is_front_camera = not self.is_front_camera
        self.close_camera()
        return self.open_camera()

    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def _poll(self) -> None:
        if self._cap is None:
            return
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return
        self._frame = frame
        self.frame_available.emit()

    def current_frame(self) -> np.ndarray | None:
        """Latest preview frame (BGR), copied so the caller may hand it to another thread."""
        return None if self._frame is None else self._frame.copy()

    def get_fps(self) -> float:
        if self._cap is None:
            return 30.0
        fps = self._cap.get(cv2.CAP_PROP_FPS)
        return fps if fps > 0 else 30.0

    def set_zoom(self, level: float) -> bool:
        """Best effort; most UVC drivers ignore zoom."""
        return self._cap is not None and self._cap.set(cv2.CAP_PROP_ZOOM, level)

    def set_exposure(self, value: float) -> bool:
        return self._cap is not None and self._cap.set(cv2.CAP_PROP_EXPOSURE, value)
