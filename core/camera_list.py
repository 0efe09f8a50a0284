"""
Enumerate cameras. On Windows uses DirectShow (pygrabber) for names, in the same order as
OpenCV with CAP_DSHOW; elsewhere indices are probed with OpenCV.
"""

from __future__ import annotations

import sys
from typing import List, Tuple

import cv2

_MAX_PROBE = 4


def _probe_opencv(max_cameras: int = _MAX_PROBE) -> List[Tuple[int, str]]:
    result: List[Tuple[int, str]] = []
    for i in range(max_cameras):
        cap = cv2.VideoCapture(i)
        if cap.isOpened():
            result.append((i, "Back camera" if not result else f"Camera {i}"))
            cap.release()
    return result


def get_camera_list() -> List[Tuple[int, str]]:
    """(index, display_name) for each available camera, back camera first."""
    if sys.platform == "win32":
        from pygrabber.dshow_graph import FilterGraph

        devices = FilterGraph().get_input_devices()
        if devices:
            return list(enumerate(devices))
    return _probe_opencv()
