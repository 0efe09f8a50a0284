"""
Configuration constants for AirTrace. Most values can be overridden via AIRTRACE_* env vars.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Packaged model blobs, and the writable directory they are staged into
ASSETS_DIR = Path(os.environ.get("AIRTRACE_ASSETS_DIR", PROJECT_ROOT / "assets"))
STAGING_DIR = Path(os.environ.get("AIRTRACE_STAGING_DIR", PROJECT_ROOT / "models"))

TRACKING_MODEL_NAME = os.environ.get("AIRTRACE_TRACKING_MODEL", "YOLOv3_float32.tflite")
CLASSIFICATION_MODEL_NAME = os.environ.get("AIRTRACE_DIGIT_MODEL", "DigitRecog_float32.tflite")

# Classification model input is a square trace of this side, output has CLASS_COUNT scores
CLASSIFIER_INPUT_SIDE = 28
CLASS_COUNT = 10

# Used for the video sink when the tracker cannot report its model input size
DEFAULT_MODEL_WIDTH = 416
DEFAULT_MODEL_HEIGHT = 416

# Delegate libraries probed in order (Edge TPU first, then GPU, CPU otherwise)
ACCELERATOR_DELEGATE_LIB = os.environ.get("AIRTRACE_ACCELERATOR_DELEGATE", "libedgetpu.so.1")
GPU_DELEGATE_LIB = os.environ.get("AIRTRACE_GPU_DELEGATE", "libtensorflowlite_gpu_delegate.so")

# "yolo" (tracking interpreter) or "hands" (MediaPipe index fingertip)
TRACKER_BACKEND = os.environ.get("AIRTRACE_TRACKER", "yolo")
DETECTION_THRESHOLD = float(os.environ.get("AIRTRACE_DETECTION_THRESHOLD", "0.4"))

# External program that presents the result; empty = log only
PRESENTER_CMD = os.environ.get("AIRTRACE_PRESENTER_CMD", "")

LETTER_MODE_LABEL = "ML - Inference: Letters"
INFERENCE_ERROR_LABEL = "Error"

# Handed to the presenter when nothing was tracked
DEFAULT_PATH_COORDINATES = (
    "0.0,0.0,0.0;5.0,10.0,-5.0;-5.0,15.0,10.0;20.0,-5.0,5.0;"
    "-10.0,0.0,-10.0;10.0,-15.0,15.0;0.0,20.0,-5.0"
)

LOG_LEVEL = os.environ.get("AIRTRACE_LOG_LEVEL", "INFO")


@dataclass
class ExportSettings:
    """Which artifacts are written when tracking runs/stops. Toggled from the UI."""

    video: bool = True
    snapshot: bool = True

    @classmethod
    def from_env(cls) -> ExportSettings:
        return cls(
            video=_env_flag("AIRTRACE_EXPORT_VIDEO", True),
            snapshot=_env_flag("AIRTRACE_EXPORT_SNAPSHOT", True),
        )
