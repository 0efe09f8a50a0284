"""
Classification of the exported trace: letter/digit mode selection and the digit model path
(grayscale -> red channel / 255 -> flat float buffer -> interpreter -> argmax).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

import cv2
import numpy as np

from core import config

if TYPE_CHECKING:
    from trackers.base import VisionProcessorBase

logger = logging.getLogger(__name__)


class ModelUnavailableError(RuntimeError):
    """Raised when inference is requested before the classification model is bound."""


class ClassificationMode:
    """Letter / digit selection. Exactly one of the two is always selected."""

    def __init__(self, letter: bool = True) -> None:
        self._letter = letter

    @property
    def is_letter(self) -> bool:
        return self._letter

    @is_letter.setter
    def is_letter(self, value: bool) -> None:
        self._letter = bool(value)

    @property
    def is_digit(self) -> bool:
        return not self._letter

    @is_digit.setter
    def is_digit(self, value: bool) -> None:
        self._letter = not value

    def toggle(self) -> None:
        self._letter = not self._letter

    @property
    def label(self) -> str:
        return "Letter" if self._letter else "Digit"


def to_grayscale(bitmap: np.ndarray) -> np.ndarray:
    """Desaturate to gray, keeping a 4-channel BGRA layout (R == G == B afterwards)."""
    if bitmap.ndim == 2:
        gray = bitmap
    elif bitmap.shape[2] == 4:
        gray = cv2.cvtColor(bitmap, cv2.COLOR_BGRA2GRAY)
    else:
        gray = cv2.cvtColor(bitmap, cv2.COLOR_BGR2GRAY)
    bgra = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGRA)
    if bitmap.ndim == 3 and bitmap.shape[2] == 4:
        bgra[:, :, 3] = bitmap[:, :, 3]
    return bgra


def pack_input(gray_bgra: np.ndarray) -> np.ndarray:
    """Red channel of each pixel normalized to [0, 1], row-major, length width * height."""
    red = gray_bgra[:, :, 2].astype(np.float32) / 255.0
    return red.reshape(-1)


def argmax_label(scores: Any) -> str:
    """Index of the highest score as a string; the first maximum wins on ties."""
    flat = np.asarray(scores, dtype=np.float32).reshape(-1)
    return str(int(np.argmax(flat)))


class InferenceCoordinator:
    """Owns the classification interpreter and the letter/digit mode."""

    def __init__(
        self,
        trace_source: Callable[[], np.ndarray | None] | None = None,
        mode: ClassificationMode | None = None,
    ) -> None:
        self.mode = mode or ClassificationMode()
        self._trace_source = trace_source
        self._interpreter: Any = None

    def set_interpreter(self, interpreter: Any) -> None:
        self._interpreter = interpreter

    @property
    def has_model(self) -> bool:
        return self._interpreter is not None

    def classify(self) -> str:
        """Label for the current trace. Never raises; failures give INFERENCE_ERROR_LABEL."""
        if self.mode.is_letter:
            return config.LETTER_MODE_LABEL
        trace = self._trace_source() if self._trace_source is not None else None
        if trace is None:
            logger.error("No digit image available for inference")
            return config.INFERENCE_ERROR_LABEL
        try:
            scores = self.run_digit_model(pack_input(to_grayscale(trace)))
        except ModelUnavailableError:
            logger.error("Digit model interpreter not set")
            return config.INFERENCE_ERROR_LABEL
        except Exception:  # noqa: BLE001
            logger.exception("Digit inference failed")
            return config.INFERENCE_ERROR_LABEL
        label = argmax_label(scores)
        logger.debug("Digit model predicted: %s", label)
        return label

    def run_digit_model(self, buffer: np.ndarray) -> np.ndarray:
        """Run the classification interpreter on a packed buffer. Returns the 1 x N scores."""
        interpreter = self._interpreter
        if interpreter is None:
            raise ModelUnavailableError("classification model is not loaded")
        input_detail = interpreter.get_input_details()[0]
        output_detail = interpreter.get_output_details()[0]
        tensor = buffer.astype(np.float32).reshape(input_detail["shape"])
        interpreter.set_tensor(input_detail["index"], tensor)
        interpreter.invoke()
        return np.asarray(interpreter.get_tensor(output_detail["index"])).reshape(1, -1)
