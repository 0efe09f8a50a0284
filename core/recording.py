"""
Artifact sinks: processed-video writer and trace snapshot, plus their timestamped output paths.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import cv2
import numpy as np
from PySide6.QtCore import QStandardPaths

logger = logging.getLogger(__name__)


def _standard_dir(location: QStandardPaths.StandardLocation, fallback: str) -> Path:
    found = QStandardPaths.writableLocation(location)
    directory = Path(found) if found else Path.home() / fallback
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def processed_video_path(directory: Path | None = None) -> Path:
    """Movies/Processed_<epoch-millis>.mp4"""
    directory = directory or _standard_dir(QStandardPaths.StandardLocation.MoviesLocation, "Videos")
    return directory / f"Processed_{_epoch_millis()}.mp4"


def processed_image_path(directory: Path | None = None) -> Path:
    """Pictures/Processed_<epoch-millis>.jpg"""
    directory = directory or _standard_dir(QStandardPaths.StandardLocation.PicturesLocation, "Pictures")
    return directory / f"Processed_{_epoch_millis()}.jpg"


def _to_bgr(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame


class VideoSink:
    """Writes normalized frames to an mp4 file of fixed size."""

    def __init__(self, width: int, height: int, output_path: str | Path, fps: float = 30.0) -> None:
        self.width = width
        self.height = height
        self.output_path = Path(output_path)
        self.fps = fps
        self._writer: cv2.VideoWriter | None = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    def start(self) -> bool:
        """Open the writer. Returns True on success."""
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        writer = cv2.VideoWriter(str(self.output_path), fourcc, self.fps, (self.width, self.height))
        if not writer.isOpened():
            logger.error("Failed to create video writer for %s", self.output_path)
            return False
        self._writer = writer
        logger.info("Recording to: %s", self.output_path)
        return True

    def record_frame(self, frame: np.ndarray) -> None:
        if self._writer is None:
            return
        frame = _to_bgr(frame)
        h, w = frame.shape[:2]
        if (w, h) != (self.width, self.height):
            frame = cv2.resize(frame, (self.width, self.height))
        self._writer.write(frame)

    def stop(self) -> None:
        if self._writer is None:
            return
        self._writer.release()
        self._writer = None
        logger.info("Recording saved: %s", self.output_path)


class SnapshotSink:
    """Saves a single bitmap (the exported trace) as an image file."""

    def __init__(self, output_path: str | Path) -> None:
        self.output_path = Path(output_path)

    def save(self, bitmap: np.ndarray) -> Path:
        if not cv2.imwrite(str(self.output_path), _to_bgr(bitmap)):
            raise OSError(f"Failed to save snapshot: {self.output_path}")
        logger.info("Saved snapshot: %s", self.output_path)
        return self.output_path
