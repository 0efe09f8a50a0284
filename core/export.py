"""
Stop-time export: finalize the video, save the trace snapshot, classify the trace,
collect the trajectory, hand both to the presenter. Best effort, fixed order, no retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from core import config
from core.recording import SnapshotSink, processed_image_path

if TYPE_CHECKING:
    from core.handoff import PresentationHandoff
    from core.inference import InferenceCoordinator
    from core.recording import VideoSink
    from trackers.base import VisionProcessorBase

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    label: str
    coordinates: str
    video_path: Path | None = None
    snapshot_path: Path | None = None


class ArtifactExportOrchestrator:
    def __init__(
        self,
        processor: VisionProcessorBase,
        coordinator: InferenceCoordinator,
        handoff: PresentationHandoff,
        export_settings: config.ExportSettings,
        snapshot_factory: Callable[[Path], SnapshotSink] = SnapshotSink,
        image_path_factory: Callable[[], Path] = processed_image_path,
    ) -> None:
        self._processor = processor
        self._coordinator = coordinator
        self._handoff = handoff
        self._export_settings = export_settings
        self._snapshot_factory = snapshot_factory
        self._image_path_factory = image_path_factory

    def run(self, video_sink: VideoSink | None) -> ExportResult:
        video_path = self._finalize_video(video_sink)
        snapshot_path = self._save_snapshot() if self._export_settings.snapshot else None
        label = self._classify()
        coordinates = self._coordinates()
        try:
            self._handoff.launch(label, coordinates)
        except Exception:  # noqa: BLE001
            logger.exception("Presentation hand-off failed")
        return ExportResult(label, coordinates, video_path, snapshot_path)

    def _finalize_video(self, video_sink: VideoSink | None) -> Path | None:
        if video_sink is None:
            return None
        try:
            video_sink.stop()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to finalize video")
            return None
        return video_sink.output_path

    def _save_snapshot(self) -> Path | None:
        try:
            bitmap = self._processor.export_trace_for_inference()
            if bitmap is None:
                logger.warning("No trace to save as snapshot")
                return None
            return self._snapshot_factory(self._image_path_factory()).save(bitmap)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to save snapshot")
            return None

    def _classify(self) -> str:
        try:
            return self._coordinator.classify()
        except Exception:  # noqa: BLE001
            logger.exception("Classification failed")
            return config.INFERENCE_ERROR_LABEL

    def _coordinates(self) -> str:
        try:
            coordinates = self._processor.get_tracking_coordinates_string()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to read tracking coordinates")
            coordinates = ""
        return coordinates or config.DEFAULT_PATH_COORDINATES
