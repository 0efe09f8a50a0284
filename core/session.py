"""
Session state machine: Idle <-> Recording (which is always also Processing).
All transitions run on the GUI thread.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from PySide6.QtCore import QObject, Signal

from core.config import ExportSettings
from core.recording import VideoSink, processed_video_path

if TYPE_CHECKING:
    from core.capture import CameraController
    from core.export import ArtifactExportOrchestrator, ExportResult
    from trackers.base import VisionProcessorBase

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    RECORDING = "recording"


class SessionStateMachine(QObject):
    """Owns the session state and the open video sink."""

    state_changed = Signal(object)
    # Emit ExportResult after a stop
    exported = Signal(object)
    # User-visible messages
    message = Signal(str)

    def __init__(
        self,
        processor: VisionProcessorBase,
        exporter: ArtifactExportOrchestrator,
        export_settings: ExportSettings,
        camera: CameraController | None = None,
        video_sink_factory: Callable[[int, int, Path, float], VideoSink] = VideoSink,
        video_path_factory: Callable[[], Path] = processed_video_path,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._processor = processor
        self._exporter = exporter
        self._export_settings = export_settings
        self._camera = camera
        self._video_sink_factory = video_sink_factory
        self._video_path_factory = video_path_factory
        self.state = SessionState.IDLE
        self.video_sink: VideoSink | None = None
        # Incremented on every start; lets late frame results detect they are stale
        self.session_id = 0

    @property
    def is_processing(self) -> bool:
        return self.state in (SessionState.PROCESSING, SessionState.RECORDING)

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        self.state_changed.emit(state)

    def start(self) -> bool:
        """Begin processing and recording. No-op (False) when already recording."""
        if self.is_recording:
            return False
        self._processor.reset()
        self.session_id += 1
        if self._export_settings.video:
            self.video_sink = self._open_video_sink()
        self._set_state(SessionState.RECORDING)
        if self._processor.requires_interpreter and not self._processor.has_interpreter:
            self.message.emit("Tracking model not loaded yet; frames are shown untracked.")
        logger.info("Tracking started (session %d)", self.session_id)
        return True

    def _open_video_sink(self) -> VideoSink | None:
        width, height = self._processor.get_model_dimensions()
        fps = self._camera.get_fps() if self._camera is not None else 30.0
        try:
            sink = self._video_sink_factory(width, height, self._video_path_factory(), fps)
            if sink.start():
                return sink
        except Exception:  # noqa: BLE001
            logger.info("Failed to open video sink", exc_info=True)
        self.message.emit("Failed to create video writer; video will not be saved.")
        return None

    def stop(self) -> ExportResult | None:
        """Stop processing and run the export sequence. No-op (None) when idle."""
        if self.state is SessionState.IDLE:
            return None
        self._set_state(SessionState.IDLE)
        sink, self.video_sink = self.video_sink, None
        logger.info("Tracking stopped (session %d)", self.session_id)
        result = self._exporter.run(sink)
        self.exported.emit(result)
        return result

    def switch_camera(self) -> bool:
        """Stop a running session first, then reopen the camera on the other facing."""
        if self.is_recording:
            self.stop()
        if self._camera is None:
            return False
        return self._camera.switch_facing()

    def shutdown(self) -> None:
        if self.is_processing:
            self.stop()
