"""
Application wiring: camera -> frame pipeline -> vision processor, the two model loaders and
their consumers, the session state machine and the stop-time export.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import QObject, Signal, Slot

from core import config
from core.capture import CameraController
from core.config import ExportSettings
from core.export import ArtifactExportOrchestrator
from core.frame_pipeline import FramePipelineController
from core.handoff import PresentationHandoff, ProcessHandoff
from core.inference import InferenceCoordinator
from core.model_loader import ModelLoader, ModelRole
from core.session import SessionState, SessionStateMachine
from trackers import create_tracker

if TYPE_CHECKING:
    from trackers.base import VisionProcessorBase

logger = logging.getLogger(__name__)

_MODEL_NAMES = {
    ModelRole.TRACKING: config.TRACKING_MODEL_NAME,
    ModelRole.CLASSIFICATION: config.CLASSIFICATION_MODEL_NAME,
}


class TrackingApp(QObject):
    """Everything except widgets. The main window drives it and listens to its signals."""

    # User-visible messages (load failures, recorder problems)
    message = Signal(str)

    def __init__(
        self,
        tracker_id: str = config.TRACKER_BACKEND,
        export_settings: ExportSettings | None = None,
        camera: CameraController | None = None,
        processor: VisionProcessorBase | None = None,
        handoff: PresentationHandoff | None = None,
        loader_options: dict[str, Any] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.export_settings = export_settings or ExportSettings.from_env()
        self.camera = camera or CameraController(self)
        self.processor = processor or create_tracker(tracker_id)
        self.coordinator = InferenceCoordinator(self.processor.export_trace_for_inference)
        self.exporter = ArtifactExportOrchestrator(
            self.processor,
            self.coordinator,
            handoff or ProcessHandoff(),
            self.export_settings,
        )
        self.session = SessionStateMachine(
            self.processor, self.exporter, self.export_settings, camera=self.camera, parent=self
        )
        self.pipeline = FramePipelineController(
            self.camera, self.processor, self.session, self.export_settings, parent=self
        )
        self.camera.frame_available.connect(self.pipeline.on_frame_available)
        self.camera.error.connect(self.message)
        self.session.message.connect(self.message)
        self.session.state_changed.connect(self._on_state_changed)

        consumers = {
            ModelRole.TRACKING: self.processor.set_interpreter,
            ModelRole.CLASSIFICATION: self.coordinator.set_interpreter,
        }
        self.loaders: dict[ModelRole, ModelLoader] = {}
        for role, name in _MODEL_NAMES.items():
            loader = ModelLoader(role, name, parent=self, **(loader_options or {}))
            loader.loaded.connect(consumers[role])
            loader.error.connect(self.message)
            self.loaders[role] = loader

    def load_models(self) -> None:
        """Start both loaders; each runs independently in its own thread."""
        for role, loader in self.loaders.items():
            if role is ModelRole.TRACKING and not self.processor.requires_interpreter:
                continue
            loader.start()

    @Slot(object)
    def _on_state_changed(self, state: SessionState) -> None:
        if state is SessionState.RECORDING:
            self.pipeline.reset_stats()

    def toggle_session(self) -> None:
        if self.session.is_recording:
            self.session.stop()
        else:
            self.session.start()

    def shutdown(self) -> None:
        self.session.shutdown()
        self.camera.close_camera()
        self.processor.shutdown()
        for loader in self.loaders.values():
            loader.shutdown()
