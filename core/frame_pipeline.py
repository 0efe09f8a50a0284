"""
Per-frame dispatch with single-frame backpressure. A frame is handed to the vision processor
only when no other frame is in flight; frames arriving meanwhile are dropped, not queued.
Results come back through a queued signal so all side effects run on the GUI thread.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import QObject, Qt, Signal, Slot

from core.config import ExportSettings

if TYPE_CHECKING:
    import numpy as np

    from core.capture import CameraController
    from core.session import SessionStateMachine
    from trackers.base import VisionProcessorBase

logger = logging.getLogger(__name__)


@dataclass
class FrameStats:
    dispatched: int = 0
    dropped: int = 0
    completed: int = 0
    stale: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class FramePipelineController(QObject):
    """Feeds camera frames to the vision processor while a session is processing."""

    # Emit overlay frame to display
    overlay_ready = Signal(object)
    stats_changed = Signal(object)
    # Internal: processor callback -> GUI thread
    _result_arrived = Signal(object, object, int)

    def __init__(
        self,
        camera: CameraController,
        processor: VisionProcessorBase,
        session: SessionStateMachine,
        export_settings: ExportSettings,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._camera = camera
        self._processor = processor
        self._session = session
        self._export_settings = export_settings
        self.frame_in_flight = False
        self.stats = FrameStats()
        self._result_arrived.connect(self._on_result, Qt.ConnectionType.QueuedConnection)

    def reset_stats(self) -> None:
        self.stats = FrameStats()
        self.stats_changed.emit(self.stats)

    @Slot()
    def on_frame_available(self) -> None:
        """Called by the camera for every delivered frame."""
        if not self._session.is_processing:
            return
        if self.frame_in_flight:
            self.stats.dropped += 1
            return
        frame = self._camera.current_frame()
        if frame is None:
            return
        self.frame_in_flight = True
        self.stats.dispatched += 1
        session_id = self._session.session_id

        def deliver(overlay: Any, normalized: Any) -> None:
            # may run on the processor thread; only marshal
            self._result_arrived.emit(overlay, normalized, session_id)

        try:
            self._processor.process(frame, deliver)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to dispatch frame")
            self.stats.failed += 1
            self.frame_in_flight = False

    @Slot(object, object, int)
    def _on_result(self, overlay: np.ndarray | None, normalized: np.ndarray | None, session_id: int) -> None:
        try:
            if overlay is None:
                self.stats.failed += 1
            elif not self._session.is_processing or session_id != self._session.session_id:
                self.stats.stale += 1
            else:
                self.overlay_ready.emit(overlay)
                self._record(normalized)
                self.stats.completed += 1
        finally:
            self.frame_in_flight = False
        self.stats_changed.emit(self.stats)

    def _record(self, normalized: np.ndarray | None) -> None:
        sink = self._session.video_sink
        if not self._export_settings.video or sink is None or normalized is None:
            return
        try:
            sink.record_frame(normalized)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to write processed frame")
