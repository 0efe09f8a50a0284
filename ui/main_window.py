"""
Main window: left sidebar (tracking controls, mode, export options), center camera view,
right tabs (Result, Pipeline, Logs).
"""

from __future__ import annotations

import numpy as np
from PySide6.QtCore import Qt, Slot
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QCheckBox,
    QDoubleSpinBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QRadioButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from core.app import TrackingApp
from core.export import ExportResult
from core.model_loader import LoadState, ModelLoader
from core.session import SessionState
from ui.panels import LogsPanel, PipelinePanel, ResultPanel


def to_pixmap(frame: np.ndarray) -> QPixmap:
    h, w = frame.shape[:2]
    qimg = QImage(frame.data, w, h, 3 * w, QImage.Format.Format_BGR888)
    return QPixmap.fromImage(qimg.copy())


class MainWindow(QWidget):
    """Camera preview with start/stop tracking and the export result."""

    def __init__(self, app: TrackingApp) -> None:
        super().__init__()
        self.setWindowTitle("AirTrace")
        self._app = app

        layout = QHBoxLayout(self)
        # --- Left sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        self._start_stop_btn = QPushButton("Start Tracking")
        self._start_stop_btn.clicked.connect(self._app.toggle_session)
        sidebar_layout.addWidget(self._start_stop_btn)
        self._switch_btn = QPushButton("Switch Camera")
        self._switch_btn.clicked.connect(self._on_switch_camera)
        sidebar_layout.addWidget(self._switch_btn)

        self._mode_toggle = QRadioButton()
        self._mode_toggle.setAutoExclusive(False)
        self._mode_toggle.clicked.connect(self._on_mode_toggled)
        sidebar_layout.addWidget(QLabel("Recognize"))
        sidebar_layout.addWidget(self._mode_toggle)
        self._sync_mode_toggle()

        export_group = QGroupBox("Export")
        export_layout = QVBoxLayout(export_group)
        self._video_check = QCheckBox("Processed video")
        self._video_check.setChecked(self._app.export_settings.video)
        self._video_check.toggled.connect(self._on_video_export_toggled)
        self._snapshot_check = QCheckBox("Trace snapshot")
        self._snapshot_check.setChecked(self._app.export_settings.snapshot)
        self._snapshot_check.toggled.connect(self._on_snapshot_export_toggled)
        export_layout.addWidget(self._video_check)
        export_layout.addWidget(self._snapshot_check)
        sidebar_layout.addWidget(export_group)

        sidebar_layout.addWidget(QLabel("Zoom"))
        self._zoom_spin = QDoubleSpinBox()
        self._zoom_spin.setRange(1.0, 10.0)
        self._zoom_spin.setSingleStep(0.5)
        self._zoom_spin.valueChanged.connect(self._app.camera.set_zoom)
        sidebar_layout.addWidget(self._zoom_spin)
        # Shutter control; OpenCV exposure units (log2 seconds on DirectShow)
        sidebar_layout.addWidget(QLabel("Exposure"))
        self._exposure_spin = QDoubleSpinBox()
        self._exposure_spin.setRange(-13.0, 0.0)
        self._exposure_spin.setSingleStep(1.0)
        self._exposure_spin.setValue(-6.0)
        self._exposure_spin.valueChanged.connect(self._app.camera.set_exposure)
        sidebar_layout.addWidget(self._exposure_spin)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # --- Center: camera / processed view ---
        self._video_label = QLabel()
        self._video_label.setMinimumSize(640, 480)
        self._video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._video_label.setStyleSheet("background-color: #1e1e1e; color: #888;")
        self._video_label.setText("No camera")
        layout.addWidget(self._video_label, stretch=1)

        # --- Right: tabs ---
        tabs = QTabWidget()
        self._result_panel = ResultPanel()
        tabs.addTab(self._result_panel, "Result")
        self._pipeline_panel = PipelinePanel()
        tabs.addTab(self._pipeline_panel, "Pipeline")
        self._logs_panel = LogsPanel()
        tabs.addTab(self._logs_panel, "Logs")
        layout.addWidget(tabs)

        self._app.message.connect(self._logs_panel.append)
        self._app.camera.opened.connect(self._logs_panel.append)
        self._app.camera.frame_available.connect(self._on_preview_frame)
        self._app.pipeline.overlay_ready.connect(self._show_frame)
        self._app.pipeline.stats_changed.connect(self._pipeline_panel.update_stats)
        self._app.session.state_changed.connect(self._on_session_state)
        self._app.session.exported.connect(self._on_exported)
        for loader in self._app.loaders.values():
            self._pipeline_panel.set_model_status(loader.model_name, LoadState.PENDING.value)
            loader.state_changed.connect(
                lambda _state, l=loader: self._on_model_state(l)
            )

        self._logs_panel.append("Application started. Loading models...")
        self.resize(1200, 700)

    def start(self) -> None:
        """Open the camera and start model loading."""
        self._app.load_models()
        self._app.camera.open_camera()

    def _show_frame(self, frame: np.ndarray) -> None:
        self._video_label.setPixmap(to_pixmap(frame).scaled(
            self._video_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    @Slot()
    def _on_preview_frame(self) -> None:
        # while tracking the view shows processed overlays instead
        if self._app.session.is_processing:
            return
        frame = self._app.camera.current_frame()
        if frame is not None:
            self._show_frame(frame)

    def _on_model_state(self, loader: ModelLoader) -> None:
        status = loader.state.value
        if loader.state is LoadState.READY:
            status = f"ready ({loader.delegate_name})"
        self._pipeline_panel.set_model_status(loader.model_name, status)

    def _sync_mode_toggle(self) -> None:
        mode = self._app.coordinator.mode
        self._mode_toggle.setText(mode.label)
        self._mode_toggle.setChecked(mode.is_letter)

    def _on_mode_toggled(self) -> None:
        self._app.coordinator.mode.toggle()
        self._sync_mode_toggle()

    def _on_video_export_toggled(self, checked: bool) -> None:
        self._app.export_settings.video = checked

    def _on_snapshot_export_toggled(self, checked: bool) -> None:
        self._app.export_settings.snapshot = checked

    def _on_switch_camera(self) -> None:
        if self._app.session.switch_camera():
            facing = "front" if self._app.camera.is_front_camera else "back"
            self._logs_panel.append(f"Switched to {facing} camera.")

    @Slot(object)
    def _on_session_state(self, state: SessionState) -> None:
        if state is SessionState.RECORDING:
            self._start_stop_btn.setText("Stop Tracking")
            self._start_stop_btn.setStyleSheet("background-color: #c62828; color: white;")
            self._logs_panel.append("Tracking started.")
        else:
            self._start_stop_btn.setText("Start Tracking")
            self._start_stop_btn.setStyleSheet("")
            self._logs_panel.append("Tracking stopped.")

    @Slot(object)
    def _on_exported(self, result: ExportResult) -> None:
        self._result_panel.show_result(result)
        self._logs_panel.append(f"Result: {result.label}")
        if result.video_path:
            self._logs_panel.append(f"Video saved: {result.video_path}")
        if result.snapshot_path:
            self._logs_panel.append(f"Snapshot saved: {result.snapshot_path}")

    def append_log(self, message: str) -> None:
        self._logs_panel.append(message)

    def closeEvent(self, event) -> None:
        self._app.shutdown()
        event.accept()
