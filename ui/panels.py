"""
Right-side panels: Result (last export), Pipeline (frame stats + model status), Logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtWidgets import (
    QFormLayout,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

if TYPE_CHECKING:
    from core.export import ExportResult
    from core.frame_pipeline import FrameStats


class ResultPanel(QWidget):
    """Shows the label, trajectory and artifact paths of the last stopped session."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QFormLayout(self)
        self._label = QLabel("—")
        self._video = QLabel("—")
        self._snapshot = QLabel("—")
        self._coordinates = QPlainTextEdit(self)
        self._coordinates.setReadOnly(True)
        self._coordinates.setPlaceholderText("Trajectory appears here after Stop Tracking.")
        layout.addRow("Result:", self._label)
        layout.addRow("Video:", self._video)
        layout.addRow("Snapshot:", self._snapshot)
        layout.addRow("Trajectory:", self._coordinates)

    def show_result(self, result: ExportResult) -> None:
        self._label.setText(result.label)
        self._video.setText(str(result.video_path) if result.video_path else "—")
        self._snapshot.setText(str(result.snapshot_path) if result.snapshot_path else "—")
        self._coordinates.setPlainText(result.coordinates.replace(";", ";\n"))


class PipelinePanel(QWidget):
    """Frame counters of the running session and the state of each model."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._stats_label = QLabel("Dispatched: 0  Dropped: 0")
        self._detail_label = QLabel("Completed: 0  Stale: 0  Failed: 0")
        self._models = QFormLayout()
        self._model_labels: dict[str, QLabel] = {}
        layout.addWidget(self._stats_label)
        layout.addWidget(self._detail_label)
        layout.addLayout(self._models)
        layout.addStretch()

    def update_stats(self, stats: FrameStats) -> None:
        self._stats_label.setText(f"Dispatched: {stats.dispatched}  Dropped: {stats.dropped}")
        self._detail_label.setText(
            f"Completed: {stats.completed}  Stale: {stats.stale}  Failed: {stats.failed}"
        )

    def set_model_status(self, name: str, status: str) -> None:
        label = self._model_labels.get(name)
        if label is None:
            label = QLabel()
            self._model_labels[name] = label
            self._models.addRow(f"{name}:", label)
        label.setText(status)


class LogsPanel(QWidget):
    """Shows application messages and errors."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        layout.addWidget(self._text)

    def append(self, message: str) -> None:
        self._text.appendPlainText(message)
        # Auto-scroll to bottom
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())
