"""Shared fixtures: a Qt core application and fakes for the camera, processor, sinks, interpreter."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest
from PySide6.QtCore import QCoreApplication

from core.config import ExportSettings
from core.export import ArtifactExportOrchestrator
from core.inference import InferenceCoordinator
from core.session import SessionStateMachine


@pytest.fixture(scope="session", autouse=True)
def qapp() -> QCoreApplication:
    app = QCoreApplication.instance() or QCoreApplication([])
    return app


def flush_events() -> None:
    """Deliver queued signals posted to objects living in the test thread."""
    QCoreApplication.processEvents()


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        QCoreApplication.processEvents()
        time.sleep(0.01)
    return True


class FakeCamera:
    def __init__(self) -> None:
        self.frame: np.ndarray | None = np.zeros((48, 64, 3), dtype=np.uint8)
        self.switches = 0
        self.is_front_camera = False

    def current_frame(self) -> np.ndarray | None:
        return None if self.frame is None else self.frame.copy()

    def get_fps(self) -> float:
        return 30.0

    def switch_facing(self) -> bool:
        self.switches += 1
        self.is_front_camera = not self.is_front_camera
        return True


class FakeProcessor:
    """Records process() calls; the test decides when (and whether) callbacks fire."""

    requires_interpreter = True

    def __init__(self) -> None:
        self.calls: list[tuple[np.ndarray, Callable[[Any, Any], None]]] = []
        self.resets = 0
        self.trace: np.ndarray | None = None
        self.coordinates = ""
        self.interpreter: Any = None
        self.events: list[str] | None = None

    def reset(self) -> None:
        self.resets += 1

    def process(self, frame: np.ndarray, callback: Callable[[Any, Any], None]) -> None:
        self.calls.append((frame, callback))

    def complete(self, index: int = -1) -> None:
        frame, callback = self.calls[index]
        callback(frame, frame[:8, :8])

    def export_trace_for_inference(self) -> np.ndarray | None:
        if self.events is not None:
            self.events.append("trace")
        return self.trace

    def get_tracking_coordinates_string(self) -> str:
        return self.coordinates

    def get_model_dimensions(self) -> tuple[int, int]:
        return 320, 240

    def set_interpreter(self, interpreter: Any) -> None:
        self.interpreter = interpreter

    @property
    def has_interpreter(self) -> bool:
        return self.interpreter is not None

    def shutdown(self) -> None:
        pass


class FakeVideoSink:
    def __init__(self, width: int, height: int, output_path: Path, fps: float = 30.0, events: list[str] | None = None) -> None:
        self.width = width
        self.height = height
        self.output_path = output_path
        self.fps = fps
        self.frames: list[np.ndarray] = []
        self.stop_calls = 0
        self.events = events

    def start(self) -> bool:
        return True

    def record_frame(self, frame: np.ndarray) -> None:
        self.frames.append(frame)

    def stop(self) -> None:
        self.stop_calls += 1
        if self.events is not None:
            self.events.append("video_stop")


class FakeSnapshotSink:
    def __init__(self, output_path: Path, events: list[str] | None = None) -> None:
        self.output_path = output_path
        self.events = events
        self.saved: list[np.ndarray] = []

    def save(self, bitmap: np.ndarray) -> Path:
        if self.events is not None:
            self.events.append("snapshot_save")
        self.saved.append(bitmap)
        return self.output_path


class RecordingHandoff:
    def __init__(self) -> None:
        self.launched: list[tuple[str, str]] = []

    def launch(self, label: str, coordinates: str) -> bool:
        self.launched.append((label, coordinates))
        return True


class FakeInterpreter:
    """Minimal stand-in for a TFLite interpreter."""

    def __init__(
        self,
        model_path: str | None = None,
        experimental_delegates: list[Any] | None = None,
        num_threads: int | None = None,
        scores: list[float] | None = None,
        input_shape: tuple[int, ...] = (1, 28, 28, 1),
    ) -> None:
        self.model_path = model_path
        self.experimental_delegates = experimental_delegates
        self.num_threads = num_threads
        self.scores = scores if scores is not None else [0.0] * 10
        self.input_shape = input_shape
        self.allocated = False
        self.inputs: dict[int, np.ndarray] = {}
        self.invocations = 0

    def allocate_tensors(self) -> None:
        self.allocated = True

    def get_input_details(self) -> list[dict[str, Any]]:
        return [{"index": 0, "shape": np.array(self.input_shape), "dtype": np.float32}]

    def get_output_details(self) -> list[dict[str, Any]]:
        return [{"index": 1}]

    def set_tensor(self, index: int, value: np.ndarray) -> None:
        self.inputs[index] = value

    def invoke(self) -> None:
        self.invocations += 1

    def get_tensor(self, index: int) -> np.ndarray:
        return np.array([self.scores], dtype=np.float32)


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def handoff() -> RecordingHandoff:
    return RecordingHandoff()


@pytest.fixture
def export_settings() -> ExportSettings:
    return ExportSettings(video=True, snapshot=True)


@pytest.fixture
def coordinator(processor: FakeProcessor) -> InferenceCoordinator:
    return InferenceCoordinator(processor.export_trace_for_inference)


@pytest.fixture
def exporter(processor, coordinator, handoff, export_settings, events, tmp_path) -> ArtifactExportOrchestrator:
    return ArtifactExportOrchestrator(
        processor,
        coordinator,
        handoff,
        export_settings,
        snapshot_factory=lambda path: FakeSnapshotSink(path, events),
        image_path_factory=lambda: tmp_path / "Processed_1.jpg",
    )


@pytest.fixture
def sinks() -> list[FakeVideoSink]:
    return []


@pytest.fixture
def session(processor, exporter, export_settings, camera, events, sinks, tmp_path) -> SessionStateMachine:
    def make_sink(width: int, height: int, path: Path, fps: float) -> FakeVideoSink:
        sink = FakeVideoSink(width, height, path, fps, events)
        sinks.append(sink)
        return sink

    return SessionStateMachine(
        processor,
        exporter,
        export_settings,
        camera=camera,
        video_sink_factory=make_sink,
        video_path_factory=lambda: tmp_path / "Processed_1.mp4",
    )
