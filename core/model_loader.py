"""
Model loading: stage a packaged .tflite blob into a writable directory, probe hardware
delegates in priority order, and build the interpreter on a background QThread.
The finished interpreter is published back on the GUI thread through a signal.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import urllib.request
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Sequence

from PySide6.QtCore import QObject, QThread, Signal, Slot

from core import config

logger = logging.getLogger(__name__)

# Public model files that are fetched when they are not packaged under assets/
_DOWNLOAD_URLS = {
    "hand_landmarker.task": "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task",
}


class ModelRole(Enum):
    TRACKING = "tracking"
    CLASSIFICATION = "classification"


class LoadState(Enum):
    PENDING = "pending"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def stage_asset(
    name: str,
    assets_dir: Path = config.ASSETS_DIR,
    staging_dir: Path = config.STAGING_DIR,
) -> Path | None:
    """
    Copy assets_dir/name to staging_dir/name and return the staged path.
    An existing non-empty staged file is reused as-is. Returns None on any I/O failure.
    """
    target = staging_dir / name
    if target.is_file() and target.stat().st_size > 0:
        return target
    source = assets_dir / name
    partial = target.with_name(target.name + ".part")
    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
        if source.is_file():
            shutil.copyfile(source, partial)
        elif name in _DOWNLOAD_URLS:
            logger.info("Downloading %s", name)
            urllib.request.urlretrieve(_DOWNLOAD_URLS[name], partial)
        else:
            logger.info("Model asset %s not found in %s", name, assets_dir)
            return None
        partial.replace(target)
    except OSError as e:
        logger.info("Error copying asset %s: %s", name, e)
        with contextlib.suppress(OSError):
            partial.unlink()
        return None
    return target


def get_model_path(filename: str) -> Path:
    """Staged path of a model file; raises FileNotFoundError if it cannot be staged."""
    path = stage_asset(filename)
    if path is None:
        raise FileNotFoundError(f"Model {filename} is not available")
    return path


def _tflite_api() -> tuple[Any, Any]:
    """(Interpreter, load_delegate) from tflite_runtime, or from a full TensorFlow install."""
    try:
        from tflite_runtime.interpreter import Interpreter, load_delegate
    except ImportError:  # fallback to full TF installation
        from tensorflow.lite.python.interpreter import Interpreter, load_delegate  # type: ignore
    return Interpreter, load_delegate


@dataclass
class InterpreterOptions:
    """Options an interpreter is built with. CPU threads are always set as the baseline."""

    num_threads: int = field(default_factory=lambda: os.cpu_count() or 1)
    delegates: list[Any] = field(default_factory=list)
    delegate_name: str = "CPU"


class DelegateStrategy:
    """One entry of the delegate priority list."""

    name: str = ""

    def attach(self, options: InterpreterOptions) -> bool:
        raise NotImplementedError


class LibraryDelegate(DelegateStrategy):
    """External delegate loaded from a shared library (Edge TPU, GPU)."""

    def __init__(
        self,
        name: str,
        library: str,
        load_delegate: Callable[[str], Any] | None = None,
    ) -> None:
        self.name = name
        self.library = library
        self._load_delegate = load_delegate

    def attach(self, options: InterpreterOptions) -> bool:
        load = self._load_delegate or _tflite_api()[1]
        options.delegates.append(load(self.library))
        options.delegate_name = self.name
        return True


class CpuDelegate(DelegateStrategy):
    """Multi-threaded CPU; nothing to attach."""

    name = "CPU"

    def attach(self, options: InterpreterOptions) -> bool:
        options.delegate_name = self.name
        return True


def default_delegates() -> list[DelegateStrategy]:
    return [
        LibraryDelegate("Edge TPU", config.ACCELERATOR_DELEGATE_LIB),
        LibraryDelegate("GPU", config.GPU_DELEGATE_LIB),
        CpuDelegate(),
    ]


def probe_delegates(options: InterpreterOptions, strategies: Sequence[DelegateStrategy]) -> str:
    """Try each strategy in order, stop at the first that attaches. Returns its name."""
    for strategy in strategies:
        try:
            if strategy.attach(options):
                logger.debug("%s delegate added", strategy.name)
                return strategy.name
        except Exception as e:  # noqa: BLE001
            logger.debug("%s delegate unavailable, trying next: %s", strategy.name, e)
    options.delegate_name = CpuDelegate.name
    return options.delegate_name


def build_interpreter(
    model_path: Path,
    options: InterpreterOptions,
    interpreter_cls: Callable[..., Any] | None = None,
) -> Any:
    """Build and allocate an interpreter. TFLite memory-maps model_path read-only."""
    cls = interpreter_cls or _tflite_api()[0]
    interpreter = cls(
        model_path=str(model_path),
        experimental_delegates=options.delegates or None,
        num_threads=options.num_threads,
    )
    interpreter.allocate_tensors()
    return interpreter


class ModelLoadWorker(QObject):
    """Runs staging + interpreter construction in a background thread."""

    finished = Signal(object, str)  # interpreter, delegate name
    failed = Signal(str)

    def __init__(
        self,
        model_name: str,
        assets_dir: Path,
        staging_dir: Path,
        strategies: Sequence[DelegateStrategy],
        interpreter_cls: Callable[..., Any] | None = None,
    ) -> None:
        super().__init__()
        self._model_name = model_name
        self._assets_dir = assets_dir
        self._staging_dir = staging_dir
        self._strategies = strategies
        self._interpreter_cls = interpreter_cls

    @Slot()
    def run(self) -> None:
        path = stage_asset(self._model_name, self._assets_dir, self._staging_dir)
        if path is None:
            self.failed.emit(f"Failed to copy or load {self._model_name}")
            return
        try:
            options = InterpreterOptions()
            probe_delegates(options, self._strategies)
            interpreter = build_interpreter(path, options, self._interpreter_cls)
        except Exception as e:  # noqa: BLE001
            logger.debug("TFLite interpreter error for %s", self._model_name, exc_info=True)
            self.failed.emit(f"Error loading TFLite model {self._model_name}: {e}")
            return
        self.finished.emit(interpreter, options.delegate_name)


class ModelLoader(QObject):
    """
    Loads one model for one role. Lives on the GUI thread; the heavy work runs on its own
    QThread and the interpreter is published through `loaded` once, after construction.
    """

    loaded = Signal(object)
    error = Signal(str)
    state_changed = Signal(object)

    def __init__(
        self,
        role: ModelRole,
        model_name: str,
        *,
        assets_dir: Path = config.ASSETS_DIR,
        staging_dir: Path = config.STAGING_DIR,
        strategies: Sequence[DelegateStrategy] | None = None,
        interpreter_cls: Callable[..., Any] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.role = role
        self.model_name = model_name
        self._assets_dir = assets_dir
        self._staging_dir = staging_dir
        self._strategies = list(strategies) if strategies is not None else default_delegates()
        self._interpreter_cls = interpreter_cls
        self._thread: QThread | None = None
        self._worker: ModelLoadWorker | None = None
        self.handle: Any = None
        self.delegate_name = ""
        self.state = LoadState.PENDING

    def start(self) -> None:
        """Start loading in the background. Has no effect once started."""
        if self.state is not LoadState.PENDING:
            return
        self._set_state(LoadState.LOADING)
        self._worker = ModelLoadWorker(
            self.model_name,
            self._assets_dir,
            self._staging_dir,
            self._strategies,
            self._interpreter_cls,
        )
        self._thread = QThread()
        self._worker.moveToThread(self._thread)
        self._thread.started.connect(self._worker.run)
        self._worker.finished.connect(self._on_finished)
        self._worker.failed.connect(self._on_failed)
        self._thread.start()

    @Slot(object, str)
    def _on_finished(self, interpreter: Any, delegate_name: str) -> None:
        self._finish_thread()
        self.handle = interpreter
        self.delegate_name = delegate_name
        logger.info("%s model %s ready (%s)", self.role.value, self.model_name, delegate_name)
        self._set_state(LoadState.READY)
        self.loaded.emit(interpreter)

    @Slot(str)
    def _on_failed(self, message: str) -> None:
        self._finish_thread()
        logger.info(message)
        self._set_state(LoadState.FAILED)
        self.error.emit(message)

    def _set_state(self, state: LoadState) -> None:
        self.state = state
        self.state_changed.emit(state)

    def _finish_thread(self) -> None:
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait()
            self._thread = None
        self._worker = None

    def shutdown(self) -> None:
        """Wait for a running load to end (used on application exit)."""
        # the QThread must not be destroyed while the build is still running
        self._finish_thread()
