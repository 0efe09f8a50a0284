"""
Logging setup, and a handler that forwards log records to the Logs panel.
"""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, Signal

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class _LogEmitter(QObject):
    record = Signal(str)


class QtLogHandler(logging.Handler):
    """Emits formatted records through a Qt signal (safe from any thread)."""

    def __init__(self, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.emitter = _LogEmitter()
        self.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.emitter.record.emit(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)
