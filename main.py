"""
AirTrace entry point.
Run: python main.py
"""

from __future__ import annotations

import logging
import os
import sys

# Reduce TensorFlow/MediaPipe console noise (INFO and WARNING)
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

from PySide6.QtWidgets import QApplication

from core import config
from core.app import TrackingApp
from core.utils import QtLogHandler, setup_logging
from ui.main_window import MainWindow


def main() -> None:
    setup_logging(config.LOG_LEVEL)
    app = QApplication(sys.argv)
    tracking = TrackingApp()
    window = MainWindow(tracking)
    handler = QtLogHandler()
    handler.emitter.record.connect(window.append_log)
    logging.getLogger().addHandler(handler)
    window.show()
    window.start()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
