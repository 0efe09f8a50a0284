"""
Hand-off of the classification label and trajectory to the external presentation program.
"""

from __future__ import annotations

import logging
import shlex

from PySide6.QtCore import QProcess

from core import config

logger = logging.getLogger(__name__)


class PresentationHandoff:
    """Receives (label, "x,y,z;x,y,z;...") once per stopped session."""

    def launch(self, label: str, coordinates: str) -> bool:
        raise NotImplementedError


class ProcessHandoff(PresentationHandoff):
    """Starts the presenter command detached: <cmd> --letter LABEL --path COORDINATES."""

    def __init__(self, command: str = config.PRESENTER_CMD) -> None:
        self._argv = shlex.split(command) if command else []

    @property
    def configured(self) -> bool:
        return bool(self._argv)

    def build_arguments(self, label: str, coordinates: str) -> list[str]:
        return [*self._argv[1:], "--letter", label, "--path", coordinates]

    def launch(self, label: str, coordinates: str) -> bool:
        if not self._argv:
            logger.info("No presenter configured (result %r)", label)
            return False
        started = QProcess.startDetached(self._argv[0], self.build_arguments(label, coordinates))
        # PySide6 returns (ok, pid)
        ok = started[0] if isinstance(started, tuple) else bool(started)
        if not ok:
            logger.error("Failed to start presenter: %s", self._argv[0])
        return ok
