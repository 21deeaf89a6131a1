"""
Background threads for the installation and update runs.

Progress is published on the worker thread and re-emitted as Qt signals,
which Qt queues onto the receiver's thread (normally the UI thread).
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QThread, Signal

from ..utils.logger import get_logger
from .installer import InstallationOrchestrator, InstallationProgress
from .updater import UpdateCoordinator

logger = get_logger(__name__)


class InstallationWorkerThread(QThread):
    progress_updated = Signal(object)  # InstallationProgress
    finished_signal = Signal(object)  # InstallationResult
    error = Signal(str)

    def __init__(
        self,
        orchestrator: InstallationOrchestrator,
        data_directory: Optional[Path] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._orchestrator = orchestrator
        self._data_directory = data_directory

    def run(self):
        with self._orchestrator.channel.subscribed(self._on_progress):
            try:
                result = self._orchestrator.run(self._data_directory)
            except Exception as e:
                logger.exception("Installation worker failed")
                self.error.emit(str(e))
                return
        self.finished_signal.emit(result)

    def _on_progress(self, progress: InstallationProgress):
        self.progress_updated.emit(progress)


class UpdateWorkerThread(QThread):
    finished_signal = Signal(object)  # UpdateResult
    error = Signal(str)

    def __init__(self, coordinator: UpdateCoordinator, parent=None):
        super().__init__(parent)
        self._coordinator = coordinator

    def run(self):
        try:
            result = self._coordinator.run()
        except Exception as e:
            logger.exception("Update worker failed")
            self.error.emit(str(e))
            return
        self.finished_signal.emit(result)
