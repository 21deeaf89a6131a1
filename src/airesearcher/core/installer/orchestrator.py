"""
First-run setup state machine.

    INITIALIZING -> SELECTING_DIRECTORY -> CREATING_STRUCTURE
        -> DETECTING_DEPENDENCIES (repeatable) -> INSTALLING -> FINALIZING -> COMPLETE

ERROR is reachable from every non-terminal stage and ends the run. Each
transition publishes an InstallationProgress before its work starts. The
wizard can be abandoned only up to SELECTING_DIRECTORY; once the directory
tree is being created the run must reach COMPLETE or ERROR.
"""

from pathlib import Path
from typing import Dict, Optional, Union

from ...utils.locking import acquire_run_lock, release_run_lock
from ...utils.logger import get_logger
from ..deps.models import DependencyInfo, Tool
from ..deps.probe import DependencyProbe
from ..errors import AIResearcherError, InvalidTransitionError, OperationInProgressError
from ..settings.config_store import AppConfig, ConfigStore
from ..structure.directory_manager import DirectoryManager
from .models import InstallationResult
from .progress import InstallationProgress, InstallationStage, ProgressChannel

logger = get_logger(__name__)

Stage = InstallationStage

_ABANDONABLE = (Stage.INITIALIZING, Stage.SELECTING_DIRECTORY)


class InstallationOrchestrator:
    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        probe: Optional[DependencyProbe] = None,
        directory_manager: Optional[DirectoryManager] = None,
        channel: Optional[ProgressChannel] = None,
    ):
        self.config_store = config_store or ConfigStore()
        self.probe = probe or DependencyProbe()
        self.directory_manager = directory_manager or DirectoryManager()
        self.channel = channel or ProgressChannel()

        self._stage: Optional[InstallationStage] = None
        self._percentage = 0
        self._suggested_path: Optional[Path] = None
        self._data_directory: Optional[Path] = None
        self._first_install = True
        self._detected: Dict[Tool, DependencyInfo] = {}
        self._error_message: Optional[str] = None
        self._holds_run_lock = False

    @property
    def stage(self) -> Optional[InstallationStage]:
        return self._stage

    @property
    def suggested_path(self) -> Optional[Path]:
        return self._suggested_path

    @property
    def data_directory(self) -> Optional[Path]:
        return self._data_directory

    @property
    def detected(self) -> Dict[Tool, DependencyInfo]:
        return dict(self._detected)

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    # ------------------------------------------------------------ transitions

    def begin(self) -> Path:
        """Start a run; returns the suggested data directory."""
        if self._stage is not None:
            raise InvalidTransitionError(
                f"Installation already started (stage: {self._stage.value})"
            )
        acquire_run_lock("installation")
        self._holds_run_lock = True

        self._advance(Stage.INITIALIZING, "Starting installation")
        try:
            suggested = self.directory_manager.default_path()
        except Exception as e:
            self._fail(f"Could not determine the default data directory: {e}")
            raise

        self._suggested_path = suggested
        self._advance(Stage.SELECTING_DIRECTORY, f"Choose a data directory (suggested: {suggested})")
        return suggested

    def choose_directory(self, path: Union[str, Path]) -> Path:
        """Accept the chosen path and create the directory tree there."""
        self._require("choose a directory", Stage.SELECTING_DIRECTORY)
        if path is None or not str(path).strip():
            raise ValueError("A data directory must be chosen")

        directory = Path(path).expanduser()
        self._data_directory = directory
        self._first_install = self.directory_manager.is_first_install(directory)

        self._advance(Stage.CREATING_STRUCTURE, f"Creating directory structure at {directory}")
        try:
            self.directory_manager.create_structure(directory)
        except Exception as e:
            self._fail(str(e))
            raise
        return directory

    def detect_dependencies(self) -> Dict[Tool, DependencyInfo]:
        self._require("detect dependencies", Stage.CREATING_STRUCTURE)
        self._advance(Stage.DETECTING_DEPENDENCIES, "Detecting installed AI tools")
        return self._run_detection()

    def redetect(self) -> Dict[Tool, DependencyInfo]:
        """Clear cached results and detect again without restarting the run."""
        self._require("re-detect dependencies", Stage.DETECTING_DEPENDENCIES)
        self.probe.clear_cache()
        self._advance(Stage.DETECTING_DEPENDENCIES, "Re-detecting installed AI tools")
        return self._run_detection()

    def _run_detection(self) -> Dict[Tool, DependencyInfo]:
        try:
            self._detected = self.probe.detect_all()
        except Exception as e:
            self._fail(f"Dependency detection failed: {e}")
            raise

        for tool, info in self._detected.items():
            if info.installed:
                logger.info(f"{tool.display_name} found: {info.version} at {info.path}")
            elif info.soft_failed:
                logger.warning(f"{tool.display_name}: {info.error}")
            else:
                logger.info(f"{tool.display_name} not installed")
        return self.detected

    def install(self) -> InstallationResult:
        """Persist the configuration for the detected tools and finish the run."""
        self._require("install", Stage.DETECTING_DEPENDENCIES)

        self._advance(Stage.INSTALLING, "Configuring detected tools")
        config = self._build_config()

        self._advance(Stage.FINALIZING, "Saving configuration")
        try:
            if self._first_install:
                self.directory_manager.create_default_files(self._data_directory)
            self.config_store.save(config)
        except Exception as e:
            self._fail(str(e))
            raise

        self.probe.set_path_hints(config.path_hints())
        self._advance(Stage.COMPLETE, "Installation complete")
        self._release()
        return InstallationResult.completed(config, self._detected)

    def abandon(self) -> None:
        """Skip the wizard. Only allowed before directory creation begins."""
        if self._stage is not None and self._stage not in _ABANDONABLE:
            raise InvalidTransitionError(
                f"Installation cannot be abandoned once {Stage.CREATING_STRUCTURE.value} "
                f"has started (stage: {self._stage.value})"
            )
        logger.info("Installation abandoned")
        self._release()
        self._stage = None
        self._percentage = 0
        self._suggested_path = None
        self._data_directory = None

    # --------------------------------------------------------------- full run

    def run(self, data_directory: Optional[Union[str, Path]] = None) -> InstallationResult:
        """Drive the whole machine; failures come back as a result, not an exception."""
        try:
            suggested = self.begin()
            self.choose_directory(data_directory or suggested)
            self.detect_dependencies()
            return self.install()
        except (OperationInProgressError, InvalidTransitionError) as e:
            logger.warning(str(e))
            return InstallationResult.failed(str(e))
        except (AIResearcherError, OSError, ValueError) as e:
            if self._stage is not Stage.ERROR:
                self._fail(str(e))
            return InstallationResult.failed(self._error_message or str(e), self._detected)

    # ---------------------------------------------------------------- helpers

    def _build_config(self) -> AppConfig:
        config = AppConfig(data_directory=self._data_directory)
        for tool, info in self._detected.items():
            config.set_tool(tool, info.installed, info.path if info.installed else None)
        return config

    def _require(self, action: str, *allowed: InstallationStage) -> None:
        if self._stage not in allowed:
            current = self._stage.value if self._stage else "not started"
            raise InvalidTransitionError(f"Cannot {action} while installation is {current}")

    def _advance(self, stage: InstallationStage, message: str) -> None:
        if self._stage is not None and stage.order < self._stage.order:
            raise InvalidTransitionError(
                f"Cannot move from {self._stage.value} back to {stage.value}"
            )
        self._stage = stage
        self._percentage = stage.percentage
        logger.info(f"Installation stage: {stage.value}")
        self.channel.publish(InstallationProgress(stage, message, self._percentage))

    def _fail(self, message: str) -> None:
        logger.error(f"Installation failed during {self._stage.value if self._stage else 'startup'}: {message}")
        self._stage = Stage.ERROR
        self._error_message = message
        self.channel.publish(InstallationProgress(Stage.ERROR, message, self._percentage))
        self._release()

    def _release(self) -> None:
        if self._holds_run_lock:
            release_run_lock()
            self._holds_run_lock = False
