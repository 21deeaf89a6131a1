"""
Operation surface consumed by the UI.

InstallationService wires the stores, probe and managers together and
exposes one method per UI operation. All calls are local and synchronous;
long-running ones (run_installation, run_update_process) are meant to be
driven from core.workers when called from a Qt UI.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

from .core.backup import BackupManager
from .core.deps import (
    ClaudeCodeInfo,
    DependencyInfo,
    DependencyProbe,
    GeminiInfo,
    OllamaInfo,
    Tool,
)
from .core.errors import ConfigCorruptError
from .core.installer import (
    InstallationConfig,
    InstallationOrchestrator,
    InstallationResult,
    ProgressChannel,
)
from .core.installer.progress import ProgressHandler
from .core.settings import AppConfig, ConfigStore
from .core.structure import DirectoryManager
from .core.updater import UpdateCoordinator, UpdateResult
from .utils.locking import exclusive_run
from .utils.logger import get_logger

logger = get_logger(__name__)


class InstallationService:
    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        probe: Optional[DependencyProbe] = None,
        directory_manager: Optional[DirectoryManager] = None,
        data_directory: Optional[Path] = None,
    ):
        self.config_store = config_store or ConfigStore()
        self.probe = probe or DependencyProbe()
        self.directory_manager = directory_manager or DirectoryManager()
        self._data_directory = Path(data_directory).expanduser() if data_directory else None

        config = self._load_config_quietly()
        if config is not None:
            self.probe.set_path_hints(config.path_hints())

    # ------------------------------------------------------------------ paths

    @property
    def data_directory(self) -> Path:
        """Explicit directory, else the configured one, else the platform default."""
        if self._data_directory is not None:
            return self._data_directory
        config = self._load_config_quietly()
        if config is not None:
            return config.data_directory
        return self.directory_manager.default_path()

    def _load_config_quietly(self) -> Optional[AppConfig]:
        try:
            return self.config_store.load_or_none()
        except ConfigCorruptError as e:
            logger.warning(f"Ignoring unreadable configuration: {e}")
            return None

    def _backup_manager(self) -> BackupManager:
        return BackupManager(self.data_directory, self.directory_manager)

    def _update_coordinator(self) -> UpdateCoordinator:
        return UpdateCoordinator(
            data_directory=self.data_directory,
            config_store=self.config_store,
            directory_manager=self.directory_manager,
        )

    # ------------------------------------------------------------ installation

    def check_installation_status(self) -> InstallationConfig:
        path = self.data_directory
        return InstallationConfig.from_detection(
            path, self.directory_manager.is_first_install(path), self.probe.detect_all()
        )

    def _detect_optional(self, tool: Tool) -> Optional[DependencyInfo]:
        # None means "not installed" with nothing further to report
        info = self.probe.detect(tool)
        if not info.installed and not info.soft_failed:
            return None
        return info

    def detect_claude_code(self) -> Optional[ClaudeCodeInfo]:
        return self._detect_optional(Tool.CLAUDE_CODE)

    def detect_ollama(self) -> Optional[OllamaInfo]:
        return self._detect_optional(Tool.OLLAMA)

    def detect_gemini(self) -> Optional[GeminiInfo]:
        return self._detect_optional(Tool.GEMINI)

    def detect_all_cli_tools(
        self,
    ) -> Tuple[Optional[ClaudeCodeInfo], Optional[OllamaInfo], Optional[GeminiInfo]]:
        detected = self.probe.detect_all()

        def optional(tool: Tool) -> Optional[DependencyInfo]:
            info = detected.get(tool)
            if info is None or (not info.installed and not info.soft_failed):
                return None
            return info

        return optional(Tool.CLAUDE_CODE), optional(Tool.OLLAMA), optional(Tool.GEMINI)

    def clear_cli_detection_cache(self, tool_name: Union[Tool, str]) -> None:
        self.probe.clear_cache(Tool.parse(tool_name))
        logger.info(f"Cleared detection cache for {tool_name}")

    def clear_all_cli_detection_caches(self) -> None:
        self.probe.clear_cache()
        logger.info("Cleared all detection caches")

    def get_claude_code_install_instructions(self) -> str:
        return self.probe.instructions(Tool.CLAUDE_CODE)

    def get_ollama_install_instructions(self) -> str:
        return self.probe.instructions(Tool.OLLAMA)

    def get_gemini_install_instructions(self) -> str:
        return self.probe.instructions(Tool.GEMINI)

    def get_quick_install_command(self, tool_name: Union[Tool, str]) -> Optional[str]:
        return self.probe.quick_install_command(tool_name)

    def create_orchestrator(self, channel: Optional[ProgressChannel] = None) -> InstallationOrchestrator:
        return InstallationOrchestrator(
            config_store=self.config_store,
            probe=self.probe,
            directory_manager=self.directory_manager,
            channel=channel,
        )

    def run_installation(
        self,
        progress_handler: Optional[ProgressHandler] = None,
        data_directory: Optional[Path] = None,
    ) -> InstallationResult:
        orchestrator = self.create_orchestrator()
        target = data_directory or self._data_directory
        if progress_handler is None:
            return orchestrator.run(target)
        with orchestrator.channel.subscribed(progress_handler):
            return orchestrator.run(target)

    def verify_directory_structure(self) -> bool:
        return self.directory_manager.verify_structure(self.data_directory)

    def redetect_dependencies(self) -> InstallationConfig:
        self.probe.clear_cache()
        detected = self.probe.detect_all()

        if self.config_store.exists():
            def _apply(config: AppConfig) -> None:
                for tool, info in detected.items():
                    config.set_tool(tool, info.installed, info.path if info.installed else None)

            config = self.config_store.update(_apply)
            self.probe.set_path_hints(config.path_hints())

        path = self.data_directory
        return InstallationConfig.from_detection(
            path, self.directory_manager.is_first_install(path), detected
        )

    def backup_installation(self) -> str:
        with exclusive_run("backup"):
            record = self._backup_manager().backup()
        return str(record.path)

    def cleanup_old_backups(self, keep_count: int) -> List[str]:
        """Prune to ``keep_count`` backups; returns the paths that remain."""
        manager = self._backup_manager()
        with exclusive_run("backup cleanup"):
            deleted = manager.prune(keep_count)
        logger.info(f"Cleaned up {len(deleted)} old backup(s), kept last {keep_count}")
        return [str(r.path) for r in manager.list()]

    def is_first_install(self) -> bool:
        return self.directory_manager.is_first_install(self.data_directory)

    # ----------------------------------------------------------------- updates

    def run_update_process(self) -> UpdateResult:
        return self._update_coordinator().run()

    def check_and_preserve_structure(self) -> UpdateResult:
        return self._update_coordinator().check_and_preserve_structure()

    def backup_user_data(self) -> str:
        with exclusive_run("backup"):
            path = self._update_coordinator().backup_user_data()
        return str(path)

    def verify_installation_integrity(self) -> bool:
        return self._update_coordinator().verify_integrity()

    def restore_from_backup(self, backup_path: Union[str, Path]) -> None:
        with exclusive_run("restore"):
            self._backup_manager().restore(Path(backup_path))

    def list_backups(self) -> List[str]:
        return [str(r.path) for r in self._backup_manager().list()]

    # ------------------------------------------------------------------ config

    def get_app_config(self) -> Optional[AppConfig]:
        return self.config_store.load_or_none()

    def save_app_config(self, config: AppConfig) -> None:
        self.config_store.save(config)
        self.probe.set_path_hints(config.path_hints())

    def config_exists(self) -> bool:
        return self.config_store.exists()

    def reset_config(self) -> None:
        self.config_store.reset()

    def _update_tool(self, tool: Tool, enabled: bool, path: Optional[Path]) -> AppConfig:
        config = self.config_store.update_tool_config(tool, enabled, path)
        self.probe.set_path_hints(config.path_hints())
        return config

    def update_claude_code_config(self, enabled: bool, path: Optional[Path] = None) -> AppConfig:
        return self._update_tool(Tool.CLAUDE_CODE, enabled, path)

    def update_ollama_config(self, enabled: bool, path: Optional[Path] = None) -> AppConfig:
        return self._update_tool(Tool.OLLAMA, enabled, path)

    def update_gemini_config(self, enabled: bool, path: Optional[Path] = None) -> AppConfig:
        return self._update_tool(Tool.GEMINI, enabled, path)

    def update_last_check(self) -> AppConfig:
        return self.config_store.touch_last_check()


_service_instance: Optional[InstallationService] = None


def get_service() -> InstallationService:
    global _service_instance
    if _service_instance is None:
        _service_instance = InstallationService()
    return _service_instance
