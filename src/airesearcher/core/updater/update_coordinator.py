"""
Update flow run on every launch after the first install.

Nothing in the data directory is modified before a safety backup exists.
A failure after the backup reports the backup path so it can be restored.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ... import __version__
from ...config import DEFAULT_BACKUP_RETENTION
from ...utils.locking import data_directory_lock, exclusive_run
from ...utils.logger import get_logger
from ..backup.backup_manager import UPDATE_BACKUP_LABEL, BackupManager
from ..errors import (
    AIResearcherError,
    BackupError,
    ConfigCorruptError,
    ConfigNotFoundError,
    OperationInProgressError,
    StructureError,
)
from ..settings.config_store import ConfigStore
from ..structure.directory_manager import DirectoryManager
from .migrations import run_migrations

logger = get_logger(__name__)


class UpdateResult(BaseModel):
    success: bool
    backup_created: bool = False
    backup_path: Optional[Path] = None
    files_updated: List[str] = Field(default_factory=list)
    structure_verified: bool = False
    message: str = ""


class UpdateCoordinator:
    def __init__(
        self,
        data_directory: Optional[Path] = None,
        config_store: Optional[ConfigStore] = None,
        directory_manager: Optional[DirectoryManager] = None,
        backup_manager: Optional[BackupManager] = None,
        current_version: str = __version__,
        retention: int = DEFAULT_BACKUP_RETENTION,
    ):
        self.config_store = config_store or ConfigStore()
        self.directory_manager = directory_manager or DirectoryManager()
        self.current_version = current_version
        self.retention = retention
        self._explicit_directory = Path(data_directory).expanduser() if data_directory else None
        self._backup_manager = backup_manager

    @property
    def data_directory(self) -> Path:
        if self._explicit_directory is not None:
            return self._explicit_directory
        try:
            config = self.config_store.load_or_none()
        except ConfigCorruptError:
            config = None
        if config is not None:
            return config.data_directory
        return self.directory_manager.default_path()

    @property
    def backup_manager(self) -> BackupManager:
        root = self.data_directory
        if self._backup_manager is None or self._backup_manager.root != root:
            self._backup_manager = BackupManager(root, self.directory_manager)
        return self._backup_manager

    def run(self) -> UpdateResult:
        try:
            with exclusive_run("update"):
                return self._run()
        except OperationInProgressError as e:
            logger.warning(str(e))
            return UpdateResult(success=False, message=str(e))

    def _run(self) -> UpdateResult:
        root = self.data_directory
        logger.info(f"Checking for updates in {root}")

        structure_ok = self.directory_manager.verify_structure(root)
        try:
            config = self.config_store.load()
        except (ConfigNotFoundError, ConfigCorruptError) as e:
            return UpdateResult(success=False, structure_verified=structure_ok, message=str(e))

        if structure_ok and config.version == self.current_version:
            logger.info("Installation is up to date")
            return UpdateResult(
                success=True,
                structure_verified=True,
                message="Installation is up to date",
            )

        if structure_ok:
            reason = f"version {config.version} -> {self.current_version}"
        else:
            reason = "missing: " + ", ".join(self.directory_manager.missing_entries(root))
        logger.info(f"Update required ({reason})")

        backups = self.backup_manager
        try:
            record = backups.backup(root, label=UPDATE_BACKUP_LABEL)
        except BackupError as e:
            logger.error(f"Update aborted, no safety backup could be created: {e}")
            return UpdateResult(
                success=False,
                structure_verified=structure_ok,
                message=f"Update aborted: could not create a backup ({e})",
            )

        files_updated: List[str] = []
        try:
            with data_directory_lock(root):
                files_updated.extend(str(p) for p in self.directory_manager.create_structure(root))
                files_updated.extend(str(p) for p in self.directory_manager.create_default_files(root))
                files_updated.extend(
                    str(p) for p in run_migrations(root, config.version, self.current_version)
                )

            # Outside the directory lock: ConfigStore takes its own lock first
            self.config_store.update(self._mark_updated)

            if not self.directory_manager.verify_structure(root):
                raise StructureError("Directory structure is still incomplete after repair")
            if not backups.verify_archive(record.path):
                raise BackupError(f"Safety backup failed verification: {record.path}")
        except (AIResearcherError, OSError) as e:
            logger.error(f"Update failed after backup {record.path}: {e}")
            return UpdateResult(
                success=False,
                backup_created=True,
                backup_path=record.path,
                files_updated=files_updated,
                structure_verified=self.directory_manager.verify_structure(root),
                message=f"Update failed: {e}. Your data was backed up to {record.path}",
            )

        try:
            backups.prune(self.retention)
        except (BackupError, ValueError) as e:
            logger.warning(f"Could not prune old backups: {e}")

        logger.info(f"Update complete, {len(files_updated)} path(s) updated")
        return UpdateResult(
            success=True,
            backup_created=True,
            backup_path=record.path,
            files_updated=files_updated,
            structure_verified=True,
            message="Update completed successfully",
        )

    def _mark_updated(self, config) -> None:
        config.version = self.current_version
        config.last_update_check = datetime.now(timezone.utc)

    def check_and_preserve_structure(self) -> UpdateResult:
        """Re-create missing directories and default files; user files are kept."""
        root = self.data_directory
        if not root.is_dir():
            return UpdateResult(success=False, message=f"Base directory does not exist: {root}")

        try:
            with exclusive_run("structure check"), data_directory_lock(root):
                created = self.directory_manager.create_structure(root)
                created += self.directory_manager.create_default_files(root)
        except (OperationInProgressError, StructureError) as e:
            return UpdateResult(success=False, message=str(e))

        return UpdateResult(
            success=True,
            files_updated=[str(p) for p in created],
            structure_verified=self.directory_manager.verify_structure(root),
            message=(
                "Directory structure updated successfully" if created
                else "Directory structure is intact"
            ),
        )

    def verify_integrity(self) -> bool:
        return self.backup_manager.verify_integrity(self.data_directory)

    def backup_user_data(self) -> Path:
        return self.backup_manager.backup(self.data_directory).path
