from .backup_manager import (
    BACKUP_LABEL,
    UPDATE_BACKUP_LABEL,
    BackupManager,
    BackupRecord,
    parse_backup_name,
)

__all__ = [
    "BACKUP_LABEL",
    "UPDATE_BACKUP_LABEL",
    "BackupManager",
    "BackupRecord",
    "parse_backup_name",
]
