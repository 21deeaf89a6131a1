"""
Timestamped tar.gz snapshots of the data directory.

Archive layout:
    manifest.json       format, created_at, app_version, label, sha256 per file
    data/...            the data directory contents

Archives are written to a ``.partial`` sibling and renamed into place once
flushed, so anything matching the backup name pattern is complete. Restore
validates every hash before touching the live tree.
"""

import io
import json
import os
import re
import shutil
import tarfile
import uuid
import zlib
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ... import __version__
from ...utils.fs import remove_path, safe_replace, sha256_file, sha256_stream
from ...utils.locking import data_directory_lock
from ...utils.logger import get_logger
from ..errors import BackupError, RestoreError
from ..structure.directory_manager import BACKUPS_DIRNAME, LOGS_DIRNAME, DirectoryManager

logger = get_logger(__name__)

MANIFEST_NAME = "manifest.json"
DATA_PREFIX = "data"
MANIFEST_FORMAT = 1

BACKUP_LABEL = "backup"
UPDATE_BACKUP_LABEL = "update_backup"

ARCHIVE_SUFFIX = ".tar.gz"
PARTIAL_SUFFIX = ".partial"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"

_ARCHIVE_RE = re.compile(
    r"^(?P<label>[a-z][a-z_]*?)_(?P<ts>\d{8}_\d{6}_\d{6})\.tar\.gz$"
)
_LABEL_RE = re.compile(r"^[a-z][a-z_]*$")

# Top-level entries never included in a backup.
EXCLUDED_TOP_LEVEL = {BACKUPS_DIRNAME, LOGS_DIRNAME}
_TRANSIENT_PREFIXES = (".restore-",)
_TRANSIENT_SUFFIXES = (".tmp", PARTIAL_SUFFIX, ".lock")


class BackupRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    created_at: datetime
    label: str = BACKUP_LABEL


def parse_backup_name(name: str) -> Optional[Tuple[str, datetime]]:
    """Return (label, created_at) for a backup file name, else None."""
    match = _ARCHIVE_RE.match(name)
    if not match:
        return None
    try:
        created_at = datetime.strptime(match.group("ts"), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return match.group("label"), created_at.replace(tzinfo=timezone.utc)


def _is_transient(name: str) -> bool:
    return name.startswith(_TRANSIENT_PREFIXES) or name.endswith(_TRANSIENT_SUFFIXES)


class BackupManager:
    def __init__(self, root: Path, directory_manager: Optional[DirectoryManager] = None):
        self.root = Path(root).expanduser()
        self.directory_manager = directory_manager or DirectoryManager()

    @property
    def backups_dir(self) -> Path:
        return self.root / BACKUPS_DIRNAME

    # ------------------------------------------------------------------ create

    def backup(self, root: Optional[Path] = None, label: str = BACKUP_LABEL) -> BackupRecord:
        """Snapshot ``root`` (default: the managed root) into the backups dir."""
        source = Path(root).expanduser() if root else self.root
        if not _LABEL_RE.match(label):
            raise ValueError(f"Invalid backup label: {label!r}")
        if not source.is_dir():
            raise BackupError(f"Cannot back up {source}: directory does not exist")

        with data_directory_lock(self.root):
            try:
                self.backups_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BackupError(f"Failed to create backups directory: {e}") from e

            created_at = self._next_timestamp()
            name = f"{label}_{created_at.strftime(TIMESTAMP_FORMAT)}{ARCHIVE_SUFFIX}"
            target = self.backups_dir / name
            partial = target.with_name(name + PARTIAL_SUFFIX)

            logger.info(f"Creating backup {target} from {source}")
            try:
                self._write_archive(source, partial, created_at, label)
                safe_replace(partial, target)
            except (OSError, tarfile.TarError) as e:
                partial.unlink(missing_ok=True)
                logger.error(f"Backup failed, partial archive discarded: {e}")
                raise BackupError(f"Failed to create backup: {e}") from e

        logger.info(f"Backup created: {target}")
        return BackupRecord(path=target, created_at=created_at, label=label)

    def _next_timestamp(self) -> datetime:
        # Names must sort strictly by creation, even for back-to-back calls.
        now = datetime.now(timezone.utc)
        existing = self.list()
        if existing and now <= existing[0].created_at:
            now = existing[0].created_at + timedelta(microseconds=1)
        return now

    def _iter_members(self, source: Path) -> Iterator[Tuple[Path, str]]:
        for entry in sorted(source.iterdir()):
            if entry.name in EXCLUDED_TOP_LEVEL or _is_transient(entry.name):
                continue
            yield from self._walk(entry, f"{DATA_PREFIX}/{entry.name}")

    def _walk(self, path: Path, arcname: str) -> Iterator[Tuple[Path, str]]:
        if path.is_symlink():
            logger.debug(f"Skipping symlink in backup: {path}")
            return
        yield path, arcname
        if path.is_dir():
            for child in sorted(path.iterdir()):
                if _is_transient(child.name):
                    continue
                yield from self._walk(child, f"{arcname}/{child.name}")

    def _write_archive(self, source: Path, dest: Path, created_at: datetime, label: str) -> None:
        files: Dict[str, str] = {}
        with tarfile.open(dest, "w:gz") as tar:
            for path, arcname in self._iter_members(source):
                if path.is_file():
                    files[arcname] = sha256_file(path)
                tar.add(str(path), arcname=arcname, recursive=False)

            manifest = {
                "format": MANIFEST_FORMAT,
                "created_at": created_at.isoformat(),
                "app_version": __version__,
                "label": label,
                "files": files,
            }
            payload = json.dumps(manifest, indent=2, sort_keys=True).encode("utf-8")
            info = tarfile.TarInfo(MANIFEST_NAME)
            info.size = len(payload)
            info.mtime = int(created_at.timestamp())
            tar.addfile(info, io.BytesIO(payload))

        with open(dest, "rb") as f:
            os.fsync(f.fileno())

    # -------------------------------------------------------------------- list

    def list(self) -> List[BackupRecord]:
        """All complete backups, most recent first."""
        if not self.backups_dir.is_dir():
            return []

        records = []
        for entry in self.backups_dir.iterdir():
            parsed = parse_backup_name(entry.name)
            if parsed is None or not entry.is_file():
                continue
            label, created_at = parsed
            records.append(BackupRecord(path=entry, created_at=created_at, label=label))

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def prune(self, keep: int, force: bool = False) -> List[Path]:
        """
        Delete all but the ``keep`` most recent backups.

        keep=0 would delete every backup and is refused unless ``force`` is
        set. Returns the deleted paths.
        """
        if keep < 0:
            raise ValueError(f"keep must be >= 0, got {keep}")
        if keep == 0 and not force:
            raise ValueError("Refusing to delete every backup; pass force=True")

        deleted: List[Path] = []
        with data_directory_lock(self.root):
            for record in self.list()[keep:]:
                try:
                    record.path.unlink()
                except OSError as e:
                    raise BackupError(f"Failed to delete backup {record.path}: {e}") from e
                deleted.append(record.path)
                logger.info(f"Removed old backup: {record.path}")
        return deleted

    # --------------------------------------------------------------- integrity

    def _read_manifest(self, tar: tarfile.TarFile) -> dict:
        member = tar.getmember(MANIFEST_NAME)
        handle = tar.extractfile(member)
        if handle is None:
            raise RestoreError("Manifest is not a regular file")
        manifest = json.loads(handle.read().decode("utf-8"))
        if manifest.get("format") != MANIFEST_FORMAT or not isinstance(manifest.get("files"), dict):
            raise RestoreError("Unsupported or malformed backup manifest")
        return manifest

    def _check_archive(self, path: Path) -> dict:
        """Validate an archive fully; raise RestoreError describing the first problem."""
        path = Path(path)
        if not path.is_file():
            raise RestoreError(f"Backup not found: {path}")

        try:
            with tarfile.open(path, "r:gz") as tar:
                manifest = self._read_manifest(tar)
                expected: Dict[str, str] = manifest["files"]
                seen: Dict[str, str] = {}

                for member in tar.getmembers():
                    if member.name == MANIFEST_NAME:
                        continue
                    parts = PurePosixPath(member.name).parts
                    if (
                        member.name.startswith("/")
                        or ".." in parts
                        or not parts
                        or parts[0] != DATA_PREFIX
                    ):
                        raise RestoreError(f"Unsafe path in archive: {member.name}")
                    if member.isdir():
                        continue
                    if not member.isfile():
                        raise RestoreError(f"Unsupported entry in archive: {member.name}")

                    handle = tar.extractfile(member)
                    seen[member.name] = sha256_stream(handle)

                if seen != expected:
                    raise RestoreError("Archive contents do not match its manifest")
        except RestoreError:
            raise
        except KeyError as e:
            raise RestoreError(f"Backup archive has no manifest: {path}") from e
        except (tarfile.TarError, OSError, EOFError, zlib.error, ValueError) as e:
            raise RestoreError(f"Backup archive is unreadable: {e}") from e

        return manifest

    def verify_archive(self, path: Path) -> bool:
        try:
            self._check_archive(path)
        except RestoreError as e:
            logger.warning(f"Backup {path} failed verification: {e}")
            return False
        return True

    def verify_integrity(self, root: Optional[Path] = None) -> bool:
        """Structure is complete, backups dir exists and every archive verifies."""
        root = Path(root).expanduser() if root else self.root
        if not self.directory_manager.verify_structure(root):
            return False
        backups_dir = root / BACKUPS_DIRNAME
        if not backups_dir.is_dir():
            return False
        checker = self if root == self.root else BackupManager(root, self.directory_manager)
        return all(checker.verify_archive(r.path) for r in checker.list())

    # ----------------------------------------------------------------- restore

    def restore(self, path: Path) -> None:
        """
        Replace the live data with the archive's contents.

        The archive is validated first; an invalid archive raises RestoreError
        without touching the data directory. Top-level entries are swapped one
        by one and rolled back if any swap fails. Entries not present in the
        archive are left in place.
        """
        path = Path(path)
        logger.info(f"Restoring from backup {path}")

        with data_directory_lock(self.root):
            self._check_archive(path)

            token = uuid.uuid4().hex[:8]
            staging = self.root / f".restore-staging-{token}"
            rollback = self.root / f".restore-rollback-{token}"
            try:
                self.root.mkdir(parents=True, exist_ok=True)
                staging.mkdir()
                with tarfile.open(path, "r:gz") as tar:
                    members = [m for m in tar.getmembers() if m.name != MANIFEST_NAME]
                    tar.extractall(staging, members=members, filter="data")
            except (OSError, tarfile.TarError, TypeError) as e:
                # TypeError: interpreter without extraction filters
                _discard(staging)
                raise RestoreError(f"Failed to extract backup: {e}") from e

            try:
                self._swap_in(staging / DATA_PREFIX, rollback)
            finally:
                _discard(staging)
            # Only reached when every entry was swapped in.
            _discard(rollback)

        logger.info(f"Restore from {path} complete")

    def _swap_in(self, source: Path, rollback: Path) -> None:
        moved_aside: List[str] = []
        moved_in: List[str] = []
        entries = sorted(p.name for p in source.iterdir()) if source.is_dir() else []

        try:
            rollback.mkdir()
            for name in entries:
                live = self.root / name
                if live.exists() or live.is_symlink():
                    os.replace(live, rollback / name)
                    moved_aside.append(name)
                os.replace(source / name, live)
                moved_in.append(name)
        except OSError as e:
            logger.error(f"Restore failed, rolling back: {e}")
            for name in moved_in:
                remove_path(self.root / name)
            for name in moved_aside:
                os.replace(rollback / name, self.root / name)
            _discard(rollback)
            raise RestoreError(f"Failed to restore backup: {e}") from e


def _discard(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path, ignore_errors=True)
