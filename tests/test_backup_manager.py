"""Tests for backup creation, listing, pruning and restore."""

import io
import json
import os
import tarfile
from unittest.mock import patch

import pytest

from airesearcher.core.backup import (
    UPDATE_BACKUP_LABEL,
    BackupManager,
    parse_backup_name,
)
from airesearcher.core.errors import BackupError, RestoreError


@pytest.fixture
def populated(directory_manager, data_dir):
    directory_manager.create_structure(data_dir)
    (data_dir / "projects" / "alpha").mkdir()
    (data_dir / "projects" / "alpha" / "notes.md").write_text("original notes")
    (data_dir / "settings.json").write_text('{"theme": "light"}')
    (data_dir / "logs" / "app.log").write_text("log line")
    return data_dir


@pytest.fixture
def manager(populated, directory_manager):
    return BackupManager(populated, directory_manager)


def archive_names(path):
    with tarfile.open(path, "r:gz") as tar:
        return set(tar.getnames())


class TestBackup:
    def test_backup_writes_archive_with_manifest(self, manager, populated):
        record = manager.backup()

        assert record.path.parent == populated / "backups"
        assert record.path.name.startswith("backup_")
        assert record.path.name.endswith(".tar.gz")

        names = archive_names(record.path)
        assert "manifest.json" in names
        assert "data/projects/alpha/notes.md" in names
        assert "data/settings.json" in names

        with tarfile.open(record.path, "r:gz") as tar:
            manifest = json.load(tar.extractfile("manifest.json"))
        assert set(manifest["files"]) == {"data/projects/alpha/notes.md", "data/settings.json"}

    def test_backups_and_logs_are_excluded(self, manager):
        manager.backup()
        record = manager.backup()

        names = archive_names(record.path)
        assert not any(n.startswith("data/backups") for n in names)
        assert not any(n.startswith("data/logs") for n in names)

    def test_update_label(self, manager):
        record = manager.backup(label=UPDATE_BACKUP_LABEL)

        assert record.path.name.startswith("update_backup_")
        assert parse_backup_name(record.path.name)[0] == UPDATE_BACKUP_LABEL

    def test_invalid_label(self, manager):
        with pytest.raises(ValueError):
            manager.backup(label="../evil")

    def test_missing_source(self, tmp_path):
        with pytest.raises(BackupError):
            BackupManager(tmp_path / "missing").backup()

    def test_failed_write_leaves_no_archive(self, manager, populated):
        with patch.object(BackupManager, "_write_archive", side_effect=OSError("disk full")):
            with pytest.raises(BackupError):
                manager.backup()

        assert list((populated / "backups").iterdir()) == []
        assert manager.list() == []


class TestListAndPrune:
    def test_list_is_strictly_descending(self, manager):
        created = [manager.backup(label=label) for label in ("backup", "update_backup", "backup", "backup")]

        listed = manager.list()

        assert [r.path for r in listed] == [r.path for r in reversed(created)]
        times = [r.created_at for r in listed]
        assert all(a > b for a, b in zip(times, times[1:]))

    def test_list_ignores_foreign_and_partial_files(self, manager, populated):
        manager.backup()
        (populated / "backups" / "notes.txt").write_text("")
        (populated / "backups" / "backup_20240101_000000_000000.tar.gz.partial").write_text("")

        assert len(manager.list()) == 1

    def test_list_without_backups_dir(self, tmp_path):
        assert BackupManager(tmp_path / "nothing").list() == []

    @pytest.mark.parametrize("total,keep", [(4, 1), (4, 2), (3, 3), (2, 5)])
    def test_prune_keeps_most_recent(self, manager, total, keep):
        records = [manager.backup() for _ in range(total)]

        deleted = manager.prune(keep)

        remaining = manager.list()
        assert len(remaining) == min(keep, total)
        assert remaining[0].path == records[-1].path
        assert len(deleted) == total - len(remaining)
        assert not any(path.exists() for path in deleted)

    def test_prune_zero_requires_force(self, manager):
        manager.backup()

        with pytest.raises(ValueError):
            manager.prune(0)
        assert len(manager.list()) == 1

        manager.prune(0, force=True)
        assert manager.list() == []

    def test_prune_negative(self, manager):
        with pytest.raises(ValueError):
            manager.prune(-1)


class TestVerify:
    def test_fresh_archive_verifies(self, manager):
        record = manager.backup()
        assert manager.verify_archive(record.path)

    def test_garbage_archive_fails(self, manager, populated):
        bogus = populated / "backups" / "backup_20240101_000000_000000.tar.gz"
        bogus.write_bytes(b"not a tarball")
        assert not manager.verify_archive(bogus)

    def test_hash_mismatch_fails(self, manager, populated):
        path = populated / "backups" / "backup_20240101_000000_000000.tar.gz"
        manifest = {"format": 1, "files": {"data/settings.json": "0" * 64}}
        with tarfile.open(path, "w:gz") as tar:
            for name, payload in (
                ("manifest.json", json.dumps(manifest).encode()),
                ("data/settings.json", b"{}"),
            ):
                info = tarfile.TarInfo(name)
                info.size = len(payload)
                tar.addfile(info, io.BytesIO(payload))

        assert not manager.verify_archive(path)

    def test_verify_integrity(self, manager, populated):
        manager.backup()
        assert manager.verify_integrity()

        (populated / "skills").rmdir()
        assert not manager.verify_integrity()


class TestRestore:
    def test_restore_round_trip(self, manager, populated):
        record = manager.backup()
        notes = populated / "projects" / "alpha" / "notes.md"
        notes.write_text("edited")
        (populated / "settings.json").unlink()

        manager.restore(record.path)

        assert notes.read_text() == "original notes"
        assert (populated / "settings.json").read_text() == '{"theme": "light"}'
        assert (populated / "logs" / "app.log").read_text() == "log line"
        assert record.path.exists()
        assert not any(p.name.startswith(".restore-") for p in populated.iterdir())

    def test_corrupt_archive_leaves_live_tree_untouched(self, manager, populated, directory_manager):
        bogus = populated / "backups" / "backup_20240101_000000_000000.tar.gz"
        bogus.write_bytes(b"\x1f\x8b corrupted")
        verified_before = directory_manager.verify_structure(populated)
        snapshot = sorted(str(p.relative_to(populated)) for p in populated.rglob("*"))

        with pytest.raises(RestoreError):
            manager.restore(bogus)

        assert directory_manager.verify_structure(populated) == verified_before
        assert sorted(str(p.relative_to(populated)) for p in populated.rglob("*")) == snapshot
        assert (populated / "projects" / "alpha" / "notes.md").read_text() == "original notes"

    def test_missing_archive(self, manager, populated):
        with pytest.raises(RestoreError):
            manager.restore(populated / "backups" / "nope.tar.gz")

    def test_failed_swap_rolls_back(self, manager, populated):
        record = manager.backup()
        (populated / "settings.json").write_text('{"theme": "dark"}')

        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append((src, dst))
            if len(calls) == 3:
                raise OSError("device busy")
            return real_replace(src, dst)

        with patch("airesearcher.core.backup.backup_manager.os.replace", side_effect=flaky_replace):
            with pytest.raises(RestoreError):
                manager.restore(record.path)

        assert (populated / "settings.json").read_text() == '{"theme": "dark"}'
        assert (populated / "projects" / "alpha" / "notes.md").read_text() == "original notes"
        assert not any(p.name.startswith(".restore-") for p in populated.iterdir())

    def test_extraction_without_filter_support_is_a_restore_error(self, manager, populated):
        record = manager.backup()
        (populated / "settings.json").write_text('{"theme": "dark"}')

        with patch.object(
            tarfile.TarFile,
            "extractall",
            side_effect=TypeError("extractall() got an unexpected keyword argument 'filter'"),
        ):
            with pytest.raises(RestoreError, match="Failed to extract backup"):
                manager.restore(record.path)

        assert (populated / "settings.json").read_text() == '{"theme": "dark"}'
        assert not any(p.name.startswith(".restore-") for p in populated.iterdir())
