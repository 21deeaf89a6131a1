"""Tests for AppConfig persistence."""

import errno
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from airesearcher import __version__
from airesearcher.core.deps import Tool
from airesearcher.core.errors import (
    ConfigCorruptError,
    ConfigNotFoundError,
    ConfigWriteError,
)
from airesearcher.core.settings import AppConfig, ConfigStore, EnabledTools


class TestAppConfig:
    def test_default_values(self, tmp_path):
        config = AppConfig(data_directory=tmp_path)
        assert config.version == __version__
        assert config.enabled_tools == EnabledTools()
        assert config.tool_paths.ollama is None
        assert config.last_update_check is None
        assert config.installed_at.tzinfo is not None

    def test_set_tool(self, tmp_path):
        config = AppConfig(data_directory=tmp_path)
        config.set_tool(Tool.OLLAMA, True, "/usr/local/bin/ollama")

        assert config.is_tool_enabled(Tool.OLLAMA)
        assert config.tool_path(Tool.OLLAMA) == Path("/usr/local/bin/ollama")
        assert not config.is_tool_enabled(Tool.GEMINI)

    def test_empty_version_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig(data_directory=tmp_path, version="  ")


class TestConfigStore:
    def test_exists(self, config_store, tmp_path):
        assert not config_store.exists()
        config_store.save(AppConfig(data_directory=tmp_path))
        assert config_store.exists()

    def test_save_load_cycle(self, config_store, tmp_path):
        original = AppConfig(
            data_directory=tmp_path / "data",
            installed_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
            last_update_check=datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc),
        )
        original.set_tool(Tool.CLAUDE_CODE, True, tmp_path / "bin" / "claude")
        original.set_tool(Tool.GEMINI, False, None)

        config_store.save(original)
        loaded = config_store.load()

        assert loaded == original

    def test_saved_file_is_json(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path))

        data = json.loads(config_store.path.read_text(encoding="utf-8"))
        assert data["version"] == __version__
        assert data["enabled_tools"] == {"claude_code": False, "ollama": False, "gemini": False}

    def test_load_missing_raises_not_found(self, config_store):
        with pytest.raises(ConfigNotFoundError):
            config_store.load()
        assert config_store.load_or_none() is None

    @pytest.mark.parametrize(
        "content",
        ['{"data_directory": "/tmp", "version": ', '{"version": "1.0"}', "[]"],
    )
    def test_load_corrupt_raises_corrupt(self, config_store, content):
        config_store.path.parent.mkdir(parents=True)
        config_store.path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigCorruptError):
            config_store.load()

    def test_failed_write_keeps_previous_file(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path / "first"))
        before = config_store.path.read_bytes()

        with patch(
            "airesearcher.utils.fs.os.replace",
            side_effect=OSError(errno.EIO, "I/O error"),
        ):
            with pytest.raises(ConfigWriteError):
                config_store.save(AppConfig(data_directory=tmp_path / "second"))

        assert config_store.path.read_bytes() == before
        leftovers = [p for p in config_store.path.parent.iterdir() if p.name != "config.json"]
        assert leftovers == []

    def test_update_tool_config(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path))

        updated = config_store.update_tool_config("claude", True, tmp_path / "claude")

        assert updated.enabled_tools.claude_code is True
        assert config_store.load().tool_paths.claude_code == tmp_path / "claude"

    def test_update_tool_config_requires_config(self, config_store):
        with pytest.raises(ConfigNotFoundError):
            config_store.update_tool_config(Tool.OLLAMA, True)

    def test_touch_last_check(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path))
        before = datetime.now(timezone.utc)

        updated = config_store.touch_last_check()

        assert updated.last_update_check >= before
        assert config_store.load().last_update_check == updated.last_update_check

    def test_reset(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path))
        config_store.reset()

        assert not config_store.exists()
        config_store.reset()  # no file, no error

    def test_concurrent_updates_are_serialized(self, config_store, tmp_path):
        config_store.save(AppConfig(data_directory=tmp_path))
        errors = []

        def enable(tool):
            try:
                for _ in range(10):
                    config_store.update_tool_config(tool, True)
                    config_store.touch_last_check()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=enable, args=(tool,)) for tool in Tool]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        loaded = config_store.load()
        assert loaded.enabled_tools == EnabledTools(claude_code=True, ollama=True, gemini=True)


class TestToolParsing:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("claude-code", Tool.CLAUDE_CODE),
            ("claude_code", Tool.CLAUDE_CODE),
            ("claude", Tool.CLAUDE_CODE),
            ("Ollama", Tool.OLLAMA),
            ("gemini-cli", Tool.GEMINI),
            (Tool.GEMINI, Tool.GEMINI),
        ],
    )
    def test_parse(self, value, expected):
        assert Tool.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Tool.parse("copilot")
