"""
Installation metadata with atomic JSON persistence.

Exactly one AppConfig exists per installation. It is only ever written
through ConfigStore, which replaces the file atomically and serializes
read-modify-write updates against concurrent callers.
"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ... import __version__
from ...utils.fs import atomic_write_json
from ...utils.locking import data_directory_lock
from ...utils.logger import get_logger
from ...utils.platform import get_config_path
from ..deps.models import Tool
from ..errors import ConfigCorruptError, ConfigNotFoundError, ConfigWriteError

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EnabledTools(BaseModel):
    claude_code: bool = False
    ollama: bool = False
    gemini: bool = False


class ToolPaths(BaseModel):
    claude_code: Optional[Path] = None
    ollama: Optional[Path] = None
    gemini: Optional[Path] = None


class AppConfig(BaseModel):
    data_directory: Path
    installed_at: datetime = Field(default_factory=_utc_now)
    version: str = __version__
    enabled_tools: EnabledTools = Field(default_factory=EnabledTools)
    tool_paths: ToolPaths = Field(default_factory=ToolPaths)
    last_update_check: Optional[datetime] = None

    @field_validator("version")
    @classmethod
    def version_not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("version must be a non-empty string")
        return v

    def is_tool_enabled(self, tool: Tool) -> bool:
        return getattr(self.enabled_tools, tool.field_name)

    def tool_path(self, tool: Tool) -> Optional[Path]:
        return getattr(self.tool_paths, tool.field_name)

    def set_tool(self, tool: Tool, enabled: bool, path: Optional[Path]) -> None:
        setattr(self.enabled_tools, tool.field_name, enabled)
        setattr(self.tool_paths, tool.field_name, Path(path) if path else None)

    def path_hints(self) -> Dict[Tool, Optional[Path]]:
        return {tool: self.tool_path(tool) for tool in Tool}


class ConfigStore:
    """Durable single-file store for AppConfig."""

    def __init__(self, config_path: Optional[Path] = None):
        self._path = Path(config_path) if config_path else get_config_path()
        self._update_lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> AppConfig:
        if not self._path.exists():
            raise ConfigNotFoundError(
                "Configuration not found. Please run installation first."
            )

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return AppConfig.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Configuration file {self._path} is corrupt: {e}")
            raise ConfigCorruptError(
                f"Configuration file is corrupt ({e.__class__.__name__}). "
                "Reset the configuration to recover."
            ) from e
        except OSError as e:
            raise ConfigCorruptError(f"Failed to read configuration file: {e}") from e

    def load_or_none(self) -> Optional[AppConfig]:
        try:
            return self.load()
        except ConfigNotFoundError:
            return None

    def save(self, config: AppConfig) -> None:
        data = config.model_dump(mode="json")
        with self._update_lock, data_directory_lock(config.data_directory):
            try:
                atomic_write_json(self._path, data)
            except OSError as e:
                logger.error(f"Failed to write configuration to {self._path}: {e}")
                raise ConfigWriteError(f"Failed to write configuration: {e}") from e
        logger.info(f"Configuration saved to {self._path}")

    def update(self, updater: Callable[[AppConfig], None]) -> AppConfig:
        """Load, apply updater, save. Serialized against other updates."""
        with self._update_lock:
            config = self.load()
            updater(config)
            self.save(config)
            return config

    def update_tool_config(
        self, tool: Tool, enabled: bool, path: Optional[Path] = None
    ) -> AppConfig:
        tool = Tool.parse(tool)

        def _apply(config: AppConfig) -> None:
            config.set_tool(tool, enabled, path)

        config = self.update(_apply)
        logger.info(f"{tool.display_name} enabled={enabled} path={path}")
        return config

    def touch_last_check(self) -> AppConfig:
        def _apply(config: AppConfig) -> None:
            config.last_update_check = _utc_now()

        return self.update(_apply)

    def reset(self) -> None:
        with self._update_lock:
            if self._path.exists():
                try:
                    self._path.unlink()
                except OSError as e:
                    raise ConfigWriteError(f"Failed to delete configuration: {e}") from e
                logger.info(f"Configuration deleted from {self._path}")
