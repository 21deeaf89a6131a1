"""Platform-specific utilities for cross-platform compatibility."""

import os
import platform
from pathlib import Path
from typing import Iterable, List

from platformdirs import user_config_path, user_data_path

APP_DIR_NAME = "ai-researcher"


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def is_posix() -> bool:
    return get_platform() in ("macos", "linux")


def get_app_data_dir() -> Path:
    """Platform-appropriate application data directory (not created)."""
    return user_data_path(APP_DIR_NAME, appauthor=False)


def get_config_path() -> Path:
    return user_config_path(APP_DIR_NAME, appauthor=False) / "config.json"


def home_based_paths(relative_paths: Iterable[str]) -> List[Path]:
    home = Path.home()
    return [home / rel for rel in relative_paths]


def env_based_paths(variable: str, relative_paths: Iterable[str]) -> List[Path]:
    base = os.environ.get(variable)
    if not base:
        return []
    return [Path(base) / rel for rel in relative_paths]
