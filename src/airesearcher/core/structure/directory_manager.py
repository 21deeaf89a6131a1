"""
Creation and verification of the application data directory layout.

    <root>/
        projects/  skills/  templates/  backups/  logs/
        settings.json  README.md  templates/*.md   (default content)
"""

from pathlib import Path
from typing import List, Optional

from ...utils.fs import atomic_write_text
from ...utils.logger import get_logger
from ...utils.platform import get_app_data_dir
from ..errors import StructureError
from .templates import DEFAULT_SETTINGS_JSON, DEFAULT_TEMPLATES, README

logger = get_logger(__name__)

SUBDIRECTORIES = ("projects", "skills", "templates", "backups", "logs")
BACKUPS_DIRNAME = "backups"
LOGS_DIRNAME = "logs"
TEMPLATES_DIRNAME = "templates"
SETTINGS_FILENAME = "settings.json"
README_FILENAME = "README.md"
CONFIG_FILENAME = "config.json"


class DirectoryManager:
    def __init__(self, default_root: Optional[Path] = None):
        self._default_root = Path(default_root) if default_root else None

    def default_path(self) -> Path:
        return self._default_root or get_app_data_dir()

    def create_structure(self, root: Path) -> List[Path]:
        """Create any missing directories. Returns what was created."""
        root = Path(root).expanduser()
        logger.info(f"Creating directory structure at {root}")

        if root.exists() and not root.is_dir():
            raise StructureError(f"Data directory path is not a directory: {root}")

        created: List[Path] = []
        try:
            if not root.exists():
                root.mkdir(parents=True)
                created.append(root)
                logger.info(f"Created base directory: {root}")

            for name in SUBDIRECTORIES:
                path = root / name
                if path.is_dir():
                    continue
                if path.exists():
                    raise StructureError(
                        f"Cannot create directory {path}: a file with that name exists"
                    )
                path.mkdir()
                created.append(path)
                logger.info(f"Created directory: {path}")
        except OSError as e:
            raise StructureError(f"Failed to create directory structure at {root}: {e}") from e

        logger.info("Directory structure created successfully")
        return created

    def verify_structure(self, root: Path) -> bool:
        """Read-only check; False for any missing or malformed entry."""
        root = Path(root).expanduser()
        try:
            if not root.is_dir():
                logger.warning(f"Base directory does not exist: {root}")
                return False

            for name in SUBDIRECTORIES:
                path = root / name
                if not path.is_dir():
                    logger.warning(f"Required directory missing or malformed: {path}")
                    return False
        except OSError as e:
            logger.warning(f"Could not verify directory structure at {root}: {e}")
            return False

        return True

    def missing_entries(self, root: Path) -> List[str]:
        root = Path(root).expanduser()
        return [name for name in SUBDIRECTORIES if not (root / name).is_dir()]

    def create_default_files(self, root: Path) -> List[Path]:
        """Write default settings, README and templates; existing files are kept."""
        root = Path(root).expanduser()
        files = {
            root / SETTINGS_FILENAME: DEFAULT_SETTINGS_JSON,
            root / README_FILENAME: README,
        }
        for name, content in DEFAULT_TEMPLATES.items():
            files[root / TEMPLATES_DIRNAME / name] = content

        created: List[Path] = []
        try:
            for path, content in files.items():
                if path.exists():
                    logger.debug(f"Keeping existing file: {path}")
                    continue
                atomic_write_text(path, content)
                created.append(path)
                logger.info(f"Created default file: {path}")
        except OSError as e:
            raise StructureError(f"Failed to create default files in {root}: {e}") from e

        return created

    def is_first_install(self, root: Path) -> bool:
        root = Path(root).expanduser()
        if not root.exists():
            return True
        return not (root / SETTINGS_FILENAME).exists() and not (root / CONFIG_FILENAME).exists()
