"""
Version-keyed migrations of the data directory.

A migration runs when the persisted version is older than the migration's
version and the running version is at least that new. Each step returns
the paths it touched.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

from ...utils.fs import remove_path
from ...utils.logger import get_logger

logger = get_logger(__name__)

LEGACY_STATE_FILENAME = ".installation_state.json"


def version_key(version: str) -> Tuple[int, ...]:
    """'0.3.0' -> (0, 3, 0); non-numeric suffixes are ignored."""
    parts = re.findall(r"\d+", version.split("+", 1)[0].split("-", 1)[0])
    key = tuple(int(p) for p in parts[:3])
    return key + (0,) * (3 - len(key))


@dataclass(frozen=True)
class Migration:
    version: str
    description: str
    apply: Callable[[Path], List[Path]]


def remove_legacy_installation_state(root: Path) -> List[Path]:
    """Installation state now lives in the app config file."""
    legacy = root / LEGACY_STATE_FILENAME
    if not legacy.exists():
        return []
    remove_path(legacy)
    logger.info(f"Removed legacy installation state file: {legacy}")
    return [legacy]


MIGRATIONS: List[Migration] = [
    Migration(
        version="0.2.0",
        description="Remove legacy installation state file",
        apply=remove_legacy_installation_state,
    ),
]


def pending_migrations(from_version: str, to_version: str) -> List[Migration]:
    start, end = version_key(from_version), version_key(to_version)
    return sorted(
        (m for m in MIGRATIONS if start < version_key(m.version) <= end),
        key=lambda m: version_key(m.version),
    )


def run_migrations(root: Path, from_version: str, to_version: str) -> List[Path]:
    touched: List[Path] = []
    for migration in pending_migrations(from_version, to_version):
        logger.info(f"Applying migration {migration.version}: {migration.description}")
        touched.extend(migration.apply(root))
    return touched
