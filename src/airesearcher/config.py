"""
Centralized application configuration.

Edit the variables below to configure development settings.
"""

import logging
from typing import Optional

# =============================================================================
# DEVELOPMENT SETTINGS - Edit these for local development
# =============================================================================
LOG_LEVEL = "DEBUG"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_TO_CONSOLE = True  # Set to True to output logs to terminal
# =============================================================================

# =============================================================================
# DETECTION SETTINGS
# =============================================================================
COMMAND_TIMEOUT_SECONDS = 5.0  # Per external command (--version, pgrep, ...)
PROBE_TIMEOUT_SECONDS = 20.0  # Per tool when probing all tools concurrently
OLLAMA_API_URL = "http://localhost:11434/api/tags"
OLLAMA_API_TIMEOUT_SECONDS = 2.0
DETECTION_CACHE_TTL_SECONDS: Optional[float] = None  # None = until cleared
# =============================================================================

# =============================================================================
# BACKUP SETTINGS
# =============================================================================
DEFAULT_BACKUP_RETENTION = 5  # Backups kept after a successful update
# =============================================================================


def get_log_level() -> int:
    """Get the logging level as an integer."""
    return getattr(logging, LOG_LEVEL.upper(), logging.INFO)
