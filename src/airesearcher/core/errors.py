"""Exception classes for installation, update and backup operations."""


class AIResearcherError(Exception):
    """Base exception for setup errors. The message is suitable for display."""
    pass


class DetectionSoftError(AIResearcherError):
    """A probe could not complete; reported inside the tool's info, never raised to callers."""
    pass


class StructureError(AIResearcherError):
    """The data directory layout could not be created."""
    pass


class ConfigError(AIResearcherError):
    """Base exception for configuration file errors."""
    pass


class ConfigNotFoundError(ConfigError):
    """No configuration file exists yet."""
    pass


class ConfigCorruptError(ConfigError):
    """The configuration file exists but cannot be parsed or validated."""
    pass


class ConfigWriteError(ConfigError):
    """The configuration file could not be written."""
    pass


class BackupError(AIResearcherError):
    """A backup archive could not be created or pruned."""
    pass


class RestoreError(AIResearcherError):
    """A backup could not be restored; live data is left untouched."""
    pass


class InvalidTransitionError(AIResearcherError):
    """An installation step was requested from a state that does not allow it."""
    pass


class OperationInProgressError(AIResearcherError):
    """Another installation or update run is already active in this process."""
    pass
