from .models import InstallationConfig, InstallationResult
from .orchestrator import InstallationOrchestrator
from .progress import (
    STAGE_PERCENTAGES,
    InstallationProgress,
    InstallationStage,
    ProgressChannel,
    Subscription,
)

__all__ = [
    "InstallationOrchestrator",
    "InstallationConfig",
    "InstallationResult",
    "InstallationProgress",
    "InstallationStage",
    "ProgressChannel",
    "Subscription",
    "STAGE_PERCENTAGES",
]
