"""Detection of optional AI CLI tools on the host."""

from .cache import DetectionCache
from .detectors import (
    ClaudeCodeDetector,
    CliDetector,
    GeminiDetector,
    OllamaDetector,
    default_detectors,
)
from .models import (
    ClaudeCodeInfo,
    DependencyInfo,
    GeminiInfo,
    OllamaInfo,
    Tool,
    not_installed,
)
from .probe import DependencyProbe

__all__ = [
    "DependencyProbe",
    "DetectionCache",
    "CliDetector",
    "ClaudeCodeDetector",
    "OllamaDetector",
    "GeminiDetector",
    "default_detectors",
    "Tool",
    "DependencyInfo",
    "ClaudeCodeInfo",
    "OllamaInfo",
    "GeminiInfo",
    "not_installed",
]
