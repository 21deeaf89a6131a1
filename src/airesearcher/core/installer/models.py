from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel

from ..deps.models import ClaudeCodeInfo, DependencyInfo, GeminiInfo, OllamaInfo, Tool
from ..settings.config_store import AppConfig


class InstallationConfig(BaseModel):
    """Snapshot of installation state, recomputed on demand and never persisted."""

    app_data_path: Path
    is_first_install: bool
    claude_code_detected: bool = False
    ollama_detected: bool = False
    gemini_detected: bool = False

    @classmethod
    def from_detection(
        cls,
        app_data_path: Path,
        is_first_install: bool,
        detected: Dict[Tool, DependencyInfo],
    ) -> "InstallationConfig":
        def installed(tool: Tool) -> bool:
            info = detected.get(tool)
            return bool(info and info.installed)

        return cls(
            app_data_path=app_data_path,
            is_first_install=is_first_install,
            claude_code_detected=installed(Tool.CLAUDE_CODE),
            ollama_detected=installed(Tool.OLLAMA),
            gemini_detected=installed(Tool.GEMINI),
        )


class InstallationResult(BaseModel):
    success: bool
    config: Optional[AppConfig] = None
    claude_code_info: Optional[ClaudeCodeInfo] = None
    ollama_info: Optional[OllamaInfo] = None
    gemini_info: Optional[GeminiInfo] = None
    error_message: Optional[str] = None

    @classmethod
    def completed(cls, config: AppConfig, detected: Dict[Tool, DependencyInfo]) -> "InstallationResult":
        return cls(
            success=True,
            config=config,
            claude_code_info=detected.get(Tool.CLAUDE_CODE),
            ollama_info=detected.get(Tool.OLLAMA),
            gemini_info=detected.get(Tool.GEMINI),
        )

    @classmethod
    def failed(
        cls, message: str, detected: Optional[Dict[Tool, DependencyInfo]] = None
    ) -> "InstallationResult":
        detected = detected or {}
        return cls(
            success=False,
            error_message=message,
            claude_code_info=detected.get(Tool.CLAUDE_CODE),
            ollama_info=detected.get(Tool.OLLAMA),
            gemini_info=detected.get(Tool.GEMINI),
        )
