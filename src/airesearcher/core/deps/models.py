"""Detection result types, one variant per external tool."""

from enum import Enum
from pathlib import Path
from typing import Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict


class Tool(str, Enum):
    CLAUDE_CODE = "claude-code"
    OLLAMA = "ollama"
    GEMINI = "gemini"

    @property
    def field_name(self) -> str:
        return self.value.replace("-", "_")

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Union["Tool", str]) -> "Tool":
        if isinstance(value, Tool):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown tool: {value!r}") from None


_DISPLAY_NAMES = {
    Tool.CLAUDE_CODE: "Claude Code",
    Tool.OLLAMA: "Ollama",
    Tool.GEMINI: "Gemini CLI",
}

_ALIASES = {
    "claude": "claude-code",
    "claudecode": "claude-code",
    "gemini-cli": "gemini",
}


class DependencyInfo(BaseModel):
    """Shared contract: absence is installed=False, never an exception."""

    model_config = ConfigDict(frozen=True)

    tool: Tool
    installed: bool = False
    version: Optional[str] = None
    path: Optional[Path] = None
    in_path: bool = False
    # Diagnostic for a probe that could not complete (permission denied, timeout)
    error: Optional[str] = None

    @property
    def soft_failed(self) -> bool:
        return self.error is not None


class ClaudeCodeInfo(DependencyInfo):
    tool: Literal[Tool.CLAUDE_CODE] = Tool.CLAUDE_CODE
    running: Optional[bool] = None
    config_path: Optional[Path] = None


class OllamaInfo(DependencyInfo):
    tool: Literal[Tool.OLLAMA] = Tool.OLLAMA
    running: Optional[bool] = None


class GeminiInfo(DependencyInfo):
    tool: Literal[Tool.GEMINI] = Tool.GEMINI
    authenticated: Optional[bool] = None


INFO_TYPES: Dict[Tool, Type[DependencyInfo]] = {
    Tool.CLAUDE_CODE: ClaudeCodeInfo,
    Tool.OLLAMA: OllamaInfo,
    Tool.GEMINI: GeminiInfo,
}


def not_installed(tool: Tool, error: Optional[str] = None) -> DependencyInfo:
    return INFO_TYPES[tool](error=error)
