"""
Per-tool CLI detectors.

Each detector locates its executable in order: a saved path hint, the
PATH, well-known install locations, and (macOS/Linux) a login-shell
lookup that sees PATH entries added by shell profiles. A candidate only
counts once running it with --version (or --help) confirms it.
"""

import os
import re
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from ...config import (
    COMMAND_TIMEOUT_SECONDS,
    OLLAMA_API_TIMEOUT_SECONDS,
    OLLAMA_API_URL,
)
from ...utils.logger import get_logger
from ...utils.platform import env_based_paths, get_platform, home_based_paths, is_posix
from ..errors import DetectionSoftError
from .models import INFO_TYPES, ClaudeCodeInfo, DependencyInfo, Tool, not_installed

logger = get_logger(__name__)

_SEMVER_RE = re.compile(r"\d+\.\d+\.\d+")
_VERSION_ONLY_RE = re.compile(r"^v?\d+(\.\d+)+")


def parse_version(output: str) -> Optional[str]:
    """Extract a version from --version output ("claude 1.0.3", "v0.5.1", ...)."""
    text = output.strip()
    if not text:
        return None
    match = _SEMVER_RE.search(text)
    if match:
        return match.group(0)
    last = text.split()[-1].lstrip("vV")
    return last or None


def run_command(
    args: Sequence[str], timeout: float = COMMAND_TIMEOUT_SECONDS
) -> Optional[subprocess.CompletedProcess]:
    """Run a short probe command. None when it cannot run or times out."""
    try:
        return subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except (FileNotFoundError, PermissionError, NotADirectoryError):
        return None
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {' '.join(args)}")
        return None


def find_in_path(command: str) -> Optional[Path]:
    try:
        found = shutil.which(command)
    except OSError as e:
        raise DetectionSoftError(f"Could not search PATH for {command}: {e}") from e
    return Path(found) if found else None


def probe_login_shell(
    command: str, timeout: float = COMMAND_TIMEOUT_SECONDS
) -> Optional[Path]:
    """Ask a login shell where command lives; sees PATH set by ~/.zprofile etc."""
    for shell in ("zsh", "bash"):
        if shutil.which(shell) is None:
            continue
        result = run_command(
            [shell, "-l", "-c", f"command -v {shlex.quote(command)}"], timeout
        )
        if result is None or result.returncode != 0:
            continue
        lines = result.stdout.strip().splitlines()
        if lines and lines[-1].startswith(os.sep):
            return Path(lines[-1])
    return None


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


class CliDetector:
    tool: Tool
    commands: Tuple[str, ...] = ()

    def __init__(self, command_timeout: float = COMMAND_TIMEOUT_SECONDS):
        self._timeout = command_timeout

    def detect(self, preferred_path: Optional[Path] = None) -> DependencyInfo:
        logger.info(f"Detecting {self.tool.display_name} installation...")

        path, in_path = self.locate(preferred_path)
        if path is None:
            logger.info(f"{self.tool.display_name} not detected")
            return self.not_found()

        version = self.get_version(path)
        extra = self.extra_fields(path)
        logger.info(
            f"{self.tool.display_name} detected at {path} - "
            f"Version: {version}, in PATH: {in_path}, {extra}"
        )
        return INFO_TYPES[self.tool](
            installed=True, version=version, path=path, in_path=in_path, **extra
        )

    def locate(self, preferred_path: Optional[Path] = None) -> Tuple[Optional[Path], bool]:
        path_hits = [find_in_path(command) for command in self.commands]

        if preferred_path is not None:
            preferred = Path(preferred_path)
            if _is_file(preferred) and self.verify_executable(preferred):
                return preferred, preferred in path_hits

        for hit in path_hits:
            if hit is not None and self.verify_executable(hit):
                return hit, True

        for candidate in self.common_paths():
            if _is_file(candidate) and self.verify_executable(candidate):
                return candidate, False

        if is_posix():
            for command in self.commands:
                hit = probe_login_shell(command, self._timeout)
                if hit is not None and self.verify_executable(hit):
                    return hit, True

        return None, False

    def verify_executable(self, path: Path) -> bool:
        result = run_command([str(path), "--version"], self._timeout)
        if result is not None and result.returncode == 0:
            if self.recognizes(result.stdout + result.stderr):
                return True

        result = run_command([str(path), "--help"], self._timeout)
        if result is not None and result.returncode == 0:
            return self.recognizes(result.stdout + result.stderr)
        return False

    def recognizes(self, output: str) -> bool:
        return True

    def get_version(self, path: Path) -> Optional[str]:
        result = run_command([str(path), "--version"], self._timeout)
        if result is None or result.returncode != 0:
            return None
        return parse_version(result.stdout)

    def common_paths(self) -> List[Path]:
        raise NotImplementedError

    def extra_fields(self, path: Path) -> Dict[str, Any]:
        return {}

    def not_found(self) -> DependencyInfo:
        return not_installed(self.tool)


class ClaudeCodeDetector(CliDetector):
    tool = Tool.CLAUDE_CODE
    commands = ("claude-code", "claude")

    def recognizes(self, output: str) -> bool:
        text = output.strip().lower()
        return "claude" in text or bool(_VERSION_ONLY_RE.match(text))

    def common_paths(self) -> List[Path]:
        if get_platform() == "windows":
            return (
                env_based_paths(
                    "LOCALAPPDATA",
                    ["Programs\\Claude Code\\claude.exe", "npm\\claude.cmd"],
                )
                + env_based_paths("APPDATA", ["npm\\claude.cmd"])
                + env_based_paths("USERPROFILE", [".local\\bin\\claude.exe"])
            )
        return home_based_paths(
            [
                ".claude/local/claude",
                ".local/bin/claude",
                ".npm-global/bin/claude",
                "bin/claude",
            ]
        ) + [
            Path("/usr/local/bin/claude"),
            Path("/opt/homebrew/bin/claude"),
            Path("/usr/bin/claude"),
        ]

    def config_paths(self) -> List[Path]:
        if get_platform() == "windows":
            return env_based_paths("APPDATA", ["claude-code\\config.json", "Claude\\config.json"])
        return home_based_paths(
            [".claude.json", ".claude/settings.json", ".config/claude-code/config.json"]
        )

    def find_config(self) -> Optional[Path]:
        for path in self.config_paths():
            if _is_file(path):
                logger.debug(f"Found Claude Code config at: {path}")
                return path
        return None

    def is_running(self) -> bool:
        if get_platform() == "windows":
            result = run_command(["tasklist", "/FI", "IMAGENAME eq claude.exe"], self._timeout)
            return result is not None and "claude.exe" in result.stdout.lower()
        result = run_command(["pgrep", "-f", "claude"], self._timeout)
        return result is not None and result.returncode == 0 and bool(result.stdout.strip())

    def extra_fields(self, path: Path) -> Dict[str, Any]:
        return {"running": self.is_running(), "config_path": self.find_config()}

    def not_found(self) -> DependencyInfo:
        config_path = self.find_config()
        if config_path is None:
            return not_installed(self.tool)
        # Config without an executable: partial or broken installation
        return ClaudeCodeInfo(
            config_path=config_path,
            error="Configuration found but executable not in PATH",
        )


class OllamaDetector(CliDetector):
    tool = Tool.OLLAMA
    commands = ("ollama",)

    def recognizes(self, output: str) -> bool:
        return "ollama" in output.lower()

    def verify_executable(self, path: Path) -> bool:
        if super().verify_executable(path):
            return True
        # "ollama list" works without models and without the service
        result = run_command([str(path), "list"], self._timeout)
        if result is None:
            return False
        return result.returncode == 0 or "ollama" in result.stderr.lower()

    def get_version(self, path: Path) -> Optional[str]:
        result = run_command([str(path), "--version"], self._timeout)
        if result is None or result.returncode != 0:
            return None
        # Older builds print the version on stderr with a client/server warning
        return parse_version(result.stdout or result.stderr)

    def common_paths(self) -> List[Path]:
        if get_platform() == "windows":
            return env_based_paths(
                "LOCALAPPDATA", ["Programs\\Ollama\\ollama.exe", "Ollama\\ollama.exe"]
            ) + env_based_paths("ProgramFiles", ["Ollama\\ollama.exe"])
        return home_based_paths([".local/bin/ollama", "bin/ollama", ".ollama/bin/ollama"]) + [
            Path("/usr/local/bin/ollama"),
            Path("/opt/homebrew/bin/ollama"),
            Path("/usr/bin/ollama"),
            Path("/snap/bin/ollama"),
            Path("/Applications/Ollama.app/Contents/Resources/ollama"),
        ]

    def is_running(self) -> bool:
        try:
            requests.get(OLLAMA_API_URL, timeout=OLLAMA_API_TIMEOUT_SECONDS)
        except requests.RequestException:
            return False
        return True

    def extra_fields(self, path: Path) -> Dict[str, Any]:
        return {"running": self.is_running()}


_AUTH_FAILURE_MARKERS = (
    "not authenticated",
    "api key",
    "unauthorized",
    "authentication required",
)


def classify_auth_output(returncode: int, output: str) -> Optional[bool]:
    """True/False when the output settles authentication, None when it cannot."""
    text = output.lower()
    if any(marker in text for marker in _AUTH_FAILURE_MARKERS):
        return False
    if returncode == 0:
        return True
    return None


class GeminiDetector(CliDetector):
    tool = Tool.GEMINI
    commands = ("gemini",)

    def common_paths(self) -> List[Path]:
        if get_platform() == "windows":
            return env_based_paths(
                "APPDATA", ["npm\\gemini.cmd"]
            ) + env_based_paths("LOCALAPPDATA", ["npm\\gemini.cmd", "Programs\\Gemini\\gemini.exe"])
        return home_based_paths([".local/bin/gemini", ".npm-global/bin/gemini", "bin/gemini"]) + [
            Path("/usr/local/bin/gemini"),
            Path("/opt/homebrew/bin/gemini"),
            Path("/usr/bin/gemini"),
        ]

    def has_stored_credentials(self) -> bool:
        if os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"):
            return True
        return _is_file(Path.home() / ".gemini" / "oauth_creds.json")

    def check_authentication(self, path: Path) -> Optional[bool]:
        if self.has_stored_credentials():
            return True
        result = run_command([str(path), "models", "list"], self._timeout)
        if result is None:
            return None
        return classify_auth_output(result.returncode, result.stdout + " " + result.stderr)

    def extra_fields(self, path: Path) -> Dict[str, Any]:
        return {"authenticated": self.check_authentication(path)}


def default_detectors() -> Dict[Tool, CliDetector]:
    return {
        Tool.CLAUDE_CODE: ClaudeCodeDetector(),
        Tool.OLLAMA: OllamaDetector(),
        Tool.GEMINI: GeminiDetector(),
    }
