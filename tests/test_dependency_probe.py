"""Tests for CLI tool detection and the detection cache."""

import sys
import time
from pathlib import Path
from subprocess import CompletedProcess
from unittest.mock import MagicMock, patch

import pytest
import requests

from airesearcher.core.deps import (
    ClaudeCodeDetector,
    ClaudeCodeInfo,
    DependencyProbe,
    DetectionCache,
    GeminiDetector,
    GeminiInfo,
    OllamaDetector,
    OllamaInfo,
    Tool,
    default_detectors,
)
from airesearcher.core.deps.detectors import classify_auth_output, parse_version
from airesearcher.core.deps.instructions import (
    extract_quick_install_command,
    get_instructions,
)


@pytest.fixture
def empty_host(monkeypatch, tmp_path):
    """A host where no tool can be found: empty PATH, empty HOME, nothing runs."""
    monkeypatch.setenv("PATH", str(tmp_path / "empty-bin"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with patch("airesearcher.core.deps.detectors.run_command", return_value=None), patch(
        "airesearcher.core.deps.detectors.is_posix", return_value=False
    ):
        yield


def fake_executable(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


class TestParseVersion:
    @pytest.mark.parametrize(
        "output,expected",
        [
            ("1.0.3 (Claude Code)", "1.0.3"),
            ("ollama version is 0.5.7", "0.5.7"),
            ("v2.1", "2.1"),
            ("gemini 0.1.9-nightly", "0.1.9"),
            ("", None),
        ],
    )
    def test_parse_version(self, output, expected):
        assert parse_version(output) == expected


class TestDetectNeverRaises:
    @pytest.mark.parametrize("tool", list(Tool))
    def test_missing_tool_is_not_installed(self, empty_host, tool):
        probe = DependencyProbe()
        info = probe.detect(tool)

        assert info.tool is tool
        assert info.installed is False
        assert info.path is None
        assert info.error is None

    def test_detect_all_on_empty_host(self, empty_host):
        results = DependencyProbe().detect_all()

        assert list(results) == [Tool.CLAUDE_CODE, Tool.OLLAMA, Tool.GEMINI]
        assert isinstance(results[Tool.CLAUDE_CODE], ClaudeCodeInfo)
        assert isinstance(results[Tool.OLLAMA], OllamaInfo)
        assert isinstance(results[Tool.GEMINI], GeminiInfo)
        assert not any(info.installed for info in results.values())

    def test_path_permission_error_is_soft(self, empty_host):
        with patch(
            "airesearcher.core.deps.detectors.shutil.which",
            side_effect=PermissionError("permission denied"),
        ):
            info = DependencyProbe().detect(Tool.OLLAMA)

        assert info.installed is False
        assert info.soft_failed
        assert "permission denied" in info.error

    def test_unexpected_exception_is_soft(self, stub_detectors):
        stub_detectors[Tool.GEMINI].exc = RuntimeError("boom")
        probe = DependencyProbe(detectors=stub_detectors)

        results = probe.detect_all()

        assert results[Tool.GEMINI].installed is False
        assert "boom" in results[Tool.GEMINI].error
        assert results[Tool.OLLAMA].error is None

    def test_decode_error_from_detector_is_soft(self, stub_detectors):
        stub_detectors[Tool.OLLAMA].exc = UnicodeDecodeError(
            "utf-8", b"\xff", 0, 1, "invalid start byte"
        )
        probe = DependencyProbe(detectors=stub_detectors)

        info = probe.detect(Tool.OLLAMA)

        assert info.installed is False
        assert info.soft_failed
        assert "invalid start byte" in info.error

    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script")
    def test_non_utf8_version_output_is_tolerated(self, tmp_path, monkeypatch):
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        script = bin_dir / "ollama"
        script.write_text("#!/bin/sh\nprintf 'ollama version \\377\\376 0.5.1\\n'\n")
        script.chmod(0o755)
        monkeypatch.setenv("PATH", str(bin_dir))
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        with patch("airesearcher.core.deps.detectors.is_posix", return_value=False), patch.object(
            OllamaDetector, "is_running", return_value=False
        ):
            info = DependencyProbe().detect(Tool.OLLAMA)

        assert info.installed is True
        assert info.path == script
        assert info.version == "0.5.1"

    def test_unregistered_tool_rejected(self, stub_detectors):
        del stub_detectors[Tool.GEMINI]
        probe = DependencyProbe(detectors=stub_detectors)

        with pytest.raises(ValueError):
            probe.detect(Tool.GEMINI)


class TestDetectors:
    def test_claude_found_in_path(self, empty_host, tmp_path, monkeypatch):
        bin_dir = tmp_path / "bin"
        claude = fake_executable(bin_dir, "claude")
        monkeypatch.setenv("PATH", str(bin_dir))

        ok = CompletedProcess([], 0, stdout="1.0.3 (Claude Code)\n", stderr="")
        with patch("airesearcher.core.deps.detectors.run_command", return_value=ok):
            info = ClaudeCodeDetector().detect()

        assert info.installed
        assert info.path == claude
        assert info.in_path
        assert info.version == "1.0.3"

    def test_claude_config_without_executable(self, empty_host, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        (home / ".claude.json").write_text("{}")

        info = ClaudeCodeDetector().detect()

        assert info.installed is False
        assert info.config_path == home / ".claude.json"
        assert info.error == "Configuration found but executable not in PATH"

    def test_preferred_path_is_tried_first(self, empty_host, tmp_path):
        ollama = fake_executable(tmp_path / "custom", "ollama")
        ok = CompletedProcess([], 0, stdout="ollama version is 0.5.7", stderr="")

        with patch("airesearcher.core.deps.detectors.run_command", return_value=ok), patch.object(
            OllamaDetector, "is_running", return_value=False
        ):
            info = OllamaDetector().detect(preferred_path=ollama)

        assert info.installed
        assert info.path == ollama
        assert info.in_path is False
        assert info.running is False

    def test_unrecognized_binary_is_rejected(self, empty_host, tmp_path, monkeypatch):
        bin_dir = tmp_path / "bin"
        fake_executable(bin_dir, "ollama")
        monkeypatch.setenv("PATH", str(bin_dir))

        other = CompletedProcess([], 1, stdout="", stderr="unknown command")
        with patch("airesearcher.core.deps.detectors.run_command", return_value=other):
            info = OllamaDetector().detect()

        assert info.installed is False

    def test_ollama_running_check(self):
        with patch("airesearcher.core.deps.detectors.requests.get", return_value=MagicMock()):
            assert OllamaDetector().is_running() is True

        with patch(
            "airesearcher.core.deps.detectors.requests.get",
            side_effect=requests.ConnectionError("refused"),
        ):
            assert OllamaDetector().is_running() is False

    def test_gemini_api_key_counts_as_authenticated(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        with patch("airesearcher.core.deps.detectors.run_command") as run:
            assert GeminiDetector().check_authentication(tmp_path / "gemini") is True
        run.assert_not_called()

    @pytest.mark.parametrize(
        "returncode,output,expected",
        [
            (0, "gemini-2.0-flash\ngemini-1.5-pro", True),
            (1, "Error: not authenticated, run gemini auth", False),
            (0, "Please set an API key", False),
            (1, "network unreachable", None),
        ],
    )
    def test_classify_auth_output(self, returncode, output, expected):
        assert classify_auth_output(returncode, output) is expected

    def test_default_detectors_cover_every_tool(self):
        assert set(default_detectors()) == set(Tool)


class TestDetectionCache:
    def test_detect_is_cached_until_cleared(self, probe, stub_detectors):
        probe.detect(Tool.OLLAMA)
        probe.detect("ollama")
        assert stub_detectors[Tool.OLLAMA].calls == 1

        probe.clear_cache(Tool.OLLAMA)
        probe.detect(Tool.OLLAMA)
        assert stub_detectors[Tool.OLLAMA].calls == 2

    def test_detect_all_reuses_cache(self, probe, stub_detectors):
        probe.detect(Tool.GEMINI)
        probe.detect_all()
        probe.detect_all()

        assert [stub_detectors[t].calls for t in Tool] == [1, 1, 1]

    def test_clear_all(self, probe, stub_detectors):
        probe.detect_all()
        probe.clear_cache("*")
        probe.detect_all()

        assert all(stub_detectors[t].calls == 2 for t in Tool)

    def test_soft_errors_are_cached(self, probe, stub_detectors):
        stub_detectors[Tool.OLLAMA].exc = RuntimeError("flaky")
        probe.detect_all()
        stub_detectors[Tool.OLLAMA].exc = None

        assert probe.detect(Tool.OLLAMA).soft_failed
        assert stub_detectors[Tool.OLLAMA].calls == 1

    def test_ttl_with_injected_clock(self):
        now = [100.0]
        cache = DetectionCache(ttl=10, clock=lambda: now[0])
        info = OllamaInfo(installed=True)

        cache.put(Tool.OLLAMA, info)
        now[0] = 105.0
        assert cache.get(Tool.OLLAMA) is info

        now[0] = 111.0
        assert cache.get(Tool.OLLAMA) is None
        assert Tool.OLLAMA not in cache

    def test_no_ttl_never_expires(self):
        now = [0.0]
        cache = DetectionCache(clock=lambda: now[0])
        cache.put(Tool.GEMINI, GeminiInfo())

        now[0] = 1e9
        assert Tool.GEMINI in cache


class TestConcurrentProbing:
    def test_tools_are_probed_in_parallel(self, stub_detectors):
        for detector in stub_detectors.values():
            detector.delay = 0.3
        probe = DependencyProbe(detectors=stub_detectors)

        start = time.monotonic()
        results = probe.detect_all()
        elapsed = time.monotonic() - start

        assert len(results) == 3
        assert elapsed < 0.8

    def test_slow_probe_times_out_softly(self, stub_detectors):
        stub_detectors[Tool.OLLAMA].delay = 2.0
        probe = DependencyProbe(detectors=stub_detectors, probe_timeout=0.2)

        start = time.monotonic()
        results = probe.detect_all()
        elapsed = time.monotonic() - start

        assert elapsed < 1.5
        assert results[Tool.OLLAMA].installed is False
        assert "timed out" in results[Tool.OLLAMA].error
        assert results[Tool.CLAUDE_CODE].error is None
        assert results[Tool.GEMINI].error is None


class TestInstructions:
    @pytest.mark.parametrize(
        "tool,platform_name,command",
        [
            (Tool.CLAUDE_CODE, "macos", "npm install -g @anthropic-ai/claude-code"),
            (Tool.CLAUDE_CODE, "windows", "npm install -g @anthropic-ai/claude-code"),
            (Tool.OLLAMA, "linux", "curl -fsSL https://ollama.com/install.sh | sh"),
            (Tool.OLLAMA, "macos", "brew install ollama"),
            (Tool.OLLAMA, "windows", "winget install Ollama.Ollama"),
            (Tool.GEMINI, "linux", "npm install -g @google/gemini-cli"),
        ],
    )
    def test_quick_install_command(self, tool, platform_name, command):
        text = get_instructions(tool, platform_name)
        assert extract_quick_install_command(text) == command

    def test_unknown_platform_falls_back_to_download_page(self):
        text = get_instructions(Tool.OLLAMA, "haiku")
        assert "https://ollama.com/download" in text
        assert extract_quick_install_command(text) == "curl -fsSL https://ollama.com/install.sh | sh"

    @pytest.mark.parametrize("tool", list(Tool))
    def test_every_tool_has_a_fallback_command(self, tool):
        text = get_instructions(tool, "unknown")
        assert extract_quick_install_command(text) is not None

    def test_probe_instructions(self, probe):
        assert "Quick install:" in probe.instructions("gemini")
        assert probe.quick_install_command(Tool.GEMINI) == "npm install -g @google/gemini-cli"
