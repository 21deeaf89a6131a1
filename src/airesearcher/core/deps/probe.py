"""
Dependency probing across all supported CLI tools.

Detection never raises for a missing or unprobeable tool: absence is
installed=False, and an environment failure (permission denied, timeout)
comes back as installed=False with a diagnostic in the info's error field.
"""

import subprocess
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from ...config import DETECTION_CACHE_TTL_SECONDS, PROBE_TIMEOUT_SECONDS
from ...utils.logger import get_logger
from ..errors import DetectionSoftError
from .cache import DetectionCache
from .detectors import CliDetector, default_detectors
from .instructions import extract_quick_install_command, get_instructions
from .models import DependencyInfo, Tool, not_installed

logger = get_logger(__name__)

ToolRef = Union[Tool, str]


class DependencyProbe:
    def __init__(
        self,
        detectors: Optional[Mapping[Tool, CliDetector]] = None,
        cache: Optional[DetectionCache] = None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        path_hints: Optional[Mapping[Tool, Optional[Path]]] = None,
    ):
        self._detectors: Dict[Tool, CliDetector] = dict(
            detectors if detectors is not None else default_detectors()
        )
        self._cache = cache if cache is not None else DetectionCache(
            ttl=DETECTION_CACHE_TTL_SECONDS
        )
        self._probe_timeout = probe_timeout
        self._path_hints: Dict[Tool, Optional[Path]] = dict(path_hints or {})

    @property
    def tools(self) -> List[Tool]:
        return list(self._detectors)

    @property
    def cache(self) -> DetectionCache:
        return self._cache

    def set_path_hints(self, hints: Mapping[Tool, Optional[Path]]) -> None:
        """Paths saved from an earlier detection, tried before searching."""
        self._path_hints = dict(hints)

    def detect(self, tool: ToolRef) -> DependencyInfo:
        tool = self._resolve(tool)

        cached = self._cache.get(tool)
        if cached is not None:
            logger.debug(f"Using cached detection result for {tool.value}")
            return cached

        info = self._probe(tool)
        self._cache.put(tool, info)
        return info

    def detect_all(self) -> Dict[Tool, DependencyInfo]:
        """Probe every tool concurrently; cached tools are not probed again."""
        results: Dict[Tool, DependencyInfo] = {}
        pending: List[Tool] = []
        for tool in self._detectors:
            cached = self._cache.get(tool)
            if cached is not None:
                results[tool] = cached
            else:
                pending.append(tool)

        if pending:
            results.update(self._probe_concurrently(pending))

        return {tool: results[tool] for tool in self._detectors}

    def _probe_concurrently(self, tools: List[Tool]) -> Dict[Tool, DependencyInfo]:
        results: Dict[Tool, DependencyInfo] = {}
        executor = ThreadPoolExecutor(max_workers=len(tools), thread_name_prefix="probe")
        try:
            futures = {executor.submit(self._probe, tool): tool for tool in tools}
            done, not_done = wait(futures, timeout=self._probe_timeout)

            for future in done:
                tool = futures[future]
                try:
                    results[tool] = future.result()
                except Exception as e:
                    logger.exception(f"Unexpected error detecting {tool.value}: {e}")
                    results[tool] = not_installed(
                        tool, error=f"{tool.display_name} detection failed: {e}"
                    )

            for future in not_done:
                tool = futures[future]
                future.cancel()
                logger.warning(
                    f"{tool.display_name} detection timed out after {self._probe_timeout}s"
                )
                results[tool] = not_installed(
                    tool,
                    error=f"{tool.display_name} detection timed out after {self._probe_timeout:g}s",
                )
        finally:
            # A stuck probe must not hold up the join
            executor.shutdown(wait=False, cancel_futures=True)

        for tool, info in results.items():
            self._cache.put(tool, info)
        return results

    def _probe(self, tool: Tool) -> DependencyInfo:
        detector = self._detectors[tool]
        try:
            return detector.detect(self._path_hints.get(tool))
        except (DetectionSoftError, OSError, subprocess.SubprocessError) as e:
            logger.warning(f"{tool.display_name} detection failed: {e}")
            return not_installed(tool, error=f"{tool.display_name} detection failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error detecting {tool.value}: {e}")
            return not_installed(tool, error=f"{tool.display_name} detection failed: {e}")

    def instructions(self, tool: ToolRef) -> str:
        return get_instructions(Tool.parse(tool))

    def quick_install_command(self, tool: ToolRef) -> Optional[str]:
        return extract_quick_install_command(self.instructions(tool))

    def clear_cache(self, tool: Optional[ToolRef] = None) -> None:
        if tool is None or tool == "*":
            self._cache.clear()
        else:
            self._cache.clear(Tool.parse(tool))

    def _resolve(self, tool: ToolRef) -> Tool:
        tool = Tool.parse(tool)
        if tool not in self._detectors:
            raise ValueError(f"No detector registered for {tool.value}")
        return tool
