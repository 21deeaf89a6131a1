import threading
import time
from typing import Callable, Dict, Optional, Tuple

from ...utils.logger import get_logger
from .models import DependencyInfo, Tool

logger = get_logger(__name__)

Clock = Callable[[], float]


class DetectionCache:
    """
    Per-tool detection results.

    Entries stay until cleared explicitly. A ttl can be configured, in which
    case entries older than ttl seconds (measured with clock) are treated
    as absent.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Clock = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[Tool, Tuple[DependencyInfo, float]] = {}
        self._lock = threading.Lock()

    def get(self, tool: Tool) -> Optional[DependencyInfo]:
        with self._lock:
            entry = self._entries.get(tool)
            if entry is None:
                return None
            info, stored_at = entry
            if self._ttl is not None and self._clock() - stored_at >= self._ttl:
                del self._entries[tool]
                return None
            return info

    def put(self, tool: Tool, info: DependencyInfo) -> None:
        with self._lock:
            self._entries[tool] = (info, self._clock())

    def clear(self, tool: Optional[Tool] = None) -> None:
        with self._lock:
            if tool is None:
                self._entries.clear()
                logger.debug("Cleared all detection cache")
            else:
                self._entries.pop(tool, None)
                logger.debug(f"Cleared detection cache for {tool.value}")

    def __contains__(self, tool: Tool) -> bool:
        return self.get(tool) is not None
