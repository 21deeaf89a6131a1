"""
Installation progress events and the channel that delivers them.

Handlers run synchronously on the thread driving the run, in publish order.
Callers that need delivery on another thread (a Qt UI) re-emit from the
handler, see core.workers.
"""

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, Optional

from ...utils.logger import get_logger

logger = get_logger(__name__)


class InstallationStage(str, Enum):
    INITIALIZING = "initializing"
    SELECTING_DIRECTORY = "selecting_directory"
    CREATING_STRUCTURE = "creating_structure"
    DETECTING_DEPENDENCIES = "detecting_dependencies"
    INSTALLING = "installing"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self) if self is not InstallationStage.ERROR else len(_STAGE_ORDER)

    @property
    def percentage(self) -> int:
        return STAGE_PERCENTAGES.get(self, 0)

    @property
    def is_terminal(self) -> bool:
        return self in (InstallationStage.COMPLETE, InstallationStage.ERROR)


_STAGE_ORDER = [
    InstallationStage.INITIALIZING,
    InstallationStage.SELECTING_DIRECTORY,
    InstallationStage.CREATING_STRUCTURE,
    InstallationStage.DETECTING_DEPENDENCIES,
    InstallationStage.INSTALLING,
    InstallationStage.FINALIZING,
    InstallationStage.COMPLETE,
]

STAGE_PERCENTAGES = {
    InstallationStage.INITIALIZING: 0,
    InstallationStage.SELECTING_DIRECTORY: 10,
    InstallationStage.CREATING_STRUCTURE: 20,
    InstallationStage.DETECTING_DEPENDENCIES: 40,
    InstallationStage.INSTALLING: 60,
    InstallationStage.FINALIZING: 80,
    InstallationStage.COMPLETE: 100,
}


@dataclass(frozen=True)
class InstallationProgress:
    stage: InstallationStage
    message: str
    progress_percentage: int

    def __post_init__(self):
        if not 0 <= self.progress_percentage <= 100:
            raise ValueError(
                f"progress_percentage must be within [0, 100], got {self.progress_percentage}"
            )


ProgressHandler = Callable[[InstallationProgress], None]


class Subscription:
    """Handle returned by ProgressChannel.subscribe."""

    def __init__(self, channel: "ProgressChannel", token: int):
        self._channel = channel
        self.token = token

    @property
    def active(self) -> bool:
        return self._channel.is_subscribed(self)

    def unsubscribe(self) -> bool:
        return self._channel.unsubscribe(self)


class ProgressChannel:
    def __init__(self):
        self._handlers: Dict[int, ProgressHandler] = {}
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._last: Optional[InstallationProgress] = None

    @property
    def last_event(self) -> Optional[InstallationProgress]:
        return self._last

    def subscribe(self, handler: ProgressHandler) -> Subscription:
        with self._lock:
            token = next(self._tokens)
            self._handlers[token] = handler
        return Subscription(self, token)

    def unsubscribe(self, subscription: Subscription) -> bool:
        with self._lock:
            return self._handlers.pop(subscription.token, None) is not None

    def is_subscribed(self, subscription: Subscription) -> bool:
        with self._lock:
            return subscription.token in self._handlers

    @contextmanager
    def subscribed(self, handler: ProgressHandler) -> Iterator[Subscription]:
        """Subscribe for the duration of the block, even if it raises."""
        subscription = self.subscribe(handler)
        try:
            yield subscription
        finally:
            subscription.unsubscribe()

    def publish(self, progress: InstallationProgress) -> None:
        with self._lock:
            handlers = list(self._handlers.values())
            self._last = progress

        logger.debug(
            f"Progress [{progress.stage.value}] {progress.progress_percentage}%: {progress.message}"
        )
        for handler in handlers:
            try:
                handler(progress)
            except Exception:
                # One faulty subscriber must not stop delivery to the others
                logger.exception("Progress handler raised")
