"""Build lifecycle events for Inkwell.

Callbacks are registered against named events and run synchronously, in
registration order, when the build emits that event. Each callback reports a
HookOutcome instead of logging and swallowing its own failures; the registry
logs the outcomes and hands them back to the build so callers and tests can
inspect them.

Events:
- before_build: Emitted once per build, before content is processed.
- after_build: Emitted once per build, after all output is written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

BEFORE_BUILD = "before_build"
AFTER_BUILD = "after_build"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class HookOutcome:
    """What a lifecycle callback did.

    Attributes:
        hook: Name of the callback.
        status: Success, skipped, or failed-but-continued.
        message: Human-readable summary.
        error: Underlying exception for failed outcomes.
    """

    hook: str
    status: OutcomeStatus
    message: str = ""
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


HookCallback = Callable[[], "HookOutcome | None"]


class EventRegistry:
    """Registry of lifecycle callbacks keyed by event name."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[tuple[str, HookCallback]]] = {}

    def on(self, event: str, callback: HookCallback, name: str | None = None) -> None:
        """Register ``callback`` for ``event``.

        Args:
            event: Event name such as ``before_build``.
            callback: Zero-argument callable returning a HookOutcome or None.
            name: Label used in outcomes; defaults to the callable's name.
        """
        label = name or getattr(callback, "__name__", repr(callback))
        self._callbacks.setdefault(event, []).append((label, callback))

    def emit(self, event: str) -> list[HookOutcome]:
        """Run every callback registered for ``event``.

        Returns:
            One outcome per callback, in registration order.
        """
        outcomes: list[HookOutcome] = []
        for label, callback in self._callbacks.get(event, []):
            outcome = callback()
            if outcome is None:
                outcome = HookOutcome(label, OutcomeStatus.SUCCESS)
            _log_outcome(event, outcome)
            outcomes.append(outcome)
        return outcomes


def _log_outcome(event: str, outcome: HookOutcome) -> None:
    if not outcome.message:
        logger.debug("%s hook %s: %s", event, outcome.hook, outcome.status.value)
    elif outcome.status is OutcomeStatus.FAILED:
        logger.error(outcome.message)
    elif outcome.status is OutcomeStatus.SKIPPED:
        logger.warning(outcome.message)
    else:
        logger.info(outcome.message)
