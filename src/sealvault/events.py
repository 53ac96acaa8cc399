"""Structured operation events.

Coordinators report progress as ``OperationEvent`` records on an
``EventStream``. Nothing in the core reads events back; a host may
subscribe to drive a status display or keep ``RecentEvents`` for a
debug panel. Every event is also written to the module logger.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sealvault.constants import Outcome, Phase

logger = logging.getLogger(__name__)

Subscriber = Callable[["OperationEvent"], None]


@dataclass(frozen=True)
class OperationEvent:
    operation: str
    phase: Phase
    outcome: Outcome
    detail: str = ""
    at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __str__(self) -> str:
        text = f"{self.operation}/{self.phase.value}: {self.outcome.value}"
        return f"{text} ({self.detail})" if self.detail else text


class EventStream:
    """Fan-out of operation events to zero or more subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(
        self,
        operation: str,
        phase: Phase,
        outcome: Outcome,
        detail: str = "",
    ) -> OperationEvent:
        event = OperationEvent(operation, phase, outcome, detail)
        level = logging.WARNING if outcome in (
            Outcome.FAILED, Outcome.DEGRADED, Outcome.RETRYING,
        ) else logging.DEBUG
        logger.log(level, "%s", event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber %r raised; ignoring.", callback)
        return event


class RecentEvents:
    """Bounded tail of events, newest last. Subscribe with ``stream.subscribe(tail)``."""

    def __init__(self, maxlen: int = 10) -> None:
        self._events: deque[OperationEvent] = deque(maxlen=maxlen)

    def __call__(self, event: OperationEvent) -> None:
        self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def snapshot(self) -> list[OperationEvent]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()
