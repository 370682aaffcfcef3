"""
Completion notification channel.

The completion reconciler is the only publisher; the visualization and
export surfaces subscribe. Subscribers are called synchronously in
subscription order. A failing subscriber is logged and does not stop
the others from being notified.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from src.schemas.attribute_schema import AttributeRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionEvent:
    """Payload published once when a session completes."""

    record: Optional[AttributeRecord]
    extraction_failed: bool = False
    session_id: str = ""


CompletionHandler = Callable[[CompletionEvent], None]


class CompletionChannel:
    """Typed publish/subscribe channel for completion events."""

    def __init__(self) -> None:
        self._subscribers: list[CompletionHandler] = []

    def subscribe(self, handler: CompletionHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._subscribers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: CompletionEvent) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                logger.exception("Completion subscriber %r failed", handler)
