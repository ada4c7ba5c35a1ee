"""
Event Notifier

In-process publish/subscribe for progression events. Delivery is synchronous,
in subscription order, and a failing subscriber never blocks the others or
the operation that produced the event.
"""

from typing import Any, Callable, Dict, List, Optional
import logging

from progression_engine.exceptions import ErrorCategory, ErrorSeverity
from progression_engine.models.events import ProgressionEvent
from progression_engine.observability.error_reporting import report_error
from progression_engine.observability.metrics import record_subscriber_failure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressionEvent], Any]


class EventBus:
    """Topic based fan-out used by UI and analytics listeners"""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Any], Any]]] = {}

    def on(self, topic: str, callback: Callable[[Any], Any]) -> Callable[[], None]:
        self._listeners.setdefault(topic, []).append(callback)
        return lambda: self.off(topic, callback)

    def off(self, topic: str, callback: Callable[[Any], Any]) -> None:
        callbacks = self._listeners.get(topic)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def emit(self, topic: str, payload: Any = None) -> None:
        for callback in list(self._listeners.get(topic, ())):
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Event bus listener for '{topic}' failed: {e}", exc_info=True)
                record_subscriber_failure(topic)


class EventNotifier:
    """Subscribers receive every ProgressionEvent"""

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._subscribers: List[ProgressCallback] = []
        self.event_bus = event_bus

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """
        Register ``callback``.

        Returns:
            Handle that removes the subscription; calling it twice is harmless
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ProgressionEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Progress subscriber {getattr(callback, '__name__', callback)!r} "
                    f"failed on {event.type} for user {event.user_id}: {e}",
                    exc_info=True
                )
                record_subscriber_failure(event.type)
                report_error(
                    e,
                    category=ErrorCategory.NOTIFICATION,
                    severity=ErrorSeverity.LOW,
                    context={"event_type": event.type, "user_id": event.user_id},
                )

        if self.event_bus is not None:
            self.event_bus.emit(event.type, event.model_dump())
