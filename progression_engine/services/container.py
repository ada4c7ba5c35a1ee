"""
Service Container - Dependency Injection Container

Wires the identity store, event plumbing and ProgressionService together.
Services are lazy-loaded on first access. Each container is independent, so
tests and embedding hosts can hold as many as they need.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Optional
import logging

from progression_engine.gamification.catalog import AchievementCatalog
from progression_engine.gamification.events import EventBus, EventNotifier
from progression_engine.gamification.feedback import CelebrationFeedback, LoggingFeedback
from progression_engine.store.base import IdentityStore, KeyValueStore
from progression_engine.store.identity import KeyValueIdentityStore
from progression_engine.store.memory import InMemoryKeyValueStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for the progression engine.

    Infrastructure dependencies (identity store, catalog, feedback) are injected.
    """

    # Infrastructure dependencies (injected)
    identity_store: IdentityStore
    catalog: Optional[AchievementCatalog] = None
    feedback: Optional[CelebrationFeedback] = None
    clock: Callable[[], datetime] = _utcnow
    today: Optional[Callable[[], date]] = None

    event_bus: EventBus = field(default_factory=EventBus)

    # Services (lazy-loaded via properties)
    _notifier: Optional[EventNotifier] = field(default=None, init=False, repr=False)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def notifier(self) -> EventNotifier:
        """Get EventNotifier instance (lazy-loaded), forwarding to event_bus"""
        if self._notifier is None:
            self._notifier = EventNotifier(self.event_bus)
            logger.debug("EventNotifier instantiated")
        return self._notifier

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from progression_engine.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(
                self.identity_store,
                catalog=self.catalog,
                notifier=self.notifier,
                feedback=self.feedback,
                clock=self.clock,
                today=self.today,
            )
            logger.debug("ProgressionService instantiated")
        return self._progression_service


def build_container(
    kv_store: Optional[KeyValueStore] = None,
    catalog: Optional[AchievementCatalog] = None,
    feedback: Optional[CelebrationFeedback] = None,
    clock: Callable[[], datetime] = _utcnow,
    today: Optional[Callable[[], date]] = None,
) -> ServiceContainer:
    """
    Build a container over ``kv_store`` (in-memory when omitted).

    Args:
        kv_store: Durable key-value backend for progression records
        catalog: Achievement definitions (built-in set when omitted)
        feedback: Celebration feedback sink (logs by default)
        clock: Returns the current UTC time
        today: Returns the calendar day used for streaks (ACTIVITY_TIMEZONE by default)

    Returns:
        ServiceContainer: The initialized container
    """
    identity_store = KeyValueIdentityStore(kv_store if kv_store is not None else InMemoryKeyValueStore())
    container = ServiceContainer(
        identity_store=identity_store,
        catalog=catalog,
        feedback=feedback if feedback is not None else LoggingFeedback(),
        clock=clock,
        today=today,
    )
    logger.info("Service container initialized")
    return container
