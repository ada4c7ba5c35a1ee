"""Global test fixtures and utilities for progression engine tests"""
import pytest
from datetime import datetime, timedelta, timezone

from progression_engine.gamification.catalog import build_default_catalog
from progression_engine.gamification.events import EventNotifier
from progression_engine.services.progression_service import ProgressionService
from progression_engine.store.identity import KeyValueIdentityStore
from progression_engine.store.memory import InMemoryKeyValueStore


class FakeClock:
    """Callable clock that tests move forward explicitly"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def start_time():
    """Fixed reference time for deterministic tests"""
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    return FakeClock(start_time)


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def identity_store(kv_store):
    return KeyValueIdentityStore(kv_store, timeout=1.0)


@pytest.fixture
async def user_id(identity_store, test_user_id, start_time):
    """A user with a fresh progression record who is signed in"""
    await identity_store.create_user(test_user_id, created_at=start_time)
    await identity_store.sign_in(test_user_id)
    return test_user_id


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def notifier():
    return EventNotifier()


@pytest.fixture
def events(notifier):
    """Every event published through ``notifier``, in order"""
    received = []
    notifier.subscribe(received.append)
    return received


@pytest.fixture
def feedback_calls():
    return []


@pytest.fixture
def service(identity_store, notifier, clock, feedback_calls):
    return ProgressionService(
        identity_store,
        catalog=build_default_catalog(),
        notifier=notifier,
        feedback=feedback_calls.append,
        clock=clock,
    )
