"""Identity store and key-value persistence collaborators"""
from progression_engine.store.base import IdentityStore, KeyValueStore
from progression_engine.store.memory import InMemoryKeyValueStore
from progression_engine.store.identity import KeyValueIdentityStore

__all__ = [
    "IdentityStore",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueIdentityStore",
]
