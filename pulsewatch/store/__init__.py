"""Persistence gateway — abstract store plus an in-memory implementation."""

from pulsewatch.store.base import ChannelSource, Store
from pulsewatch.store.memory import InMemoryStore

__all__ = ["ChannelSource", "InMemoryStore", "Store"]
