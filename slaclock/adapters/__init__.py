"""
Adapters layer - Storage and issue history sources.
"""

from .json_event_source import JsonEventSource
from .memory_store import InMemoryStore

__all__ = ["InMemoryStore", "JsonEventSource"]
