"""
NAVTREE INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- kv_store: SQLite and in-memory key-value persistence
- settings: Navigation settings record (init-on-first-read, clamped writes)
- event_bus: Pub/sub notifications for graph and settings changes
- config: TOML configuration loading
- export: Polars-based table export
"""

from infrastructure.kv_store import KeyValueStore, SQLiteKeyValueStore, MemoryKeyValueStore
from infrastructure.event_bus import EventBus, EventType, NavEvent, get_event_bus
from infrastructure.config import AppConfig, load_config

__all__ = [
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "MemoryKeyValueStore",
    "EventBus",
    "EventType",
    "NavEvent",
    "get_event_bus",
    "AppConfig",
    "load_config",
]
