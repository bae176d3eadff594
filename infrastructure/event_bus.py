"""
Lightweight event bus for navigation graph change notifications.

Follows publisher-subscriber pattern so the store does not know who
listens (API broadcasts, logging, tests).

Design Principles:
- Publisher-subscriber pattern (decoupled)
- Supports both sync and async handlers
- Non-blocking (async handlers scheduled via create_task)
- Singleton for global access
- Handler failures never reach the publisher

Usage:
    from infrastructure.event_bus import get_event_bus, NavEvent, EventType

    def on_transition(event: NavEvent):
        print(event.payload["from"], "->", event.payload["to"])

    get_event_bus().subscribe(EventType.TRANSITION_RECORDED, on_transition)
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple
from enum import Enum
import msgspec
import asyncio
from collections import defaultdict
import logging


logger = logging.getLogger("navtree.event_bus")


class EventType(str, Enum):
    """Types of events published by the navigation store."""
    PAGE_CREATED = "page_created"
    PAGE_VISITED = "page_visited"
    TRANSITION_RECORDED = "transition_recorded"
    GRAPH_RESET = "graph_reset"
    SETTINGS_CHANGED = "settings_changed"


class NavEvent(msgspec.Struct, kw_only=True):
    """
    Event emitted when the navigation graph or settings change.

    Attributes:
        type: Type of event
        payload: Event-specific data (url, title, from/to, ...)
        timestamp: Epoch milliseconds of the underlying navigation
        source: Component that published the event ("graph_store", "settings")
    """
    type: EventType
    payload: Dict[str, Any]
    timestamp: int
    source: str


class EventBus:
    """
    Pub/sub hub for navigation events.

    Each event type keeps one ordered list of (handler, is_async) entries;
    handlers run in subscription order.

    Thread Safety:
        NOT thread-safe. Ingestion is serialized, so publishing happens
        from one logical actor at a time.
    """

    def __init__(self):
        self._handlers: Dict[EventType, List[Tuple[Callable, bool]]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def _add(self, event_type: EventType, handler: Callable, is_async: bool) -> None:
        entries = self._handlers[event_type]
        if any(existing == handler for existing, _ in entries):
            return
        entries.append((handler, is_async))
        logger.debug(f"{'Async' if is_async else 'Sync'} handler subscribed to {event_type.value}")

    def subscribe(self, event_type: EventType, handler: Callable[[NavEvent], None]):
        """Subscribe a synchronous handler (duplicates are ignored)."""
        self._add(event_type, handler, is_async=False)

    def subscribe_async(self, event_type: EventType, handler: Callable[[NavEvent], Awaitable[Any]]):
        """Subscribe a coroutine handler; it is scheduled on the running loop."""
        self._add(event_type, handler, is_async=True)

    def publish(self, event: NavEvent):
        """
        Deliver `event` to every handler of its type.

        Sync handlers run inline. Coroutine handlers become tasks on the
        running loop, or are skipped with a warning outside of one.
        Handler exceptions are logged and never reach the caller.
        """
        entries = list(self._handlers.get(event.type, ()))
        logger.debug(f"Publishing {event.type.value} from {event.source} to {len(entries)} handler(s)")

        for handler, is_async in entries:
            if is_async:
                self._schedule(handler, event)
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler for {event.type.value} failed: {e}", exc_info=True)

    def _schedule(self, handler: Callable, event: NavEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; skipped async handler for {event.type.value}")
            return
        task = loop.create_task(handler(event))
        # Loop holds only weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def unsubscribe(self, event_type: EventType, handler: Callable):
        """Remove a handler (must be the same object that subscribed)."""
        entries = self._handlers.get(event_type)
        if entries:
            entries[:] = [entry for entry in entries if entry[0] != handler]

    def clear_subscribers(self, event_type: Optional[EventType] = None):
        """Drop handlers for one event type, or for all types."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return sum(len(entries) for entries in self._handlers.values())
        return len(self._handlers.get(event_type, ()))


# =============================================================================
# PROCESS-WIDE BUS
# =============================================================================

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus, creating it on first use."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Drop the process-wide event bus (tests)."""
    global _event_bus
    _event_bus = None
