"""
NAVTREE GRAPH STORE - Merges navigation events into the durable graph.

Every ingested event is a (from, to, title) triple from the capture layer.
Ingestion is read-modify-write against the key-value store:

    read graph -> read settings (once) -> apply_route_change -> write graph

apply_route_change is the whole merge policy and works on an explicitly
passed NavGraph value, so it can be exercised without any storage.

Atomicity:
    The stored graph is replaced only by a complete write. If reading the
    settings or writing the graph fails, StorageUnavailableError propagates
    and the stored graph is unchanged.

Thread Safety:
    NOT thread-safe. Events are delivered one at a time by the relay; run
    one ingest to completion before starting the next.
"""
import logging
from typing import Optional

from core.locations import normalize_url
from core.schemas import (
    GRAPH_KEY,
    NavGraph,
    NavSettings,
    PageNode,
    RouteChange,
    SitemapTree,
    Transition,
    clamp_back_steps,
    decode_graph,
    empty_graph,
    encode_graph,
    now_ms,
)
from core.titles import should_replace, strip_branding
from core.tree_builder import build_tree
from infrastructure.event_bus import EventBus, EventType, NavEvent, get_event_bus
from infrastructure.kv_store import KeyValueStore
from infrastructure.settings import SettingsStore

logger = logging.getLogger(__name__)


# =============================================================================
# MERGE POLICY (pure)
# =============================================================================

def record_visit(graph: NavGraph, url: str, title: str, now: int) -> PageNode:
    """Create the node for `url` or count another visit to it."""
    node = graph.nodes.get(url)
    if node is None:
        node = PageNode(url=url, title=title, first_seen=now, last_seen=now, visit_count=1)
        graph.nodes[url] = node
        return node

    node.last_seen = max(node.last_seen, now)
    node.first_seen = min(node.first_seen, node.last_seen)
    node.visit_count = max(node.visit_count, 0) + 1
    if title and should_replace(node.title, title):
        node.title = title
    return node


def record_transition(
    graph: NavGraph,
    source: str,
    target: str,
    now: int,
    settings: NavSettings,
) -> Transition:
    """Count the edge and append a transition carrying a settings snapshot."""
    targets = graph.edges.setdefault(source, {})
    targets[target] = targets.get(target, 0) + 1

    transition = Transition(
        source=source,
        target=target,
        at=now,
        nesting_enabled=bool(settings.nesting_enabled),
        back_steps=clamp_back_steps(settings.back_steps),
    )
    graph.transitions.append(transition)
    return transition


def apply_route_change(
    graph: NavGraph,
    source: Optional[str],
    target: Optional[str],
    raw_title: Optional[str],
    now: int,
    settings: NavSettings,
) -> NavGraph:
    """
    Merge one navigation event into `graph` (in place) and return it.

    Args:
        graph: Graph value to update
        source: Location navigated from (None for initial loads/back-forward)
        target: Location navigated to; empty means the event is ignored
        raw_title: Document title as captured, branding included
        now: Event time in epoch milliseconds
        settings: Settings in effect for this event

    Returns:
        The same graph, updated
    """
    to_key = normalize_url(target)
    if not to_key:
        return graph

    record_visit(graph, to_key, strip_branding(raw_title), now)

    from_key = normalize_url(source)
    if from_key and from_key != to_key:
        record_transition(graph, from_key, to_key, now, settings)

    return graph


# =============================================================================
# STORE
# =============================================================================

class NavigationGraphStore:
    """
    Owner of the persisted navigation graph.

    Usage:
        store = NavigationGraphStore(SQLiteKeyValueStore("data/navtree.db"))
        store.ingest("https://app.example.com/", "https://app.example.com/reports", "Acme | Reports")
        tree = store.build_tree()
    """

    def __init__(
        self,
        kv: KeyValueStore,
        settings: Optional[SettingsStore] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._kv = kv
        self._event_bus = event_bus
        self.settings = settings or SettingsStore(kv, event_bus=event_bus)

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    def read(self) -> NavGraph:
        """Current graph, or the empty shape if nothing has been stored."""
        return decode_graph(self._kv.get(GRAPH_KEY))

    def ingest(
        self,
        source: Optional[str],
        target: Optional[str],
        raw_title: Optional[str] = "",
        now: Optional[int] = None,
    ) -> Optional[NavGraph]:
        """
        Record one navigation event and persist the result.

        Returns:
            The graph as persisted, or None when `target` is empty (the
            event is ignored without touching storage)

        Raises:
            StorageUnavailableError: If the store cannot be read or written
            StorageCorruptionError: If the stored graph cannot be decoded
        """
        to_key = normalize_url(target)
        if not to_key:
            logger.debug("Ignoring route change without a target")
            return None

        now = now_ms() if now is None else now
        graph = self.read()
        created = to_key not in graph.nodes
        ledger_size = len(graph.transitions)

        # Snapshot is taken only when a transition is recorded
        from_key = normalize_url(source)
        settings = self.settings.read() if from_key and from_key != to_key else NavSettings()

        apply_route_change(graph, source, target, raw_title, now, settings)
        self._kv.set(GRAPH_KEY, encode_graph(graph))

        node = graph.nodes[to_key]
        logger.debug(f"Ingested {from_key or '-'} -> {to_key} (visits={node.visit_count})")
        self._publish_ingest(graph, node, created, ledger_size, now)
        return graph

    def ingest_event(self, event: RouteChange, now: Optional[int] = None) -> Optional[NavGraph]:
        """Ingest a RouteChange as delivered by the relay."""
        return self.ingest(event.source, event.target, event.title, now=now)

    def reset(self) -> None:
        """Delete nodes, edges and transitions irreversibly."""
        self._kv.remove(GRAPH_KEY)
        logger.info("Navigation graph cleared")
        self.event_bus.publish(NavEvent(
            type=EventType.GRAPH_RESET,
            payload={},
            timestamp=now_ms(),
            source="graph_store",
        ))

    def build_tree(self) -> SitemapTree:
        """Reconstruct the sitemap forest from the current graph."""
        return build_tree(self.read())

    def _publish_ingest(
        self,
        graph: NavGraph,
        node: PageNode,
        created: bool,
        ledger_size: int,
        now: int,
    ) -> None:
        bus = self.event_bus
        bus.publish(NavEvent(
            type=EventType.PAGE_CREATED if created else EventType.PAGE_VISITED,
            payload={"url": node.url, "title": node.title, "visitCount": node.visit_count},
            timestamp=now,
            source="graph_store",
        ))
        for transition in graph.transitions[ledger_size:]:
            bus.publish(NavEvent(
                type=EventType.TRANSITION_RECORDED,
                payload={
                    "from": transition.source,
                    "to": transition.target,
                    "nestingEnabled": transition.nesting_enabled,
                    "backSteps": transition.back_steps,
                },
                timestamp=transition.at,
                source="graph_store",
            ))

    def __repr__(self) -> str:
        return f"NavigationGraphStore({self._kv!r})"


def create_memory_store(event_bus: Optional[EventBus] = None) -> NavigationGraphStore:
    """Store backed by an in-memory key-value store."""
    from infrastructure.kv_store import MemoryKeyValueStore
    return NavigationGraphStore(MemoryKeyValueStore(), event_bus=event_bus)


__all__ = [
    "NavigationGraphStore",
    "apply_route_change",
    "record_visit",
    "record_transition",
    "create_memory_store",
    "empty_graph",
]
