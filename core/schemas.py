"""
NAVTREE SCHEMAS - The shapes that flow between capture, store and display.

This module defines the data structures of the navigation graph:
- PageNode: one visited location and its observed metadata
- Transition: one immutable navigation event with its settings snapshot
- NavGraph: nodes + edge counts + the append-only transition ledger
- NavSettings: the nesting/promotion settings record
- RouteChange: the raw ingestion event produced by the capture layer
- SitemapTree: the reconstructed forest handed to display surfaces
- Serialization helpers for the storage boundary

Design Principles:
1. STRICT TYPING: msgspec.Struct, validated once when decoding stored data
2. CAMELCASE ON THE WIRE: stored/served field names match the capture layer
   (firstSeen, visitCount, nestingEnabled, ...); Python attributes are snake_case
3. DEFAULTS AT THE BOUNDARY: missing collections and fields are filled in
   by the decoder, never patched ad hoc at read sites
4. IMMUTABLE HISTORY: Transition is frozen; settings are copied into it
"""
import time
from typing import Any, Dict, List, Optional

import msgspec

from core.errors import StorageCorruptionError


# =============================================================================
# STORAGE KEYS & DEFAULTS
# =============================================================================

GRAPH_KEY = "sitemapGraph"
SETTINGS_KEY = "navTreeSettings"

DEFAULT_NESTING_ENABLED = True
DEFAULT_BACK_STEPS = 1


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def clamp_back_steps(value) -> int:
    """Coerce a back-step count into a positive integer (falls back to 1)."""
    try:
        steps = int(value)
    except (TypeError, ValueError):
        return DEFAULT_BACK_STEPS
    return max(1, steps)


# =============================================================================
# GRAPH STRUCTURES
# =============================================================================

class PageNode(msgspec.Struct, kw_only=True, rename="camel"):
    """
    One distinct normalized location.

    `url` is the normalized key and never changes after creation.
    `title` is best-effort and may be upgraded by later visits.
    """
    url: str = ""
    title: str = ""
    first_seen: int = 0
    last_seen: int = 0
    visit_count: int = 1


class Transition(
    msgspec.Struct,
    kw_only=True,
    frozen=True,
    rename={
        "source": "from",
        "target": "to",
        "nesting_enabled": "nestingEnabled",
        "back_steps": "backSteps",
    },
):
    """
    One recorded navigation from `source` to `target`.

    The settings in effect when the event was ingested are copied in, so
    later settings changes never rewrite how old navigations are nested.
    """
    source: str
    target: str
    at: int = 0
    nesting_enabled: bool = DEFAULT_NESTING_ENABLED
    back_steps: int = DEFAULT_BACK_STEPS


class NavGraph(msgspec.Struct, kw_only=True):
    """Nodes keyed by normalized url, sparse edge counts, transition ledger."""
    nodes: Dict[str, PageNode] = msgspec.field(default_factory=dict)
    edges: Dict[str, Dict[str, int]] = msgspec.field(default_factory=dict)
    transitions: List[Transition] = msgspec.field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges and not self.transitions

    def edge_count(self, source: str, target: str) -> int:
        return self.edges.get(source, {}).get(target, 0)


def empty_graph() -> NavGraph:
    """The documented initial shape: no nodes, no edges, no transitions."""
    return NavGraph()


# =============================================================================
# SETTINGS
# =============================================================================

class NavSettings(msgspec.Struct, kw_only=True, rename="camel"):
    """
    Nesting settings, read once per ingested event.

    nesting_enabled=True nests a page directly under the page it was opened
    from. When False, the page is promoted `back_steps` levels up the
    current tree instead.
    """
    nesting_enabled: bool = DEFAULT_NESTING_ENABLED
    back_steps: int = DEFAULT_BACK_STEPS

    def __post_init__(self):
        self.back_steps = clamp_back_steps(self.back_steps)


# =============================================================================
# EVENTS & TREE
# =============================================================================

class RouteChange(
    msgspec.Struct,
    kw_only=True,
    rename={"source": "from", "target": "to"},
):
    """
    Raw navigation event as produced by the capture layer.

    Fields are loosely typed on the wire: null or missing values become
    empty, and scalars are stringified, so odd events reach the store's
    no-op and fallback paths instead of failing to decode.
    """
    target: Any = ""
    source: Any = None
    title: Any = ""

    def __post_init__(self):
        self.target = _as_text(self.target)
        self.source = _as_text(self.source) or None
        self.title = _as_text(self.title)


def _as_text(value) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return value if isinstance(value, str) else str(value)


class SitemapTree(msgspec.Struct, kw_only=True, rename="camel"):
    """
    Reconstructed forest.

    References nodes by key only; look up labels in NavGraph.nodes.

    Roots and children are disjoint except in cyclic forests: a page
    trapped in a navigation cycle is promoted to a root so it stays
    reachable, and may still be listed as another page's child.
    Walkers must track visited pages.
    """
    roots: List[str] = msgspec.field(default_factory=list)
    children_of: Dict[str, List[str]] = msgspec.field(default_factory=dict)

    def children(self, url: str) -> List[str]:
        return self.children_of.get(url, [])


# =============================================================================
# SERIALIZATION (Storage Boundary)
# =============================================================================

_encoder = msgspec.json.Encoder()
_graph_decoder = msgspec.json.Decoder(type=NavGraph)
_settings_decoder = msgspec.json.Decoder(type=NavSettings)


def encode_graph(graph: NavGraph) -> bytes:
    """Serialize a NavGraph to JSON bytes."""
    return _encoder.encode(graph)


def decode_graph(data: Optional[bytes]) -> NavGraph:
    """
    Decode a stored graph, tolerating an absent record.

    Nodes stored without a `url` field take it from their map key.

    Raises:
        StorageCorruptionError: If the record is not valid graph JSON
    """
    if not data:
        return empty_graph()
    try:
        graph = _graph_decoder.decode(data)
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        raise StorageCorruptionError(GRAPH_KEY, e) from e

    for key, node in graph.nodes.items():
        if not node.url:
            node.url = key
    return graph


def encode_settings(settings: NavSettings) -> bytes:
    """Serialize NavSettings to JSON bytes."""
    return _encoder.encode(settings)


def decode_settings(data: Optional[bytes]) -> NavSettings:
    """
    Decode stored settings merged over the defaults.

    Raises:
        StorageCorruptionError: If the record is not valid settings JSON
    """
    if not data:
        return NavSettings()
    try:
        return _settings_decoder.decode(data)
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        raise StorageCorruptionError(SETTINGS_KEY, e) from e


def to_builtins(obj) -> object:
    """Convert any schema struct into JSON-ready builtins (camelCase keys)."""
    return msgspec.to_builtins(obj)
