"""
NAVTREE TREE BUILDER - Collapses the navigation graph into a sitemap forest.

The forest is rebuilt from scratch on every request by replaying the
transition ledger in time order. Each transition carries the settings that
were active when it was recorded:

- nestingEnabled=True:  the page that was opened goes under the page where
  the click happened.
- nestingEnabled=False: the opened page is promoted instead: it goes under
  the ancestor `backSteps` levels above the clicked page in the tree as it
  stands at that point of the replay (or becomes a root if the chain is
  shorter than that).

The latest transition into a page decides its parent. build_tree never
raises and never mutates its input.

Degenerate replays (cycles created by back-and-forth navigation) are
resolved by fallbacks rather than errors:
1. If no root is left, every page with children becomes a root.
2. Any page still unreachable from a root becomes a root as well, so the
   forest always covers every recorded page.

Analysis helpers convert the forest to a rustworkx.PyDiGraph for depth and
cycle queries.
"""
from typing import Dict, List, Optional

import msgspec
import rustworkx as rx

from core.locations import normalize_url
from core.schemas import NavGraph, SitemapTree


class _Forest:
    """Mutable parent/children bookkeeping used during replay."""

    def __init__(self):
        # dicts double as insertion-ordered sets so output order is stable
        self.parent_of: Dict[str, Optional[str]] = {}
        self.children_of: Dict[str, Dict[str, None]] = {}
        self.roots: Dict[str, None] = {}

    def register(self, url: str) -> None:
        if url not in self.parent_of:
            self.set_parent(url, None)

    def set_parent(self, child: str, parent: Optional[str]) -> None:
        if child in self.parent_of:
            old_parent = self.parent_of[child]
            if old_parent is None:
                self.roots.pop(child, None)
            else:
                self.children_of.get(old_parent, {}).pop(child, None)

        self.parent_of[child] = parent
        if parent is None:
            self.roots[child] = None
        else:
            self.children_of.setdefault(parent, {})[child] = None
            self.roots.pop(child, None)

    def ancestor(self, url: str, steps: int) -> Optional[str]:
        """Walk `steps` hops up from `url`; None if a root is hit first."""
        current = url
        visited: Dict[str, int] = {}
        hop = 0
        while hop < steps:
            if current in visited:
                # Parent chain loops; skip whole laps
                lap = hop - visited[current]
                hop += (steps - hop) // lap * lap
                visited.clear()
                if hop >= steps:
                    break
            visited[current] = hop
            parent = self.parent_of.get(current)
            if parent is None:
                return None
            current = parent
            hop += 1
        return current


def build_tree(graph: NavGraph) -> SitemapTree:
    """
    Reconstruct the sitemap forest for `graph`.

    Args:
        graph: Snapshot of the navigation graph (not modified)

    Returns:
        SitemapTree whose roots and children cover every recorded page
    """
    forest = _Forest()
    known: Dict[str, None] = {}

    for url in graph.nodes:
        key = normalize_url(url)
        if key:
            known[key] = None
            forest.roots[key] = None

    # sorted() is stable: equal timestamps keep ledger order
    for transition in sorted(graph.transitions, key=lambda t: t.at or 0):
        source = normalize_url(transition.source)
        target = normalize_url(transition.target)
        if not source or not target or source == target:
            continue

        forest.register(source)
        forest.register(target)
        known.setdefault(source, None)
        known.setdefault(target, None)

        if transition.nesting_enabled:
            attach_to = source
        else:
            attach_to = forest.ancestor(source, max(1, transition.back_steps))

        if attach_to == target:
            continue

        forest.set_parent(target, attach_to)

    children = {
        parent: list(kids) for parent, kids in forest.children_of.items() if kids
    }

    roots = dict(forest.roots)
    for kids in children.values():
        for child in kids:
            roots.pop(child, None)

    if not roots:
        roots = {parent: None for parent in children}

    _cover_unreachable(known, roots, children)

    return SitemapTree(roots=list(roots), children_of=children)


def _cover_unreachable(
    known: Dict[str, None],
    roots: Dict[str, None],
    children: Dict[str, List[str]],
) -> None:
    """Promote pages trapped in cycles to roots, in first-seen order."""
    reached = set()
    for root in roots:
        _mark_reachable(root, children, reached)

    for url in known:
        if url not in reached:
            roots[url] = None
            _mark_reachable(url, children, reached)


def _mark_reachable(start: str, children: Dict[str, List[str]], reached: set) -> None:
    stack = [start]
    while stack:
        url = stack.pop()
        if url in reached:
            continue
        reached.add(url)
        stack.extend(children.get(url, []))


# =============================================================================
# ANALYSIS (rustworkx)
# =============================================================================

class TreeStats(msgspec.Struct, kw_only=True, rename="camel"):
    """Shape summary of a reconstructed forest."""
    root_count: int = 0
    page_count: int = 0
    depth: int = 0
    has_cycle: bool = False


def tree_to_digraph(tree: SitemapTree) -> rx.PyDiGraph:
    """
    Convert the forest into a rustworkx directed graph.

    Node payloads are the page urls; edges point parent -> child.
    """
    graph = rx.PyDiGraph()
    index: Dict[str, int] = {}

    def node_index(url: str) -> int:
        if url not in index:
            index[url] = graph.add_node(url)
        return index[url]

    for root in tree.roots:
        node_index(root)
    for parent, kids in tree.children_of.items():
        parent_idx = node_index(parent)
        for child in kids:
            graph.add_edge(parent_idx, node_index(child), None)
    return graph


def tree_stats(tree: SitemapTree) -> TreeStats:
    """Count roots and pages, measure depth, and flag cycles."""
    graph = tree_to_digraph(tree)
    if graph.num_nodes() == 0:
        return TreeStats()

    has_cycle = not rx.is_directed_acyclic_graph(graph)
    if has_cycle:
        # Depth is only meaningful on the acyclic part; count BFS levels from roots
        depth = _bfs_depth(tree)
    else:
        # dag_longest_path_length counts edges
        depth = rx.dag_longest_path_length(graph) + 1

    return TreeStats(
        root_count=len(tree.roots),
        page_count=graph.num_nodes(),
        depth=depth,
        has_cycle=has_cycle,
    )


def _bfs_depth(tree: SitemapTree) -> int:
    seen = set(tree.roots)
    level = list(tree.roots)
    depth = 0
    while level:
        depth += 1
        next_level = []
        for url in level:
            for child in tree.children(url):
                if child not in seen:
                    seen.add(child)
                    next_level.append(child)
        level = next_level
    return depth
