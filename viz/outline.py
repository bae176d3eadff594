"""
NAVTREE OUTLINE - Turns a reconstructed forest into display entries.

This is the data model behind every sitemap view (API, CLI). It resolves
each key to a label ("<title> - <path>"), orders siblings by label, and
stops descending when a page repeats on the current path, so degenerate
cyclic forests still render finitely.

The outline is a flat pre-order list; each entry carries its depth. Chains
thousands of levels deep (paginated "next" clicks) are walked with an
explicit stack and encode as a plain list.

Usage:
    tree = build_tree(graph)
    outline = build_outline(tree, graph.nodes)
    print("\\n".join(render_text(outline)))
"""
from typing import Dict, List, Mapping, Optional, Set

import msgspec

from core.locations import MAX_LABEL_LENGTH, label_for
from core.schemas import PageNode, SitemapTree


class OutlineEntry(msgspec.Struct, kw_only=True, rename="camel"):
    """One rendered page in the sitemap outline."""
    url: str
    label: str
    depth: int = 0                  # 0 for roots
    title: str = ""
    visit_count: int = 0
    child_count: int = 0            # Entries directly below this one
    repeated: bool = False          # Page already appears above on this path


def _sort_key(label: str):
    return (label.casefold(), label)


def build_outline(
    tree: SitemapTree,
    nodes: Mapping[str, PageNode],
    max_label_length: int = MAX_LABEL_LENGTH,
) -> List[OutlineEntry]:
    """
    Build the pre-order outline for every root of `tree`.

    Args:
        tree: Reconstructed forest
        nodes: Node lookup for titles and visit counts
        max_label_length: Bound on the path part of each label

    Returns:
        Entries in display order; an entry's children follow it at depth + 1
    """
    labels: Dict[str, str] = {}

    def label(url: str) -> str:
        if url not in labels:
            labels[url] = label_for(url, nodes, max_label_length)
        return labels[url]

    def ordered(urls: List[str]) -> List[str]:
        return sorted(urls, key=lambda u: _sort_key(label(u)))

    outline: List[OutlineEntry] = []
    path: Set[str] = set()

    # Frames are (url, depth) to enter, or (url, None) to leave a page
    stack: List[tuple] = [(root, 0) for root in reversed(ordered(tree.roots))]
    while stack:
        url, depth = stack.pop()
        if depth is None:
            path.discard(url)
            continue

        node: Optional[PageNode] = nodes.get(url)
        item = OutlineEntry(
            url=url,
            label=label(url),
            depth=depth,
            title=node.title if node else "",
            visit_count=node.visit_count if node else 0,
        )
        outline.append(item)
        if url in path:
            item.repeated = True
            continue

        children = ordered(tree.children(url))
        item.child_count = len(children)
        path.add(url)
        stack.append((url, None))
        stack.extend((child, depth + 1) for child in reversed(children))

    return outline


def render_text(outline: List[OutlineEntry], indent: str = "  ") -> List[str]:
    """Indented plain-text lines for a terminal."""
    return [
        f"{indent * item.depth}- {item.label}{' (repeat)' if item.repeated else ''}"
        for item in outline
    ]


def count_entries(outline: List[OutlineEntry]) -> int:
    """Number of rendered entries, repeats included."""
    return len(outline)
