"""
NAVTREE CORE - Central exports for the navigation graph.

This module provides access to:
- Schemas (PageNode, Transition, NavGraph, NavSettings, SitemapTree)
- Tree reconstruction and forest statistics
"""

from core.errors import (
    NavTreeError,
    StorageError,
    StorageUnavailableError,
    StorageCorruptionError,
    SettingsError,
)
from core.schemas import (
    PageNode,
    Transition,
    NavGraph,
    NavSettings,
    RouteChange,
    SitemapTree,
    empty_graph,
)
from core.locations import normalize_url, display_path, label_for
from core.titles import strip_branding, should_replace
from core.tree_builder import build_tree, tree_stats, TreeStats

__all__ = [
    # Errors
    "NavTreeError",
    "StorageError",
    "StorageUnavailableError",
    "StorageCorruptionError",
    "SettingsError",
    # Schemas
    "PageNode",
    "Transition",
    "NavGraph",
    "NavSettings",
    "RouteChange",
    "SitemapTree",
    "empty_graph",
    # Locations & titles
    "normalize_url",
    "display_path",
    "label_for",
    "strip_branding",
    "should_replace",
    # Tree
    "build_tree",
    "tree_stats",
    "TreeStats",
]
