"""
NAVTREE VISUALIZATION - Sitemap outlines

This package turns a reconstructed forest into display entries:
- outline: labelled, sorted, cycle-safe outline plus a plain-text renderer
"""

from viz.outline import OutlineEntry, build_outline, render_text, count_entries

__all__ = [
    "OutlineEntry",
    "build_outline",
    "render_text",
    "count_entries",
]
