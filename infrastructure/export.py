"""
Graph export - Polars frames and files for offline analysis.

Three tables mirror the stored graph:
- nodes:        url, title, first_seen, last_seen, visit_count
- edges:        source, target, count
- transitions:  source, target, at, nesting_enabled, back_steps (ledger order)

Formats: parquet, csv, arrow (IPC).
"""
import logging
from pathlib import Path
from typing import Dict

import polars as pl

from core.schemas import NavGraph

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("parquet", "csv", "arrow")

_NODE_SCHEMA = {
    "url": pl.Utf8,
    "title": pl.Utf8,
    "first_seen": pl.Int64,
    "last_seen": pl.Int64,
    "visit_count": pl.Int64,
}
_EDGE_SCHEMA = {"source": pl.Utf8, "target": pl.Utf8, "count": pl.Int64}
_TRANSITION_SCHEMA = {
    "source": pl.Utf8,
    "target": pl.Utf8,
    "at": pl.Int64,
    "nesting_enabled": pl.Boolean,
    "back_steps": pl.Int64,
}


def nodes_frame(graph: NavGraph) -> pl.DataFrame:
    """One row per page."""
    nodes = list(graph.nodes.values())
    return pl.DataFrame({
        "url": [n.url for n in nodes],
        "title": [n.title for n in nodes],
        "first_seen": [n.first_seen for n in nodes],
        "last_seen": [n.last_seen for n in nodes],
        "visit_count": [n.visit_count for n in nodes],
    }, schema=_NODE_SCHEMA)


def edges_frame(graph: NavGraph) -> pl.DataFrame:
    """One row per observed (source, target) pair."""
    rows = [
        (source, target, count)
        for source, targets in graph.edges.items()
        for target, count in targets.items()
    ]
    return pl.DataFrame({
        "source": [r[0] for r in rows],
        "target": [r[1] for r in rows],
        "count": [r[2] for r in rows],
    }, schema=_EDGE_SCHEMA)


def transitions_frame(graph: NavGraph) -> pl.DataFrame:
    """The transition ledger in insertion order."""
    ledger = graph.transitions
    return pl.DataFrame({
        "source": [t.source for t in ledger],
        "target": [t.target for t in ledger],
        "at": [t.at for t in ledger],
        "nesting_enabled": [t.nesting_enabled for t in ledger],
        "back_steps": [t.back_steps for t in ledger],
    }, schema=_TRANSITION_SCHEMA)


def export_graph(graph: NavGraph, output_dir: Path | str, fmt: str = "parquet") -> Dict[str, Path]:
    """
    Write nodes, edges and transitions tables into `output_dir`.

    Returns:
        Mapping of table name to written file path

    Raises:
        ValueError: If `fmt` is not a supported format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt} (expected one of {', '.join(EXPORT_FORMATS)})")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    frames = {
        "nodes": nodes_frame(graph),
        "edges": edges_frame(graph),
        "transitions": transitions_frame(graph),
    }
    written: Dict[str, Path] = {}
    for name, frame in frames.items():
        path = output_dir / f"{name}.{fmt}"
        if fmt == "parquet":
            frame.write_parquet(path)
        elif fmt == "csv":
            frame.write_csv(path)
        else:
            frame.write_ipc(path)
        written[name] = path

    logger.info(f"Exported {len(graph.nodes)} pages to {output_dir} ({fmt})")
    return written
