"""
Pytest configuration and shared fixtures for the navtree test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Give every test a fresh event bus and no shared API store."""
    from infrastructure.event_bus import reset_event_bus
    import api.routes as routes

    reset_event_bus()
    routes.set_store(None)

    yield

    reset_event_bus()
    routes.set_store(None)


@pytest.fixture
def memory_kv():
    """Provide an empty in-memory key-value store."""
    from infrastructure.kv_store import MemoryKeyValueStore
    return MemoryKeyValueStore()


@pytest.fixture
def store(memory_kv):
    """Provide a NavigationGraphStore over an in-memory key-value store."""
    from core.graph_store import NavigationGraphStore
    return NavigationGraphStore(memory_kv)


@pytest.fixture
def sqlite_path(tmp_path):
    """Path for a temporary SQLite database."""
    return tmp_path / "navtree.db"


@pytest.fixture
def make_graph():
    """
    Build a NavGraph from compact transition tuples.

    Each tuple is (from, to) or (from, to, nesting_enabled, back_steps);
    `at` is the tuple's position, so ledger order is time order.
    """
    from core.schemas import NavGraph, PageNode, Transition

    def _make(*transitions, nodes=None):
        graph = NavGraph()
        for i, entry in enumerate(transitions):
            source, target = entry[0], entry[1]
            nesting = entry[2] if len(entry) > 2 else True
            steps = entry[3] if len(entry) > 3 else 1
            graph.transitions.append(Transition(
                source=source, target=target, at=i + 1,
                nesting_enabled=nesting, back_steps=steps,
            ))
            for url in (source, target):
                graph.nodes.setdefault(url, PageNode(url=url, first_seen=i + 1, last_seen=i + 1))
        for url in nodes or ():
            graph.nodes.setdefault(url, PageNode(url=url))
        return graph

    return _make
