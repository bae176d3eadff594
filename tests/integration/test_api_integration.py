"""
Integration tests for the navtree HTTP API.

These tests use Starlette's TestClient to simulate real HTTP requests
without requiring a running server.
"""
import pytest
from starlette.testclient import TestClient

import api.routes as routes
from api.routes import create_app
from core.errors import StorageUnavailableError
from core.graph_store import NavigationGraphStore
from core.schemas import GRAPH_KEY, NavGraph, Transition, encode_graph
from infrastructure.config import AppConfig
from infrastructure.kv_store import MemoryKeyValueStore, SQLiteKeyValueStore

HOME = "https://app.example.com/"
REPORTS = "https://app.example.com/reports"
Q3 = "https://app.example.com/reports/q3"


class UnavailableKeyValueStore:
    """Store whose every operation fails."""

    def get(self, key):
        raise StorageUnavailableError("read", key)

    def set(self, key, value):
        raise StorageUnavailableError("write", key)

    def remove(self, key):
        raise StorageUnavailableError("remove", key)


@pytest.fixture
def api_client(monkeypatch):
    """Test client over a fresh in-memory store."""
    monkeypatch.setattr(routes, "_config", AppConfig())
    routes.set_store(NavigationGraphStore(MemoryKeyValueStore()))
    return TestClient(create_app())


def post_route(client, source, target, title=""):
    return client.post("/route-change", json={"from": source, "to": target, "title": title})


# =============================================================================
# HEALTH
# =============================================================================

def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# =============================================================================
# ROUTE CHANGES & GRAPH
# =============================================================================

def test_route_change_is_recorded(api_client):
    assert post_route(api_client, None, HOME, "Acme | Home").json() == {"status": "ok"}
    assert post_route(api_client, HOME, REPORTS + "#top", "Acme | Reports").status_code == 200

    body = api_client.get("/graph").json()

    assert body["status"] == "ok"
    graph = body["graph"]
    assert set(graph["nodes"]) == {HOME, REPORTS}
    assert graph["nodes"][REPORTS]["title"] == "Reports"
    assert graph["nodes"][REPORTS]["visitCount"] == 1
    assert graph["edges"] == {HOME: {REPORTS: 1}}
    transition = graph["transitions"][0]
    assert transition["from"] == HOME
    assert transition["to"] == REPORTS
    assert transition["nestingEnabled"] is True
    assert transition["backSteps"] == 1


def test_route_change_without_target_is_ignored(api_client):
    response = api_client.post("/route-change", json={"from": HOME, "title": "x"})

    assert response.status_code == 200
    assert api_client.get("/graph").json()["graph"]["nodes"] == {}


def test_route_change_with_null_target_is_ignored(api_client):
    response = api_client.post(
        "/route-change", json={"from": "https://e.com/a", "to": None, "title": "x"},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert api_client.get("/graph").json()["graph"]["nodes"] == {}


def test_route_change_with_non_string_title(api_client):
    assert post_route(api_client, None, REPORTS, 2024).status_code == 200

    assert api_client.get("/graph").json()["graph"]["nodes"][REPORTS]["title"] == "2024"


def test_malformed_route_change_is_rejected(api_client):
    response = api_client.post(
        "/route-change", content=b"{not json", headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_empty_graph_shape(api_client):
    assert api_client.get("/graph").json() == {
        "status": "ok",
        "graph": {"nodes": {}, "edges": {}, "transitions": []},
    }


def test_clear_graph(api_client):
    post_route(api_client, HOME, REPORTS)

    assert api_client.delete("/graph").json() == {"status": "ok"}
    assert api_client.get("/graph").json()["graph"] == {"nodes": {}, "edges": {}, "transitions": []}


# =============================================================================
# TREE & STATS
# =============================================================================

def test_tree_reflects_nesting(api_client):
    post_route(api_client, None, HOME, "Home")
    post_route(api_client, HOME, REPORTS, "Reports")
    post_route(api_client, REPORTS, Q3, "Q3")

    body = api_client.get("/tree").json()

    assert body["tree"]["roots"] == [HOME]
    assert body["tree"]["childrenOf"] == {HOME: [REPORTS], REPORTS: [Q3]}
    assert body["outline"][0]["label"] == "Home - /"
    assert [(e["depth"], e["label"]) for e in body["outline"]] == [
        (0, "Home - /"), (1, "Reports - /reports"), (2, "Q3 - /reports/q3"),
    ]
    assert body["meta"] == {"pages": 3, "transitions": 2}


def test_tree_for_deep_pagination_chain(api_client):
    kv = MemoryKeyValueStore()
    pages = [f"{REPORTS}?page={i}" for i in range(2000)]
    graph = NavGraph(transitions=[
        Transition(source=pages[i], target=pages[i + 1], at=i + 1)
        for i in range(len(pages) - 1)
    ])
    kv.set(GRAPH_KEY, encode_graph(graph))
    routes.set_store(NavigationGraphStore(kv))

    response = api_client.get("/tree")

    assert response.status_code == 200
    outline = response.json()["outline"]
    assert len(outline) == 2000
    assert outline[-1]["depth"] == 1999
    assert outline[-1]["url"] == pages[-1]


def test_settings_change_only_affects_new_transitions(api_client):
    post_route(api_client, None, HOME, "Home")
    post_route(api_client, HOME, REPORTS, "Reports")
    api_client.put("/settings", json={"nestingEnabled": False, "backSteps": 1})
    post_route(api_client, REPORTS, Q3, "Q3")

    tree = api_client.get("/tree").json()["tree"]

    # Q3 is promoted to a sibling of Reports; Reports stays nested under Home
    assert tree["childrenOf"] == {HOME: [REPORTS, Q3]}


def test_stats(api_client):
    post_route(api_client, None, HOME)
    post_route(api_client, HOME, REPORTS)
    post_route(api_client, REPORTS, HOME)

    body = api_client.get("/stats").json()

    assert body["pages"] == 2
    assert body["transitions"] == 2
    assert body["edges"] == 2
    assert body["tree"]["hasCycle"] is True


# =============================================================================
# SETTINGS
# =============================================================================

def test_settings_defaults(api_client):
    assert api_client.get("/settings").json() == {
        "status": "ok",
        "settings": {"nestingEnabled": True, "backSteps": 1},
    }


def test_put_settings_clamps_back_steps(api_client):
    response = api_client.put("/settings", json={"nestingEnabled": False, "backSteps": 0})

    assert response.json()["settings"] == {"nestingEnabled": False, "backSteps": 1}
    assert api_client.get("/settings").json()["settings"]["backSteps"] == 1


def test_put_settings_replaces_record(api_client):
    api_client.put("/settings", json={"nestingEnabled": False, "backSteps": 3})

    settings = api_client.put("/settings", json={"backSteps": 2}).json()["settings"]

    assert settings == {"nestingEnabled": True, "backSteps": 2}


def test_patch_settings_merges(api_client):
    api_client.put("/settings", json={"nestingEnabled": False, "backSteps": 3})

    settings = api_client.patch("/settings", json={"backSteps": "2"}).json()["settings"]

    assert settings == {"nestingEnabled": False, "backSteps": 2}


def test_invalid_settings_rejected(api_client):
    response = api_client.put("/settings", json={"nestingEnabled": "maybe"})

    assert response.status_code == 400
    assert response.json()["status"] == "error"


# =============================================================================
# STORAGE FAILURES
# =============================================================================

@pytest.mark.parametrize("method, path", [
    ("get", "/graph"),
    ("delete", "/graph"),
    ("get", "/tree"),
    ("get", "/stats"),
    ("get", "/settings"),
])
def test_storage_failure_returns_503(api_client, method, path):
    routes.set_store(NavigationGraphStore(UnavailableKeyValueStore()))

    response = getattr(api_client, method)(path)

    assert response.status_code == 503
    assert response.json()["status"] == "error"


def test_ingest_storage_failure_returns_503(api_client):
    routes.set_store(NavigationGraphStore(UnavailableKeyValueStore()))

    response = post_route(api_client, HOME, REPORTS)

    assert response.status_code == 503
    assert "Storage unavailable" in response.json()["error"]


def test_sqlite_backed_store_end_to_end(api_client, sqlite_path):
    routes.set_store(NavigationGraphStore(SQLiteKeyValueStore(sqlite_path)))
    post_route(api_client, HOME, REPORTS, "Reports")

    reopened = NavigationGraphStore(SQLiteKeyValueStore(sqlite_path)).read()

    assert reopened.nodes[REPORTS].title == "Reports"
