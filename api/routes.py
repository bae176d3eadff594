"""
NAVTREE API ROUTES - The HTTP relay between capture and the graph store.

Page-side capture posts route changes here; sitemap views read the graph,
the reconstructed tree and the settings.

Endpoints:
- GET    /health        - Health check
- GET    /stats         - Page/transition counts and forest shape
- POST   /route-change  - Ingest one {from, to, title} event
- GET    /graph         - Stored graph {nodes, edges, transitions}
- DELETE /graph         - Clear the graph irreversibly
- GET    /tree          - Reconstructed forest plus labelled outline
- GET    /settings      - Current nesting settings
- PUT    /settings      - Replace settings
- PATCH  /settings      - Merge a subset of settings

Responses follow the relay's envelope: {"status": "ok", ...} on success,
{"status": "error", "error": "..."} on failure.

Design:
- Starlette routes for ASGI compatibility with Granian
- msgspec for decoding events and encoding graph payloads
- Ingestion is synchronous inside the handler, so one event is fully
  persisted before the next handler runs
"""
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.requests import Request
from typing import Any, Optional
import msgspec
import logging

from core.errors import SettingsError, StorageError, StorageUnavailableError
from core.graph_store import NavigationGraphStore
from core.schemas import RouteChange
from core.tree_builder import build_tree, tree_stats
from infrastructure.config import AppConfig, load_config
from infrastructure.kv_store import SQLiteKeyValueStore
from infrastructure.settings import coerce_settings
from viz.outline import build_outline


# =============================================================================
# LOGGING
# =============================================================================

logger = logging.getLogger("navtree.api")


# =============================================================================
# GLOBAL STATE
# =============================================================================

_store: Optional[NavigationGraphStore] = None
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_store() -> NavigationGraphStore:
    """Shared store, opened from configuration on first use."""
    global _store
    if _store is None:
        _store = NavigationGraphStore(SQLiteKeyValueStore(get_config().storage.path))
    return _store


def set_store(store: Optional[NavigationGraphStore]) -> None:
    """Swap the shared store (tests, CLI)."""
    global _store
    _store = store


# =============================================================================
# RESPONSE HELPERS
# =============================================================================

_json_encoder = msgspec.json.Encoder()
_route_change_decoder = msgspec.json.Decoder(type=RouteChange)


def json_response(data: Any, status_code: int = 200) -> Response:
    """Create JSON response using msgspec (structs encode with camelCase names)."""
    return Response(
        content=_json_encoder.encode(data),
        status_code=status_code,
        media_type="application/json"
    )


def ok_response(**fields: Any) -> Response:
    return json_response({"status": "ok", **fields})


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    """Create error response."""
    return JSONResponse(
        {"status": "error", "error": message},
        status_code=status_code
    )


def storage_error_response(error: StorageError) -> JSONResponse:
    if isinstance(error, StorageUnavailableError):
        logger.error(f"Storage unavailable: {error}")
    else:
        logger.error(f"Stored data unreadable: {error}")
    return error_response(str(error), status_code=503)


# =============================================================================
# HEALTH & STATS
# =============================================================================

async def health(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({
        "status": "healthy",
        "service": "navtree",
        "version": "0.1.0"
    })


async def stats(request: Request) -> Response:
    """Captured pages, click transitions, and the shape of the forest."""
    try:
        graph = get_store().read()
    except StorageError as e:
        return storage_error_response(e)

    shape = tree_stats(build_tree(graph))
    return ok_response(
        pages=len(graph.nodes),
        transitions=len(graph.transitions),
        edges=sum(len(targets) for targets in graph.edges.values()),
        tree=shape,
    )


# =============================================================================
# GRAPH OPERATIONS
# =============================================================================

async def route_change(request: Request) -> Response:
    """
    Ingest one navigation event.

    Request body:
        {"from": "https://app/a" | null, "to": "https://app/b", "title": "Acme | B"}
    """
    body = await request.body()
    try:
        event = _route_change_decoder.decode(body)
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        return error_response(f"Invalid route change: {e}")

    try:
        get_store().ingest_event(event)
    except StorageError as e:
        return storage_error_response(e)
    return ok_response()


async def get_graph(request: Request) -> Response:
    """Return the stored graph (empty shape when nothing recorded)."""
    try:
        graph = get_store().read()
    except StorageError as e:
        return storage_error_response(e)
    return ok_response(graph=graph)


async def clear_graph(request: Request) -> Response:
    """Delete all pages, edges and transitions."""
    try:
        get_store().reset()
    except StorageError as e:
        return storage_error_response(e)
    return ok_response()


async def get_tree(request: Request) -> Response:
    """
    Reconstructed forest and its labelled outline.

    Response:
        {"status": "ok", "tree": {"roots": [...], "childrenOf": {...}},
         "outline": [...], "meta": {"pages": n, "transitions": m}}
    """
    try:
        graph = get_store().read()
    except StorageError as e:
        return storage_error_response(e)

    tree = build_tree(graph)
    outline = build_outline(tree, graph.nodes, get_config().display.max_label_length)
    return ok_response(
        tree=tree,
        outline=outline,
        meta={"pages": len(graph.nodes), "transitions": len(graph.transitions)},
    )


# =============================================================================
# SETTINGS
# =============================================================================

async def get_settings(request: Request) -> Response:
    try:
        settings = get_store().settings.read()
    except StorageError as e:
        return storage_error_response(e)
    return ok_response(settings=settings)


async def _settings_payload(request: Request):
    try:
        return msgspec.json.decode(await request.body())
    except msgspec.DecodeError as e:
        raise SettingsError(f"Invalid JSON: {e}") from e


async def put_settings(request: Request) -> Response:
    """Replace the settings record (backSteps below 1 is clamped to 1)."""
    store = get_store()
    try:
        settings = coerce_settings(await _settings_payload(request))
        stored = store.settings.write(settings)
    except SettingsError as e:
        return error_response(str(e))
    except StorageError as e:
        return storage_error_response(e)
    return ok_response(settings=stored)


async def patch_settings(request: Request) -> Response:
    """Merge the given fields into the stored settings."""
    store = get_store()
    try:
        payload = await _settings_payload(request)
        stored = store.settings.write(coerce_settings(payload, base=store.settings.read()))
    except SettingsError as e:
        return error_response(str(e))
    except StorageError as e:
        return storage_error_response(e)
    return ok_response(settings=stored)


# =============================================================================
# APPLICATION
# =============================================================================

def create_routes() -> list:
    """Create all API routes."""
    return [
        # Health & Stats
        Route("/health", health, methods=["GET"]),
        Route("/stats", stats, methods=["GET"]),

        # Graph
        Route("/route-change", route_change, methods=["POST"]),
        Route("/graph", get_graph, methods=["GET"]),
        Route("/graph", clear_graph, methods=["DELETE"]),
        Route("/tree", get_tree, methods=["GET"]),

        # Settings
        Route("/settings", get_settings, methods=["GET"]),
        Route("/settings", put_settings, methods=["PUT"]),
        Route("/settings", patch_settings, methods=["PATCH"]),
    ]


def create_app() -> Starlette:
    """Create the Starlette application."""
    from starlette.middleware import Middleware
    from starlette.middleware.cors import CORSMiddleware

    # Capture runs inside arbitrary pages, so any origin may post events
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["*"],
        )
    ]

    return Starlette(
        routes=create_routes(),
        middleware=middleware,
        debug=False,
    )


# Application instance for ASGI servers
app = create_app()
