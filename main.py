"""
NAVTREE MAIN - Entry Point and CLI

Commands:
    serve     - Start the API server (route-change relay + sitemap reads)
    tree      - Print the reconstructed sitemap outline
    stats     - Show page/transition counts and forest shape
    ingest    - Record one navigation event by hand
    settings  - Show or change nesting settings
    reset     - Clear the navigation graph
    export    - Export the graph to parquet/csv/arrow

Usage:
    # Start API on the configured host/port
    python main.py serve

    # Production server
    python main.py serve --prod --workers 4

    # Show the sitemap
    python main.py tree

    # Promote new pages two levels up instead of nesting them
    python main.py settings --no-nesting --back-steps 2

    # Replay an event
    python main.py ingest https://app.example.com/ https://app.example.com/reports --title "Acme | Reports"

    # Export
    python main.py export --format csv --output ./export

Configuration is read from config/navtree.toml (or $NAVTREE_CONFIG).
"""
import sys
import logging
from pathlib import Path

# Add navtree to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.errors import NavTreeError
from core.graph_store import NavigationGraphStore
from core.tree_builder import build_tree, tree_stats
from infrastructure.config import AppConfig, load_config
from infrastructure.export import EXPORT_FORMATS, export_graph
from infrastructure.kv_store import SQLiteKeyValueStore
from viz.outline import build_outline, render_text

logger = logging.getLogger("navtree.cli")


def configure_logging(config: AppConfig) -> None:
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def open_store(config: AppConfig) -> NavigationGraphStore:
    return NavigationGraphStore(SQLiteKeyValueStore(config.storage.path))


def run_server(host: str, port: int, workers: int = 1, reload: bool = False):
    """Run the API server with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    print(f"Starting navtree API server on {host}:{port} with {workers} worker(s)")
    print("Press Ctrl+C to stop")

    granian = Granian(
        target="api.routes:app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        workers=workers,
        reload=reload,
    )

    granian.serve()


def cmd_serve(args, config: AppConfig):
    """Handle serve command."""
    host = args.host or config.server.host
    port = args.port or config.server.port
    if args.prod:
        # Ingestion is read-modify-write; more workers only scale reads
        run_server(host, port, workers=args.workers or config.server.workers)
    else:
        run_server(host, port, workers=1, reload=True)


def cmd_tree(args, config: AppConfig):
    """Print the sitemap outline."""
    graph = open_store(config).read()
    if not graph.nodes:
        print("No pages captured yet.")
        return

    outline = build_outline(build_tree(graph), graph.nodes, config.display.max_label_length)
    print(f"Captured pages: {len(graph.nodes)} | Click transitions: {len(graph.transitions)}")
    for line in render_text(outline):
        print(line)


def cmd_stats(args, config: AppConfig):
    """Print graph and forest statistics."""
    graph = open_store(config).read()
    shape = tree_stats(build_tree(graph))
    print(f"Pages:       {len(graph.nodes)}")
    print(f"Transitions: {len(graph.transitions)}")
    print(f"Edges:       {sum(len(t) for t in graph.edges.values())}")
    print(f"Roots:       {shape.root_count}")
    print(f"Depth:       {shape.depth}")
    if shape.has_cycle:
        print("Warning: forest contains a navigation cycle")


def cmd_ingest(args, config: AppConfig):
    """Record one route change."""
    source = None if args.source in ("-", "") else args.source
    graph = open_store(config).ingest(source, args.target, args.title)
    if graph is None:
        print("Ignored: no target location.")
        return
    print(f"Recorded. Pages: {len(graph.nodes)} | Transitions: {len(graph.transitions)}")


def cmd_settings(args, config: AppConfig):
    """Show or update nesting settings."""
    store = open_store(config)
    changes = {}
    if args.nesting is not None:
        changes["nesting_enabled"] = args.nesting
    if args.back_steps is not None:
        changes["back_steps"] = args.back_steps

    settings = store.settings.update(**changes) if changes else store.settings.read()
    print(f"nestingEnabled: {str(settings.nesting_enabled).lower()}")
    print(f"backSteps:      {settings.back_steps}")


def cmd_reset(args, config: AppConfig):
    """Clear the graph."""
    if not args.yes:
        answer = input("Delete all captured pages and transitions? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return
    open_store(config).reset()
    print("Navigation graph cleared.")


def cmd_export(args, config: AppConfig):
    """Export the graph as tables."""
    graph = open_store(config).read()
    written = export_graph(graph, args.output, args.format)
    for name, path in written.items():
        print(f"{name}: {path}")


def main():
    """Main entry point with subcommands."""
    import argparse

    parser = argparse.ArgumentParser(
        description="navtree - SPA navigation graph and sitemap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", help="Path to navtree.toml")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")
    serve_parser.add_argument("--workers", type=int, help="Number of workers (prod)")
    serve_parser.add_argument("--prod", action="store_true", help="Run in production mode")
    serve_parser.set_defaults(func=cmd_serve)

    # tree command
    tree_parser = subparsers.add_parser("tree", help="Print the sitemap outline")
    tree_parser.set_defaults(func=cmd_tree)

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show graph statistics")
    stats_parser.set_defaults(func=cmd_stats)

    # ingest command
    ingest_parser = subparsers.add_parser("ingest", help="Record a navigation event")
    ingest_parser.add_argument("source", help="Location navigated from ('-' for none)")
    ingest_parser.add_argument("target", help="Location navigated to")
    ingest_parser.add_argument("--title", default="", help="Page title")
    ingest_parser.set_defaults(func=cmd_ingest)

    # settings command
    settings_parser = subparsers.add_parser("settings", help="Show or change nesting settings")
    nesting = settings_parser.add_mutually_exclusive_group()
    nesting.add_argument("--nesting", dest="nesting", action="store_true", default=None,
                         help="Nest new pages under the page they were opened from")
    nesting.add_argument("--no-nesting", dest="nesting", action="store_false",
                         help="Promote new pages to an ancestor of the clicked page")
    settings_parser.add_argument("--back-steps", type=int, help="Levels to promote when nesting is off")
    settings_parser.set_defaults(func=cmd_settings)

    # reset command
    reset_parser = subparsers.add_parser("reset", help="Clear the navigation graph")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")
    reset_parser.set_defaults(func=cmd_reset)

    # export command
    export_parser = subparsers.add_parser("export", help="Export graph to files")
    export_parser.add_argument("--output", "-o", default="./export", help="Output directory")
    export_parser.add_argument("--format", choices=EXPORT_FORMATS, default="parquet")
    export_parser.set_defaults(func=cmd_export)

    args = parser.parse_args()
    config = load_config(args.config)
    configure_logging(config)

    if args.command is None:
        # Default to serve
        args = parser.parse_args(["serve"])

    try:
        args.func(args, config)
    except NavTreeError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
