#!/usr/bin/env python3
"""
Command-line interface for the storefront order service.

Usage:
    uv run python cli.py [command] [options]

Commands:
    serve           Start the order service API
    serve-catalog   Start the catalog stand-in API
    init-db         Create the order tables
    demo            Run walkthrough scenarios
    test            Run the test suite

Examples:
    uv run python cli.py serve --reload
    uv run python cli.py serve-catalog
    uv run python cli.py demo create-order
    uv run python cli.py init-db
"""

import argparse
import subprocess
import sys


def run_demo(scenario: str) -> None:
    """Run a demo scenario."""
    from orders.demo import (
        run_create_order_demo,
        run_unknown_product_demo,
        run_status_lifecycle_demo,
        run_all_demos,
    )

    scenarios = {
        "create-order": run_create_order_demo,
        "unknown-product": run_unknown_product_demo,
        "status-lifecycle": run_status_lifecycle_demo,
        "all": run_all_demos,
    }
    demo = scenarios.get(scenario)
    if demo is None:
        print(f"Unknown scenario: {scenario}")
        sys.exit(1)
    demo()


def run_init_db() -> None:
    """Create the order tables in the configured database."""
    from orders.store import OrderStore
    from shared.config import Settings

    settings = Settings.from_env()
    store = OrderStore.from_settings(settings)
    try:
        store.create_schema()
    finally:
        store.dispose()
    print(f"Schema ready at {settings.database_url}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(app_path: str, host: str, port: int, reload: bool) -> None:
    """Start an API server."""
    cmd = ["uv", "run", "uvicorn", app_path, f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Storefront Order Service CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --reload
  %(prog)s serve-catalog --port 8001
  %(prog)s demo all
  %(prog)s init-db
  %(prog)s test -v
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Serve commands
    serve_parser = subparsers.add_parser("serve", help="Start the order service API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8002, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    catalog_parser = subparsers.add_parser("serve-catalog", help="Start the catalog stand-in API")
    catalog_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    catalog_parser.add_argument("--port", type=int, default=8001, help="Port to bind to")
    catalog_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # Database command
    subparsers.add_parser("init-db", help="Create the order tables")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run walkthrough scenarios")
    demo_parser.add_argument(
        "scenario",
        choices=["create-order", "unknown-product", "status-lifecycle", "all"],
        help="Which scenario to run",
    )

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    args = parser.parse_args()

    if args.command == "serve":
        run_server("api.main:app", args.host, args.port, args.reload)
    elif args.command == "serve-catalog":
        run_server("catalog.app:app", args.host, args.port, args.reload)
    elif args.command == "init-db":
        run_init_db()
    elif args.command == "demo":
        run_demo(args.scenario)
    elif args.command == "test":
        run_tests(args.pytest_args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
