"""
TaskTrack CLI — Service bootstrap and management commands.

Commands:
- tasktrack init-db      — Create the users and tasks tables
- tasktrack run          — Start the API server (uvicorn)
- tasktrack create-user  — Register a user from the command line
- tasktrack issue-token  — Print a signed token for an existing user

Every command loads tasktrack.yaml plus environment overrides and exits 1
when required configuration is missing.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import Optional

from tasktrack.engine.config import TaskTrackConfig, load_config
from tasktrack.engine.errors import ConfigError, TaskTrackError

logger = logging.getLogger("tasktrack.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tasktrack",
        description="TaskTrack — Authenticated personal task tracking",
    )
    parser.add_argument(
        "--config", default=None, help="Path to tasktrack.yaml (default: ./tasktrack.yaml if present)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tasktrack init-db
    subparsers.add_parser("init-db", help="Create database tables")

    # tasktrack run
    run_parser = subparsers.add_parser("run", help="Start the API server")
    run_parser.add_argument("--host", default=None, help="Host to bind (default: server.host)")
    run_parser.add_argument("--port", type=int, default=None, help="Port to bind (default: server.port)")
    run_parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")

    # tasktrack create-user
    user_parser = subparsers.add_parser("create-user", help="Register a user")
    user_parser.add_argument("email", help="Login email")
    user_parser.add_argument("--name", required=True, help="Display name")
    user_parser.add_argument("--password", help="Password (prompted if not provided)")

    # tasktrack issue-token
    token_parser = subparsers.add_parser("issue-token", help="Print a token for an existing user")
    token_parser.add_argument("user_id", help="User identifier")
    token_parser.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds")

    args = parser.parse_args(argv)

    if args.command == "init-db":
        return cmd_init_db(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "create-user":
        return cmd_create_user(args)
    elif args.command == "issue-token":
        return cmd_issue_token(args)
    else:
        parser.print_help()
        return 0


def _load(args: argparse.Namespace) -> Optional[TaskTrackConfig]:
    try:
        return load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return None


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create all tables in the configured store."""
    config = _load(args)
    if config is None:
        return 1

    from tasktrack.db import open_database

    try:
        database = open_database(config.database, create_tables=True)
    except Exception as e:
        print(f"[ERROR] Database initialization failed: {e}")
        return 1
    database.dispose()
    print("[OK] Tables created")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Start the API server."""
    config = _load(args)
    if config is None:
        return 1

    import uvicorn

    from tasktrack.api import create_app

    host = args.host or config.server.host
    port = args.port or config.server.port
    print(f"Starting TaskTrack on {host}:{port}{config.server.api_prefix}")
    try:
        if args.reload:
            uvicorn.run("tasktrack.api.app:create_app", factory=True, host=host, port=port, reload=True)
        else:
            uvicorn.run(create_app(config), host=host, port=port)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


def _service_stack(config: TaskTrackConfig):
    from tasktrack.api.dependencies import build_services
    from tasktrack.db import open_database

    return build_services(config, open_database(config.database))


def cmd_create_user(args: argparse.Namespace) -> int:
    """Register a user and print their id and a first token."""
    config = _load(args)
    if config is None:
        return 1

    password = args.password or getpass.getpass("Password: ")
    services = _service_stack(config)
    try:
        principal = services.accounts.create_user(args.name, args.email, password)
    except TaskTrackError as e:
        print(f"[ERROR] {e.message}")
        for err in getattr(e, "validation_errors", []):
            print(f"  {err['field']}: {err['message']}")
        return 1
    finally:
        services.database.dispose()

    print(f"[OK] Created user {principal.id} <{principal.email}>")
    print(services.accounts.issue_token(principal.id))
    return 0


def cmd_issue_token(args: argparse.Namespace) -> int:
    """Print a signed token for an existing user."""
    config = _load(args)
    if config is None:
        return 1

    services = _service_stack(config)
    try:
        principal = services.principals.load(args.user_id)
    finally:
        services.database.dispose()
    if principal is None:
        print(f"[ERROR] User not found: {args.user_id}")
        return 1

    print(services.tokens.issue(principal.id, ttl_seconds=args.ttl))
    return 0


if __name__ == "__main__":
    sys.exit(main())
