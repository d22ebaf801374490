"""Command-line interface for the shop admin authentication service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

import httpx

from shopadmin.config import Settings, load_settings
from shopadmin.database import Database

logger = logging.getLogger("shopadmin.main")

_DEFAULT_SERVICE_URL = "http://127.0.0.1:8000"
PASSWORD_MIN_LENGTH = 8


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Shop admin authentication utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file (default: SHOPADMIN_CONFIG or config/shopadmin.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the admin account database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP authentication service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    create_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    create_parser.add_argument("username", help="Login name for the admin")
    create_parser.add_argument("--role", default="admin", help="Role recorded for the account")
    create_parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset the password and re-activate the account if it already exists",
    )

    subparsers.add_parser("list-admins", help="List admin accounts")

    status_parser = subparsers.add_parser(
        "status", help="Query a running service for its health and session count"
    )
    status_parser.add_argument(
        "--service-url",
        default=_DEFAULT_SERVICE_URL,
        help=f"Base URL of a running service (default: {_DEFAULT_SERVICE_URL})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "create-admin", "list-admins", "status"}

    # Global options come before the subcommand.
    index = 0
    while index < len(args_list):
        if args_list[index] == "--config":
            index += 2
        elif args_list[index].startswith("--config="):
            index += 1
        else:
            break

    if index >= len(args_list):
        args_list = [*args_list, "serve"]
    else:
        first = args_list[index]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = [*args_list[:index], "serve", *args_list[index:]]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, database: Database, host: str, port: int) -> None:
    from shopadmin.service import create_app
    import uvicorn

    logger.info("Starting admin authentication service on http://%s:%s", host, port)

    app = create_app(settings=settings, database=database)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {PASSWORD_MIN_LENGTH} characters): ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _create_admin(database: Database, username: str, *, role: str, reset: bool) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Aborted creating admin.")
        return 1

    existing = database.get_user_by_username(username)
    if existing is not None and reset:
        database.set_user_password(existing.id, password)
        user = database.set_user_status(existing.id, "active")
        print(f"Reset password for admin #{user.id}: {user.username}")
        return 0

    try:
        user = database.create_user(username, password, role=role)
    except ValueError as exc:
        print(f"Failed to create admin: {exc}")
        return 1

    print(f"Created admin #{user.id}: {user.username} ({user.role})")
    return 0


def _list_admins(database: Database) -> int:
    users = database.list_users()
    if not users:
        print("No admin accounts are currently registered.")
        return 0

    print(f"{len(users)} admin(s) found:")
    print(f"{'ID':>4}  {'Username':<24}  {'Role':<12}  {'Status':<10}  Created")
    print("-" * 80)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>4}  {user.username:<24}  {user.role:<12}  {user.status:<10}  {created}")
    return 0


def _show_status(service_url: str) -> int:
    endpoint = service_url.rstrip("/") + "/healthz"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact service: {exc}")
        return 1

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return 1

    print(f"Service status: {payload.get('status', 'unknown')}")
    print(f"Active sessions: {payload.get('active_sessions', '?')}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.command == "status":
        return _show_status(args.service_url)

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "create-admin":
        return _create_admin(database, args.username, role=args.role, reset=args.reset)
    elif args.command == "list-admins":
        return _list_admins(database)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
