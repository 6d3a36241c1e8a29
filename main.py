#!/usr/bin/env python3
"""
Content site -- operator command line.

The HTTP surface is read-only for content and has no account administration.
Everything that changes content, and privileged accounts, goes through here.

Usage:
  python main.py create-user alice
  python main.py create-user root --privileged
  python main.py add-item items.json
  python main.py tombstone-item 42
  python main.py purge-sessions
  python main.py serve --port 8000 --reload

Environment variables (see core/config.py):
  SECRET_KEY    Session-signing secret. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy connection string. Defaults to a local SQLite file.
"""

import argparse
import json
import sys
from getpass import getpass
from pathlib import Path
from typing import Optional

from auth.models import User
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import hash_password
from content.models import ContentItem
from content.store import ContentStore
from core.errors import AppError, DuplicateUsername


def _load_items(path: str) -> list[ContentItem]:
    """Read one item object or a list of them from a JSON file.

    Raises ValueError for unreadable files, invalid JSON, or items missing
    required fields.
    """
    file_path = Path(path).resolve()
    if not file_path.is_file():
        raise ValueError(f"'{path}' is not a readable file.")
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not read '{path}': {e}") from e
    records = raw if isinstance(raw, list) else [raw]
    items = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"Entry {i} is not an object.")
        try:
            items.append(
                ContentItem(
                    pictures=list(record.get("pictures") or []),
                    title_canonical=record.get("title_canonical", ""),
                    title_localized=record.get("title_localized", ""),
                    description_canonical=record.get("description_canonical", ""),
                    description_localized=record.get("description_localized", ""),
                )
            )
        except ValueError as e:
            raise ValueError(f"Entry {i}: {e}") from e
    return items


def _create_user(args: argparse.Namespace) -> int:
    password = getpass("Password: ")
    if password != getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1
    try:
        hashed = hash_password(password)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    store = UserStore()
    try:
        uid = store.create_user(User(username=args.username, hashed_password=hashed, is_privileged=args.privileged))
    except DuplicateUsername:
        print(f"  [!] Username '{args.username}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created user '{args.username}' (id={uid}, privileged={args.privileged}).")
    return 0


def _add_items(args: argparse.Namespace) -> int:
    try:
        items = _load_items(args.path)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    store = ContentStore()
    try:
        for item in items:
            item_id = store.create_item(item)
            print(f"  Added item {item_id}: {item.title_canonical}")
    finally:
        store.close()
    return 0


def _tombstone_item(args: argparse.Namespace) -> int:
    store = ContentStore()
    try:
        changed = store.tombstone_item(args.item_id)
    finally:
        store.close()
    if not changed:
        print(f"  [!] Item {args.item_id} does not exist or is already deleted.")
        return 1
    print(f"  Item {args.item_id} deleted.")
    return 0


def _purge_sessions(args: argparse.Namespace) -> int:
    store = SessionStore()
    try:
        removed = store.purge_expired()
    finally:
        store.close()
    print(f"  Removed {removed} expired session(s).")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contentsite",
        description="Operator commands for the content site.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-user", help="Create an account (prompts for the password)")
    p.add_argument("username")
    p.add_argument("--privileged", action="store_true", help="Mark the account as privileged")
    p.set_defaults(func=_create_user)

    p = sub.add_parser("add-item", help="Add content items from a JSON file")
    p.add_argument("path", metavar="PATH", help="JSON file with one item object or a list of them")
    p.set_defaults(func=_add_items)

    p = sub.add_parser("tombstone-item", help="Soft-delete a content item (irreversible)")
    p.add_argument("item_id", type=int)
    p.set_defaults(func=_tombstone_item)

    p = sub.add_parser("purge-sessions", help="Delete expired sessions")
    p.set_defaults(func=_purge_sessions)

    p = sub.add_parser("serve", help="Run the web server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")
    p.set_defaults(func=_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AppError as e:
        print(f"  [!] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
