# Strongbox - Command Line Entry Point
#
# python -m strongbox <command> ...
#
# Every command except `register` logs in, runs, and closes the session
# before exiting. Master passwords are read with getpass, never taken from
# argv.

import argparse
import getpass
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from . import __version__
from .app import Strongbox
from .config import StrongboxConfig
from .core import EventSeverity, EventType, StrongboxError, configure_logging
from .db.models import Credential


def _prompt_master(confirm: bool = False) -> str:
    password = getpass.getpass("Master password: ")
    if confirm and getpass.getpass("Repeat master password: ") != password:
        raise SystemExit("Passwords do not match")
    return password


def _credential_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a credential id: {value}") from None


def _print_credentials(credentials: List[Credential]) -> None:
    if not credentials:
        print("(no credentials)")
        return
    for cred in credentials:
        extra = " ".join(part for part in (cred.username, cred.url) if part)
        print(f"{cred.id}  {cred.name}  {extra}".rstrip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strongbox",
        description="Strongbox - local credential vault",
    )
    parser.add_argument("--version", action="version", version=f"Strongbox v{__version__}")
    parser.add_argument("--db", help="Database path (overrides STRONGBOX_DB_PATH)")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Create a user and their vault")
    p.add_argument("user")

    p = sub.add_parser("add", help="Store a credential")
    p.add_argument("user")
    p.add_argument("name")
    p.add_argument("--login", help="Login name stored with the credential")
    p.add_argument("--url")
    p.add_argument("--notes", action="store_true", help="Prompt for notes")
    p.add_argument("--no-password", action="store_true", help="Store without a password")

    p = sub.add_parser("list", help="List credentials")
    p.add_argument("user")

    p = sub.add_parser("search", help="Search credentials by name")
    p.add_argument("user")
    p.add_argument("query")

    p = sub.add_parser("show", help="Show a credential and reveal its secrets")
    p.add_argument("user")
    p.add_argument("id", type=_credential_id)

    p = sub.add_parser("delete", help="Delete a credential")
    p.add_argument("user")
    p.add_argument("id", type=_credential_id)

    return parser


def run(box: Strongbox, args: argparse.Namespace) -> int:
    if args.command == "register":
        box.register(args.user, _prompt_master(confirm=True))
        print(f"User '{args.user}' registered")
        return 0

    with box.login(args.user, _prompt_master()) as session:
        if args.command == "add":
            password = None if args.no_password else getpass.getpass("Password to store: ")
            notes = input("Notes: ") if args.notes else None
            cred = box.credentials.create(
                session, args.name, username=args.login, url=args.url,
                notes=notes, password=password,
            )
            print(f"Stored {cred.name} ({cred.id})")
        elif args.command == "list":
            _print_credentials(box.credentials.list(session))
        elif args.command == "search":
            _print_credentials(box.credentials.search(session, args.query))
        elif args.command == "show":
            cred = box.credentials.get(session, args.id)
            print(f"Name:     {cred.name}")
            print(f"Login:    {cred.username or ''}")
            print(f"URL:      {cred.url or ''}")
            print(f"Password: {box.credentials.reveal_password(session, args.id) or ''}")
            print(f"Notes:    {box.credentials.reveal_notes(session, args.id) or ''}")
        elif args.command == "delete":
            box.credentials.delete(session, args.id)
            print(f"Deleted {args.id}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the `strongbox` console script."""
    args = build_parser().parse_args(argv)

    try:
        config = StrongboxConfig.from_env()
    except StrongboxError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    if args.db:
        config.db_path = Path(args.db)

    configure_logging(config.log_level)

    with Strongbox(config) as box:
        box.audit.log_event(
            event_type=EventType.SYSTEM_START,
            severity=EventSeverity.INFO,
            message="Strongbox CLI starting",
            details={"version": __version__, "command": args.command},
        )
        try:
            return run(box, args)
        except StrongboxError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
