"""
Command-line interface for league check-in.

Commands:
- presence: Look up one or more Discord members (name or ID), their role and online status
- checkin: Check in one player for an event
- event: Check in every registered player for an event
- init-db: Create database tables

Usage:
    league-checkin presence <username-or-id>... [--role NAME]... [--role-id ID]... [--use-id]
    league-checkin checkin <user-id> <event-id> [--discord-handle NAME] [--force]
    league-checkin event <event-id> [--force]
    league-checkin init-db

Environment Variables:
    DISCORD_BOT_TOKEN: Bot credential for the Discord API
    DISCORD_GUILD_ID: Guild to check membership in
    DISCORD_ROLE_NAME: Default role name for presence and check-in
    DATABASE_URL: SQLAlchemy async database URL

Results are printed as JSON. Exit status is 0 on success, 1 otherwise.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

import config
from league.models import init_db
from league.services.checkin import perform_bulk_checkin, perform_checkin
from league.services.discord_api import rest_source_from_config
from league.services.guild import PresenceConfigError
from league.services.presence import PresenceResolver, find_members, required_role_names

logger = logging.getLogger("league.cli")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _presence(args: argparse.Namespace) -> list:
    if not config.DISCORD_GUILD_ID:
        raise PresenceConfigError("Missing guild ID. Set DISCORD_GUILD_ID.")
    async with rest_source_from_config() as source:
        resolver = PresenceResolver(
            source,
            config.DISCORD_GUILD_ID,
            role_names=required_role_names(args.role or None),
            role_ids=args.role_id or config.DISCORD_ROLE_IDS,
            use_id=args.use_id,
        )
        members, roles = await resolver.fetch_snapshot()
        if not args.use_id:
            for target in args.targets:
                matches = find_members(members, target)
                if len(matches) > 1:
                    names = ", ".join(f"{m.username} ({m.id})" for m in matches)
                    print(f"Warning: '{target}' matches {len(matches)} members: {names}. Using the first.", file=sys.stderr)
        return await resolver.resolve_against(members, roles, args.targets)


def cmd_presence(args: argparse.Namespace) -> int:
    """Resolve Discord presence for each target."""
    try:
        results = asyncio.run(_presence(args))
    except PresenceConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1
    output = [asdict(r) for r in results]
    _print_json(output[0] if len(output) == 1 else output)
    return 0 if all(r.error is None for r in results) else 1


def cmd_checkin(args: argparse.Namespace) -> int:
    """Check in one player."""
    try:
        result = asyncio.run(
            perform_checkin(args.user_id, args.event_id, discord_handle=args.discord_handle, force=args.force)
        )
    except PresenceConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _print_json(asdict(result))
    return 0 if result.success else 1


def cmd_event(args: argparse.Namespace) -> int:
    """Check in every PENDING/CONFIRMED player of an event."""
    try:
        result = asyncio.run(perform_bulk_checkin(args.event_id, force=args.force))
    except PresenceConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _print_json(asdict(result))
    return 0 if result.success else 1


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create database tables."""
    asyncio.run(init_db())
    print("Database initialized.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="league-checkin",
        description="League event check-in: payment, decklist and Discord presence",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    presence_parser = subparsers.add_parser(
        "presence",
        help="Check Discord membership, role and presence",
        description="Look up members by username, display name or (with --use-id) user ID.",
    )
    presence_parser.add_argument("targets", nargs="+", help="Usernames, display names or user IDs")
    presence_parser.add_argument(
        "--role",
        action="append",
        help="Role name to check (repeatable; defaults to DISCORD_ROLE_NAME)",
    )
    presence_parser.add_argument("--role-id", action="append", help="Role ID to check (repeatable)")
    presence_parser.add_argument("--use-id", "--id", action="store_true", help="Treat targets as Discord user IDs")
    presence_parser.set_defaults(func=cmd_presence)

    checkin_parser = subparsers.add_parser("checkin", help="Check in one player for an event")
    checkin_parser.add_argument("user_id")
    checkin_parser.add_argument("event_id")
    checkin_parser.add_argument("--discord-handle", help="Discord name to check instead of the one on record")
    checkin_parser.add_argument("--force", action="store_true", help="Confirm even if conditions are not met")
    checkin_parser.set_defaults(func=cmd_checkin)

    event_parser = subparsers.add_parser("event", help="Check in every registered player for an event")
    event_parser.add_argument("event_id")
    event_parser.add_argument("--force", action="store_true", help="Run even if registration is not closed")
    event_parser.set_defaults(func=cmd_event)

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else config.LOG_LEVEL, stream=sys.stderr)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
