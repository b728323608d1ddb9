#!/usr/bin/env python
"""Command line entry point for tsundoku."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from tsundoku import __version__
from tsundoku.config import LOG_LEVELS, config
from tsundoku.exceptions import TsundokuError
from tsundoku.models.schema import ArchiveState, Entry, LinkRecord
from tsundoku.observability import configure_logging
from tsundoku.services.entry_service import EntryService

logger = logging.getLogger(__name__)


def split_tags(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated tag list, dropping blank items.

    Surrounding whitespace is stripped here, at the command line, so that
    ``-t "news, tech"`` means the tags "news" and "tech".
    """
    if value is None:
        return None
    tags = [tag.strip() for tag in value.split(",")]
    return [tag for tag in tags if tag]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``tsd`` command."""
    parser = argparse.ArgumentParser(
        prog="tsd", description="Keep a pile of links to read later."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("TSUNDOKU_DATABASE_PATH"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=list(LOG_LEVELS),
        default=None,
    )
    parser.add_argument(
        "-d", "--debug",
        help="Increase logging verbosity (repeat for more)",
        action="count",
        default=0,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Add a link to the pile.")
    add.add_argument("link", metavar="LINK", help="The link or reference to add")
    add.add_argument("-c", "--comment", help="A comment on the link for later reference")
    add.add_argument(
        "-t", "--tags",
        help="A comma separated list of tags to associate with the link",
    )

    read = subparsers.add_parser(
        "read", help="Mark a link as read and move it to the archive."
    )
    read.add_argument("link_id", metavar="ID", type=int, help="The ID of the link to read")

    subparsers.add_parser("tags", help="List all tags with their link counts.")

    listing = subparsers.add_parser("list", help="List links, unread ones by default.")
    state = listing.add_mutually_exclusive_group()
    state.add_argument("--archived", action="store_true", help="Only list read links")
    state.add_argument("--all", action="store_true", help="List read and unread links")
    listing.add_argument("-t", "--tag", help="Only list links carrying this tag")

    return parser


def update_config(args: argparse.Namespace) -> None:
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.log_level:
        config.log_level = args.log_level
    elif args.debug:
        config.log_level = "DEBUG" if args.debug > 1 else "INFO"


def format_record(record: LinkRecord) -> str:
    """Render one link as a single line."""
    marker = "x" if record.is_read else " "
    line = f"[{marker}] {record.id}: {record.link}"
    if record.comment:
        line += f" - {record.comment}"
    if record.tags:
        line += f" ({', '.join(record.tags)})"
    return line


def run_command(service: EntryService, args: argparse.Namespace) -> None:
    """Dispatch a parsed command to the entry service and print the result."""
    if args.command == "add":
        entry = Entry(link=args.link, comment=args.comment, tags=split_tags(args.tags))
        link_id = service.add_entry(entry)
        print(link_id)
    elif args.command == "read":
        service.mark_read(args.link_id)
        print(f"Marked {args.link_id} as read")
    elif args.command == "tags":
        for tag, count in service.tag_counts().items():
            print(f"{tag} ({count})")
    elif args.command == "list":
        if args.all:
            archive = None
        elif args.archived:
            archive = ArchiveState.ARCHIVED
        else:
            archive = ArchiveState.QUEUE
        if args.tag:
            records = service.entries_for_tag(args.tag, archive=archive)
        else:
            records = service.list_entries(archive=archive)
        for record in records:
            print(format_record(record))


def main(argv: Optional[List[str]] = None) -> int:
    """Run the ``tsd`` command. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        update_config(args)
        configure_logging(
            log_dir=config.get_log_dir(),
            level=getattr(logging, config.log_level, logging.WARNING),
        )
        logger.debug(f"Using SQLite database: {config.database_path}")

        with EntryService() as service:
            run_command(service, args)
    except TsundokuError as e:
        logger.debug(f"Command failed: {e.to_dict()}")
        print(f"error: {e}", file=sys.stderr)
        return 1
    except PydanticValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
