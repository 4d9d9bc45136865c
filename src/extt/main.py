#!/usr/bin/env python
"""Command line interface for the extt note store."""
import argparse
import logging
import sys
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

from extt import __version__
from extt.config import ExttConfig, load_config
from extt.exceptions import ExttError
from extt.models.schema import Metadata
from extt.observability import configure_console_logging, configure_logging
from extt.storage.note_store import NoteStore

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".md"


def to_note_path(name: str) -> str:
    """Turn a user-facing note name into a root-relative path.

    Names without an extension get ``.md`` appended.

    Examples:
        "ideas" -> "ideas.md"
        "journal/2023-10-27" -> "journal/2023-10-27.md"
        "todo.txt" -> "todo.txt"
    """
    if PurePosixPath(name).suffix:
        return name
    return f"{name}{DEFAULT_SUFFIX}"


def select_lines(
    lines: Sequence[str],
    head: Optional[int] = None,
    tail: Optional[int] = None,
    from_line: Optional[int] = None,
    to_line: Optional[int] = None,
) -> List[str]:
    """Pick the window of ``lines`` requested by ``read``.

    ``from_line``/``to_line`` are 1-based and inclusive. Precedence is
    from+to, then from alone, then head, then tail; out-of-range values are
    clamped.
    """
    total = len(lines)
    if from_line is not None and to_line is not None:
        start, end = max(from_line - 1, 0), min(to_line, total)
    elif from_line is not None:
        start, end = max(from_line - 1, 0), total
    elif head is not None:
        start, end = 0, min(head, total)
    elif tail is not None:
        start, end = max(total - tail, 0), total
    else:
        start, end = 0, total

    start = min(start, total)
    end = max(min(end, total), start)
    return list(lines[start:end])


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="extt", description="A notes system for the terminal"
    )
    parser.add_argument(
        "--notes-dir",
        help="Directory holding the note files",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--database-path",
        help="SQLite index file path",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List notes in the index")

    search = commands.add_parser("search", help="Search notes by title or path")
    search.add_argument("query")
    search.add_argument(
        "--literal",
        action="store_true",
        help="Treat %% and _ in the query as plain characters",
    )

    new = commands.add_parser("new", help="Create a new note")
    new.add_argument("title")
    new.add_argument("-b", "--body", default="")

    read = commands.add_parser("read", help="Print a note's body")
    read.add_argument("name")
    read.add_argument("--head", type=int, help="Show first N lines")
    read.add_argument("--tail", type=int, help="Show last N lines")
    read.add_argument("--from", dest="from_line", type=int, help="Start from line N")
    read.add_argument("--to", dest="to_line", type=int, help="End at line N")

    upd = commands.add_parser("update", help="Update a note")
    upd.add_argument("name")
    upd.add_argument("--body", help="Replace the body")
    upd.add_argument("--title", help="Set the metadata title")
    upd.add_argument("--rename", help="Move the note to a new name")

    rm = commands.add_parser("delete", help="Delete a note")
    rm.add_argument("name")

    mv = commands.add_parser("move", help="Move a note")
    mv.add_argument("src")
    mv.add_argument("dst")

    commands.add_parser("sync", help="Rebuild the index from the note files")
    commands.add_parser("check-config", help="Show the resolved configuration")
    commands.add_parser("version", help="Show the version")

    return parser


def setup_logging(config: ExttConfig) -> None:
    """Console logging, plus rotating file logs when a log directory is set."""
    level = config.get_log_level()
    if config.log_dir is None:
        configure_console_logging(level)
        return
    try:
        configure_logging(config.get_absolute_path(config.log_dir), level=level)
    except OSError as e:
        # Fall back to console logging if the log directory is unusable
        configure_console_logging(level)
        logger.warning(f"Failed to configure file logging: {e}")


def run_command(args: argparse.Namespace, store: NoteStore) -> None:
    """Execute one parsed subcommand against ``store``."""
    if args.command == "list":
        for summary in store.list_notes():
            print(summary.path)

    elif args.command == "search":
        for summary in store.search(args.query, literal=args.literal):
            print(f"{summary.path}: {summary.title or 'No Title'}")

    elif args.command == "new":
        path = to_note_path(args.title)
        store.create(path, args.body, Metadata(title=args.title))
        print(f"Created note: {path}")

    elif args.command == "read":
        note = store.get(to_note_path(args.name))
        for line in select_lines(
            note.content.splitlines(),
            head=args.head,
            tail=args.tail,
            from_line=args.from_line,
            to_line=args.to_line,
        ):
            print(line)

    elif args.command == "update":
        path = to_note_path(args.name)
        if args.body is not None or args.title is not None:
            store.update(path, content=args.body, title=args.title)
            print(f"Updated note: {path}")
        if args.rename:
            new_path = to_note_path(args.rename)
            store.move_note(path, new_path)
            print(f"Renamed {path} to {new_path}")

    elif args.command == "delete":
        path = to_note_path(args.name)
        store.delete(path)
        print(f"Deleted note: {path}")

    elif args.command == "move":
        src, dst = to_note_path(args.src), to_note_path(args.dst)
        store.move_note(src, dst)
        print(f"Moved {src} to {dst}")

    elif args.command == "sync":
        count = store.sync()
        print(f"Index synced: {count} notes.")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the extt command line."""
    args = build_parser().parse_args(argv)

    if args.command == "version":
        print(f"extt {__version__}")
        return 0

    try:
        config = load_config(
            notes_dir=args.notes_dir,
            database_path=args.database_path,
            log_level=args.log_level,
        )
    except ExttError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(config)

    if args.command == "check-config":
        print(f"Notes Dir: {config.get_notes_dir()}")
        print(f"DB Path: {config.get_database_path()}")
        print(f"Log Level: {config.log_level}")
        return 0

    try:
        notes_dir: Path = config.get_notes_dir()
        notes_dir.mkdir(parents=True, exist_ok=True)
        with NoteStore.from_config(config) as store:
            run_command(args, store)
    except ExttError as e:
        logger.debug(f"Command {args.command} failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
