"""CLI entry point for git-backup."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from git_backup import __version__
from git_backup.backup import BackupEngine
from git_backup.cli.handlers import TerminalContentHandler
from git_backup.cli.prompt import ConfirmationPrompt
from git_backup.config import ConfigLoader
from git_backup.core import GitBackupError, SelectAction, get_logger, setup_logging

logger = get_logger("cli")

console = Console()
err_console = Console(stderr=True)


def _abs(path: str) -> str:
    # The engine only accepts absolute paths; resolve relative to cwd here
    return os.path.abspath(os.path.expanduser(path))


def cmd_save(engine: BackupEngine, args: argparse.Namespace) -> int:
    status = 0
    for name in args.files:
        path = _abs(name)
        if engine.on_save(path):
            console.print(f"Backed up {path}", highlight=False)
        else:
            err_console.print(f"Skipped {path} (missing or excluded)", highlight=False)
            status = 1
    return status


def cmd_list(engine: BackupEngine, args: argparse.Namespace) -> int:
    path = _abs(args.file)
    revisions = engine.list_candidates(path)
    if not revisions:
        err_console.print(f"No backups of {path}", highlight=False)
        return 1

    table = Table(title=path, show_header=True, header_style="bold")
    table.add_column("Revision", style="cyan", no_wrap=True)
    table.add_column("Saved")
    for revision in revisions:
        table.add_row(revision.short_id, revision.label)
    console.print(table)
    return 0


def _select(engine: BackupEngine, args: argparse.Namespace, action: SelectAction) -> int:
    path = _abs(args.file)
    handler = TerminalContentHandler(console=console, save_copy=getattr(args, "save", False))
    if not engine.select_action(args.revision, path, action, handler):
        err_console.print(
            f"Revision {args.revision} is not a backup of {path}", highlight=False
        )
        return 1
    return 0


def cmd_show(engine: BackupEngine, args: argparse.Namespace) -> int:
    return _select(engine, args, SelectAction.OPEN_NEW)


def cmd_restore(engine: BackupEngine, args: argparse.Namespace) -> int:
    return _select(engine, args, SelectAction.REPLACE_CURRENT)


def cmd_diff(engine: BackupEngine, args: argparse.Namespace) -> int:
    return _select(engine, args, SelectAction.DIFF)


def cmd_remove(engine: BackupEngine, args: argparse.Namespace) -> int:
    path = _abs(args.file)
    if engine.request_remove(path):
        console.print(f"Removed all backups of {path}", highlight=False)
        return 0
    err_console.print(f"Nothing removed for {path}", highlight=False)
    return 1


def cmd_combine(engine: BackupEngine, args: argparse.Namespace) -> int:
    path = _abs(args.file)
    if engine.request_combine(path):
        console.print(f"Combined backups of {path} into one revision", highlight=False)
        return 0
    err_console.print(f"Nothing combined for {path}", highlight=False)
    return 1


def cmd_gc(engine: BackupEngine, args: argparse.Namespace) -> int:
    return 0 if engine.gc() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-backup",
        description="Keep every saved version of a file in a hidden git repository.",
    )
    parser.add_argument("--version", action="version", version=f"git-backup {__version__}")
    parser.add_argument("--config", type=Path, help="Extra JSON or YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    p = sub.add_parser("save", help="Back up the current content of files")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_save)

    p = sub.add_parser("list", help="List the backups of a file, newest first")
    p.add_argument("file")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Print a backup of a file")
    p.add_argument("revision")
    p.add_argument("file")
    p.add_argument("--save", action="store_true", help="Write NAME.~REV~ next to the file")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("restore", help="Replace a file with one of its backups")
    p.add_argument("revision")
    p.add_argument("file")
    p.set_defaults(func=cmd_restore)

    p = sub.add_parser("diff", help="Diff a backup against the current file")
    p.add_argument("revision")
    p.add_argument("file")
    p.set_defaults(func=cmd_diff)

    p = sub.add_parser("remove", help="Delete every backup of a file")
    p.add_argument("file")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("combine", help="Collapse the backups of a file into one")
    p.add_argument("file")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_combine)

    p = sub.add_parser("gc", help="Compact the backup store")
    p.set_defaults(func=cmd_gc)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the git-backup CLI.

    Returns:
        Exit code (0 for success, 1 for error or nothing done).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(level=logging.DEBUG if args.verbose else None, file_logging=False)

    try:
        config = ConfigLoader(config_file=args.config).load_all()
    except GitBackupError as e:
        err_console.print(f"Error: {e}", highlight=False)
        return 1

    confirm = ConfirmationPrompt(console=err_console, assume_yes=getattr(args, "yes", False))
    engine = BackupEngine(config, confirm=confirm)

    try:
        return args.func(engine, args)
    except GitBackupError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        err_console.print(f"Error: {e}", highlight=False)
        return 1
    except OSError as e:
        err_console.print(f"Error: {e}", highlight=False)
        return 1
    except KeyboardInterrupt:
        err_console.print("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
