"""Logging for git-backup.

Every module logs under the ``git-backup`` namespace through
:func:`get_logger`. Git invocations are logged at DEBUG, changes to the
store (new revisions, removals, combines, gc) at INFO. The console shows
WARNING and above unless told otherwise; the log file keeps everything.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from git_backup.core.constants import DEFAULT_CONFIG_DIR

ROOT_LOGGER_NAME = "git-backup"
LEVEL_ENV_VAR = "GIT_BACKUP_LOG_LEVEL"

DEFAULT_LOG_FILE = DEFAULT_CONFIG_DIR / "logs" / "git-backup.log"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Rotation: five files of 10 MB
ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def parse_level(value: str | None, default: int = logging.WARNING) -> int:
    """Turn a level name (``"debug"``) or number (``"10"``) into a level."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def get_log_level_from_env() -> int:
    """Console level requested through GIT_BACKUP_LOG_LEVEL, WARNING if unset."""
    return parse_level(os.environ.get(LEVEL_ENV_VAR))


def _console_handler(level: int, rich_console: bool) -> logging.Handler:
    handler: logging.Handler
    if rich_console:
        # stdout carries file content for `show` and `diff`
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler.setLevel(level)
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=ROTATE_BYTES, backupCount=ROTATE_KEEP, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(
    level: int | None = None,
    log_file: Path | None = None,
    console_output: bool = True,
    rich_console: bool = True,
    file_logging: bool = True,
) -> None:
    """Install the git-backup handlers, replacing any installed earlier.

    Args:
        level: Console level. Defaults to GIT_BACKUP_LOG_LEVEL, then WARNING.
        log_file: Log file path, defaults to ``logs/git-backup.log`` under
            the config directory.
        console_output: Log to stderr.
        rich_console: Render console records with rich.
        file_logging: Keep a rotating DEBUG log file.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    if console_output:
        if level is None:
            level = get_log_level_from_env()
        root.addHandler(_console_handler(level, rich_console))
    if file_logging:
        root.addHandler(_file_handler(log_file or DEFAULT_LOG_FILE))


def get_logger(name: str) -> logging.Logger:
    """Logger ``git-backup.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
