"""Rendering selected revisions on a terminal."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import BinaryIO

from rich.console import Console
from rich.syntax import Syntax

from git_backup.backup.diff import diff_revision
from git_backup.backup.engine import revision_file_name
from git_backup.core import IContentHandler, get_logger

logger = get_logger("cli.handlers")


def write_atomic(path: Path, content: bytes) -> None:
    """Replace ``path`` with ``content``, keeping its permission bits."""
    mode = path.stat().st_mode if path.exists() else None
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class TerminalContentHandler(IContentHandler):
    """Prints, saves, restores or diffs revision content.

    Attributes:
        save_copy: For ``open_new``, write ``name.~rev~`` next to the file
            instead of printing to stdout.
    """

    def __init__(
        self,
        console: Console | None = None,
        save_copy: bool = False,
        stdout: BinaryIO | None = None,
    ) -> None:
        self._console = console or Console()
        self._stdout = stdout
        self.save_copy = save_copy

    def open_new(self, abs_path: str, revision_id: str, content: bytes) -> None:
        if self.save_copy:
            side_copy = Path(abs_path).with_name(revision_file_name(abs_path, revision_id))
            write_atomic(side_copy, content)
            self._console.print(f"Wrote {side_copy}", highlight=False)
            return
        out = self._stdout or sys.stdout.buffer
        out.write(content)
        out.flush()

    def replace_current(self, abs_path: str, revision_id: str, content: bytes) -> None:
        write_atomic(Path(abs_path), content)
        logger.info("Restored %s from %s", abs_path, revision_id)
        self._console.print(f"Restored {abs_path} from {revision_id[:7]}", highlight=False)

    def diff(self, abs_path: str, revision_id: str, content: bytes) -> None:
        try:
            current = Path(abs_path).read_bytes()
        except FileNotFoundError:
            current = b""
        result = diff_revision(
            content,
            current,
            old_label=revision_file_name(abs_path, revision_id),
            new_label=abs_path,
        )
        if result.is_empty:
            self._console.print("No differences", style="dim")
            return
        if result.is_binary:
            self._console.print(result.content, end="", highlight=False)
            return
        self._console.print(Syntax(result.content, "diff", theme="ansi_dark"))
        self._console.print(result.get_stat_summary(), style="dim")
