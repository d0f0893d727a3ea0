"""Shared value types for git-backup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SelectAction(str, Enum):
    """What to do with the content of a selected revision."""

    OPEN_NEW = "open_new"
    REPLACE_CURRENT = "replace_current"
    DIFF = "diff"


@dataclass(frozen=True)
class Revision:
    """One backed-up snapshot of a file.

    Attributes:
        label: Human-readable label rendered from the configured log format.
        revision_id: Full commit hash of the snapshot.
    """

    label: str
    revision_id: str

    @property
    def short_id(self) -> str:
        """Abbreviated revision id for display."""
        return self.revision_id[:7]


@dataclass
class GitOutput:
    """Captured result of one git invocation."""

    stdout: bytes
    stderr: str = ""
    returncode: int = 0

    def text(self, strip_trailing_newline: bool = True) -> str:
        """Decode stdout as UTF-8.

        Args:
            strip_trailing_newline: Drop trailing newlines from the output.

        Returns:
            Decoded output.
        """
        out = self.stdout.decode("utf-8", errors="replace")
        if strip_trailing_newline:
            out = out.rstrip("\n")
        return out
