"""Diffing a stored revision against the live file."""

from __future__ import annotations

import difflib
from dataclasses import dataclass


@dataclass
class RevisionDiff:
    """Unified diff between two versions of one file."""

    content: str = ""
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.is_binary and not self.content

    def get_stat_summary(self) -> str:
        """Get short stat summary."""
        if self.is_binary:
            return "binary files differ"
        return f"{self.additions} insertion(s)(+), {self.deletions} deletion(s)(-)"


def diff_revision(
    old: bytes,
    new: bytes,
    old_label: str = "a",
    new_label: str = "b",
) -> RevisionDiff:
    """Unified diff of ``old`` against ``new``.

    Content that is not valid UTF-8 is reported as binary.
    """
    try:
        old_text = old.decode("utf-8")
        new_text = new.decode("utf-8")
    except UnicodeDecodeError:
        if old == new:
            return RevisionDiff()
        return RevisionDiff(
            content=f"Binary files {old_label} and {new_label} differ\n",
            is_binary=True,
        )

    lines = list(
        difflib.unified_diff(
            old_text.splitlines(keepends=True),
            new_text.splitlines(keepends=True),
            fromfile=old_label,
            tofile=new_label,
        )
    )
    result = RevisionDiff()
    # The first two lines are the ---/+++ headers
    for line in lines[2:]:
        if line.startswith("+"):
            result.additions += 1
        elif line.startswith("-"):
            result.deletions += 1
    result.content = "".join(
        line if line.endswith("\n") else line + "\n\\ No newline at end of file\n"
        for line in lines
    )
    return result
