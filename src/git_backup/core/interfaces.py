"""Abstract base classes defining the seams of git-backup.

These interfaces let the engine be driven by different front ends
(editor plugins, the CLI) and let tests substitute the git binary.

Interface Implementation Status:
- IVersionControlClient: Implemented by git.client.GitClient
- IContentHandler: Implemented by cli.handlers.TerminalContentHandler
- IConfigLoader: Implemented by config.loader.ConfigLoader
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from git_backup.core.types import GitOutput


class IVersionControlClient(ABC):
    """Capability for talking to an external version-control binary.

    Only ``run`` is abstract; the named operations build structured
    argument lists on top of it so a fake only has to answer ``run``.
    """

    @abstractmethod
    def run(
        self,
        cwd: Path,
        *args: str,
        check: bool = True,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> GitOutput:
        """Run one command inside ``cwd``.

        Args:
            cwd: Working directory of the command.
            *args: Arguments after the binary name.
            check: Raise GitError on non-zero exit.
            timeout: Override of the default timeout in seconds.
            env: Extra environment variables.

        Returns:
            Captured output.
        """
        ...

    def init(self, cwd: Path) -> None:
        """Create a repository in ``cwd``."""
        self.run(cwd, "init", "--quiet")

    def set_config(self, cwd: Path, key: str, value: str) -> None:
        """Set a repository-local configuration value."""
        self.run(cwd, "config", "--local", key, value)

    def add(self, cwd: Path, path: str) -> None:
        """Stage ``path``, ignoring any ignore rules."""
        self.run(cwd, "add", "--force", "--", path)

    def commit(self, cwd: Path, message: str, *paragraphs: str) -> None:
        """Commit the index, even when nothing changed.

        Args:
            cwd: Repository root.
            message: Commit subject.
            *paragraphs: Additional message paragraphs (e.g. trailers).
        """
        args = ["commit", "--quiet", "--allow-empty", "--no-verify", "--no-gpg-sign"]
        for paragraph in (message, *paragraphs):
            args.extend(["-m", paragraph])
        self.run(cwd, *args)

    def log(self, cwd: Path, *args: str, strip_trailing_newline: bool = True) -> str:
        """Return ``git log`` output as text."""
        return self.run(cwd, "log", *args).text(strip_trailing_newline)

    def show(self, cwd: Path, revision: str, path: str) -> bytes:
        """Return the raw bytes of ``path`` as stored in ``revision``."""
        return self.run(cwd, "show", "--no-textconv", f"{revision}:{path}").stdout

    def ls_files(self, cwd: Path, path: str | None = None) -> list[str]:
        """List paths in the index, optionally limited to ``path``."""
        args = ["ls-files", "-z"]
        if path is not None:
            args.extend(["--", path])
        # Raw bytes: names that are not valid UTF-8 keep their surrogate escapes
        out = self.run(cwd, *args).stdout
        return [os.fsdecode(p) for p in out.split(b"\0") if p]

    def reset(self, cwd: Path, path: str | None = None, hard: bool = False) -> None:
        """Reset the index (and with ``hard`` the work tree) to HEAD.

        Args:
            cwd: Repository root.
            path: Limit the reset to one path; ignored with ``hard``.
            hard: Also discard work-tree changes.
        """
        args = ["reset", "-q"]
        if hard:
            args.append("--hard")
        elif path is not None:
            args.extend(["--", path])
        self.run(cwd, *args)

    def checkout(self, cwd: Path, revision: str, path: str) -> None:
        """Restore ``path`` in the work tree from ``revision``."""
        self.run(cwd, "checkout", "-q", revision, "--", path)

    def remove_cached(self, cwd: Path, path: str) -> None:
        """Drop ``path`` from the index, leaving the work tree alone."""
        self.run(cwd, "rm", "--cached", "-q", "--ignore-unmatch", "--", path)

    def filter_branch(
        self,
        cwd: Path,
        index_filter: str,
        commit_filter: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Rewrite every branch and tag with the given shell filters."""
        args = ["filter-branch", "-f", "--index-filter", index_filter]
        if commit_filter is not None:
            args.extend(["--commit-filter", commit_filter])
        args.extend(["--", "--all"])
        self.run(
            cwd,
            *args,
            timeout=timeout,
            env={"FILTER_BRANCH_SQUELCH_WARNING": "1"},
        )

    def update_ref(self, cwd: Path, ref: str, delete: bool = False) -> None:
        """Delete ``ref`` (the only update the store needs)."""
        if delete:
            self.run(cwd, "update-ref", "-d", ref)

    def read_tree(self, cwd: Path, empty: bool = False) -> None:
        """Reset the index to HEAD, or to nothing when ``empty``."""
        self.run(cwd, "read-tree", "--empty" if empty else "HEAD")

    def reflog_expire(self, cwd: Path) -> None:
        """Expire every reflog entry immediately."""
        self.run(cwd, "reflog", "expire", "--expire=now", "--all")

    def gc(
        self,
        cwd: Path,
        aggressive: bool = False,
        prune: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Compact the repository."""
        args = ["gc", "--quiet"]
        if aggressive:
            args.append("--aggressive")
        if prune is not None:
            args.append(f"--prune={prune}")
        self.run(cwd, *args, timeout=timeout)


class IContentHandler(ABC):
    """Renders revision content on behalf of the engine.

    The engine fetches bytes; what "a new buffer" or "a diff view" means
    is up to the front end.
    """

    @abstractmethod
    def open_new(self, abs_path: str, revision_id: str, content: bytes) -> None:
        """Show ``content`` alongside the live file."""
        ...

    @abstractmethod
    def replace_current(self, abs_path: str, revision_id: str, content: bytes) -> None:
        """Replace the live file's content with ``content``."""
        ...

    @abstractmethod
    def diff(self, abs_path: str, revision_id: str, content: bytes) -> None:
        """Compare ``content`` with the live file."""
        ...


class IConfigLoader(ABC):
    """Abstract base class for configuration loading."""

    @abstractmethod
    def load(self, path: Path) -> dict[str, Any]:
        """Load configuration from a single file.

        Args:
            path: Path to configuration file.

        Returns:
            Configuration dictionary.
        """
        ...

    @abstractmethod
    def merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        ...

    @abstractmethod
    def validate(self, config: dict[str, Any]) -> tuple[bool, list[str]]:
        """Validate configuration against schema.

        Returns:
            Tuple of (is_valid, error_messages).
        """
        ...
