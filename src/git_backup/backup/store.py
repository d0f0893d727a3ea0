"""Lifecycle of the shadow store.

The store is an ordinary git repository whose work tree mirrors the real
filesystem. It is created lazily by the first backup and every other
component talks to git only through the methods below.
"""

from __future__ import annotations

from pathlib import Path

from git_backup.backup.locking import StoreLock, store_lock
from git_backup.backup.paths import store_file
from git_backup.core import GitError, get_logger
from git_backup.core.constants import (
    COMMITTER_EMAIL,
    COMMITTER_NAME,
    REWRITE_TIMEOUT,
)
from git_backup.core.interfaces import IVersionControlClient

logger = get_logger("backup.store")


class ShadowStore:
    """A git repository holding backups, rooted at ``root``.

    Attributes:
        root: Store root directory.
        client: Version-control client used for every command.
        lock: Reader/writer lock shared by all users of this root.
    """

    def __init__(
        self,
        root: Path,
        client: IVersionControlClient,
        rewrite_timeout: float = REWRITE_TIMEOUT,
    ) -> None:
        self.root = root.expanduser()
        self.client = client
        self.rewrite_timeout = rewrite_timeout
        self.lock: StoreLock = store_lock(self.root)

    @property
    def git_dir(self) -> Path:
        return self.root / ".git"

    @property
    def is_initialized(self) -> bool:
        """Whether the repository metadata exists."""
        return self.git_dir.is_dir()

    def ensure_initialized(self) -> bool:
        """Create and initialize the store if its metadata is missing.

        Idempotent; concurrent callers are serialized by the store lock and
        all but the first observe an initialized store.

        Returns:
            True if this call created the repository.

        Raises:
            GitError: ``git init`` or configuring the identity failed.
        """
        with self.lock.write():
            if self.is_initialized:
                return False

            self.root.mkdir(parents=True, exist_ok=True)
            self.client.init(self.root)
            self.client.set_config(self.root, "user.name", COMMITTER_NAME)
            self.client.set_config(self.root, "user.email", COMMITTER_EMAIL)
            # Paths must round-trip byte for byte
            self.client.set_config(self.root, "core.autocrlf", "false")
            logger.info("Initialized backup store at %s", self.root)
            return True

    def run_command(
        self,
        args: list[str],
        strip_trailing_newline: bool = True,
        check: bool = True,
    ) -> str:
        """Run a git command in the store and return its output as text.

        Returns an empty string without running anything when the store is
        not initialized.
        """
        if not self.is_initialized:
            logger.debug("Store %s not initialized; skipping %s", self.root, args)
            return ""
        return self.client.run(self.root, *args, check=check).text(strip_trailing_newline)

    def run_command_bytes(self, args: list[str], check: bool = True) -> bytes:
        """Like :meth:`run_command` but returns raw stdout."""
        if not self.is_initialized:
            return b""
        return self.client.run(self.root, *args, check=check).stdout

    def path_for(self, rel_path: str) -> Path:
        """Work-tree location of a store-relative path."""
        return store_file(self.root, rel_path)

    def tracked_files(self) -> list[str]:
        """Every store-relative path in the index."""
        if not self.is_initialized:
            return []
        return self.client.ls_files(self.root)

    def is_tracked(self, rel_path: str) -> bool:
        """Whether ``rel_path`` is in the index."""
        if not self.is_initialized:
            return False
        return rel_path in self.client.ls_files(self.root, rel_path)

    def has_commits(self) -> bool:
        """Whether HEAD points at a commit."""
        if not self.is_initialized:
            return False
        out = self.client.run(self.root, "rev-parse", "--verify", "--quiet", "HEAD", check=False)
        return out.returncode == 0

    def gc(self, aggressive: bool = False, prune: str | None = None) -> bool:
        """Compact the repository, best effort.

        Returns:
            True if git gc ran and succeeded.
        """
        if not self.is_initialized:
            return False
        with self.lock.write():
            try:
                self.client.gc(
                    self.root,
                    aggressive=aggressive,
                    prune=prune,
                    timeout=self.rewrite_timeout,
                )
            except GitError as e:
                logger.warning("git gc failed in %s: %s", self.root, e)
                return False
        logger.debug("Compacted backup store %s", self.root)
        return True

    def __repr__(self) -> str:
        return f"ShadowStore({self.root})"
