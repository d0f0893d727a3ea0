"""Version Writer: the single write path into the store."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from git_backup.backup.exclusions import ExclusionFilter
from git_backup.backup.paths import to_store_relative, trailer_value
from git_backup.backup.store import ShadowStore
from git_backup.core import GitError, get_logger
from git_backup.core.constants import COMMIT_MESSAGE, PATH_TRAILER

logger = get_logger("backup.writer")


def path_trailer(rel_path: str) -> str:
    """Commit message paragraph attributing a commit to ``rel_path``."""
    return f"{PATH_TRAILER}: {trailer_value(rel_path)}"


class VersionWriter:
    """Copies files into the store and commits each copy as a revision."""

    def __init__(self, store: ShadowStore, exclusions: ExclusionFilter) -> None:
        self._store = store
        self._exclusions = exclusions

    def can_backup(self, abs_path: str) -> bool:
        """Whether :meth:`backup` would write a revision for ``abs_path``.

        Raises:
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
        """
        to_store_relative(abs_path)
        if not os.path.isfile(abs_path):
            logger.debug("Not backing up missing file: %s", abs_path)
            return False
        if self._exclusions.is_excluded(abs_path):
            logger.debug("Not backing up excluded file: %s", abs_path)
            return False
        return True

    def backup(self, abs_path: str) -> bool:
        """Record the current content of ``abs_path`` as a new revision.

        Every call that gets past the checks creates exactly one revision,
        even when the content did not change. A failed stage or commit is
        rolled back so the store stays clean.

        Returns:
            False if the file is missing or excluded, True once committed.

        Raises:
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
            StorePathError: The mapped path would leave the store.
            GitError: Staging or committing failed.
        """
        if not self.can_backup(abs_path):
            return False

        rel_path = to_store_relative(abs_path)
        store = self._store
        with store.lock.write():
            target = store.path_for(rel_path)
            store.ensure_initialized()
            was_tracked = store.is_tracked(rel_path)

            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(abs_path, target)

            try:
                store.client.add(store.root, rel_path)
                store.client.commit(store.root, COMMIT_MESSAGE, path_trailer(rel_path))
            except GitError:
                self._roll_back(rel_path, target, was_tracked)
                raise

        logger.info("Backed up %s", abs_path)
        return True

    def _roll_back(self, rel_path: str, target: Path, was_tracked: bool) -> None:
        client, root = self._store.client, self._store.root
        try:
            if was_tracked:
                client.reset(root, rel_path)
                client.checkout(root, "HEAD", rel_path)
            else:
                client.remove_cached(root, rel_path)
                target.unlink(missing_ok=True)
        except GitError as e:
            logger.warning("Could not roll back failed backup of %s: %s", rel_path, e)
        else:
            logger.debug("Rolled back failed backup of %s", rel_path)
