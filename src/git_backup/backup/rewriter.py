"""History Rewriter: destroying and collapsing a file's backup history.

Removal rewrites every branch of the store, so any revision id obtained
for the file before the call is invalid afterwards.
"""

from __future__ import annotations

import shlex
import shutil

from git_backup.backup.paths import to_store_relative, trailer_value
from git_backup.backup.store import ShadowStore
from git_backup.backup.writer import VersionWriter
from git_backup.config.models import CombinePolicy
from git_backup.core import CombiningDisabledError, GitError, get_logger
from git_backup.core.constants import PATH_TRAILER

logger = get_logger("backup.rewriter")


def index_filter_for(rel_path: str) -> str:
    """Shell snippet dropping ``rel_path`` from each rewritten tree."""
    return f"git rm --cached --ignore-unmatch --quiet -- {shlex.quote(rel_path)}"


def commit_filter_for(rel_path: str) -> str:
    """Shell snippet skipping the commits attributed to ``rel_path``.

    ``skip_commit`` and ``$GIT_COMMIT`` are provided by filter-branch.
    """
    trailer = shlex.quote(f"--format=%(trailers:key={PATH_TRAILER},valueonly)")
    value = shlex.quote(trailer_value(rel_path))
    return (
        f'if [ "$(git log -1 {trailer} "$GIT_COMMIT")" = {value} ]; '
        'then skip_commit "$@"; '
        'else git commit-tree "$@"; fi'
    )


class HistoryRewriter:
    """Removes or collapses the revisions of single files."""

    def __init__(
        self,
        store: ShadowStore,
        writer: VersionWriter,
        policy: CombinePolicy = CombinePolicy.ALWAYS_ASK,
        aggressive_gc: bool = True,
    ) -> None:
        self._store = store
        self._writer = writer
        self._policy = policy
        self._aggressive_gc = aggressive_gc

    @property
    def policy(self) -> CombinePolicy:
        return self._policy

    def _check_policy(self, abs_path: str) -> None:
        if self._policy is CombinePolicy.DISABLED:
            raise CombiningDisabledError(abs_path)

    def remove_file(self, abs_path: str) -> bool:
        """Strip every revision of ``abs_path`` from the store.

        Returns:
            True if history was rewritten, False if the file had none.

        Raises:
            CombiningDisabledError: The policy disables rewrites.
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
            GitError: The rewrite failed; the store is left as git left it.
        """
        self._check_policy(abs_path)
        rel_path = to_store_relative(abs_path)
        store = self._store

        with store.lock.write():
            target = store.path_for(rel_path)
            if not store.is_tracked(rel_path):
                logger.debug("No backups to remove for %s", abs_path)
                return False

            if store.tracked_files() == [rel_path]:
                self._drop_all_history()
            else:
                self._filter_out(rel_path)

            target.unlink(missing_ok=True)
            self._compact()

        logger.info("Removed all backups of %s", abs_path)
        return True

    def _drop_all_history(self) -> None:
        # Every commit belongs to the one file; filtering would leave
        # nothing to check out, so unset the branch instead.
        client, root = self._store.client, self._store.root
        client.update_ref(root, "HEAD", delete=True)
        client.read_tree(root, empty=True)

    def _filter_out(self, rel_path: str) -> None:
        client, root = self._store.client, self._store.root
        try:
            # filter-branch refuses to run over a dirty index
            client.reset(root, hard=True)
            client.filter_branch(
                root,
                index_filter_for(rel_path),
                commit_filter_for(rel_path),
                timeout=self._store.rewrite_timeout,
            )
        except GitError:
            # filter-branch refuses to start while its scratch dir exists
            shutil.rmtree(root / ".git-rewrite", ignore_errors=True)
            raise

    def _compact(self) -> None:
        client, root = self._store.client, self._store.root
        refs = client.run(root, "for-each-ref", "--format=%(refname)", "refs/original/")
        for ref in refs.text().splitlines():
            client.update_ref(root, ref, delete=True)
        client.reflog_expire(root)
        self._store.gc(aggressive=self._aggressive_gc, prune="now")

    def combine(self, abs_path: str, confirmed: bool) -> bool:
        """Collapse all revisions of ``abs_path`` into one fresh revision.

        Args:
            abs_path: File to collapse.
            confirmed: Whether the user agreed; required under ALWAYS_ASK.

        Returns:
            True if the history now holds exactly the current content. False
            if the call was not confirmed, or the live file is missing or
            excluded (history is left untouched in that case).

        Raises:
            CombiningDisabledError: The policy disables rewrites.
        """
        self._check_policy(abs_path)
        if self._policy is CombinePolicy.ALWAYS_ASK and not confirmed:
            logger.info("Combine of %s not confirmed; nothing changed", abs_path)
            return False

        with self._store.lock.write():
            if not self._writer.can_backup(abs_path):
                return False
            self.remove_file(abs_path)
            return self._writer.backup(abs_path)
