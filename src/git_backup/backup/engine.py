"""Backup engine: the surface an editor or CLI front end calls into.

Example:
    from git_backup.backup import BackupEngine
    from git_backup.config import GitBackupConfig

    engine = BackupEngine(GitBackupConfig(store_path=Path("/tmp/store")))

    # From a save hook
    engine.on_save("/home/u/notes.txt")

    # From a picker
    revisions = engine.list_candidates("/home/u/notes.txt")
    engine.select_action(revisions[0].revision_id, "/home/u/notes.txt",
                         SelectAction.DIFF, handler)
"""

from __future__ import annotations

import os
from collections.abc import Callable

from git_backup.backup.exclusions import ExclusionFilter
from git_backup.backup.history import HistoryReader
from git_backup.backup.rewriter import HistoryRewriter
from git_backup.backup.store import ShadowStore
from git_backup.backup.writer import VersionWriter
from git_backup.config.models import CombinePolicy, GitBackupConfig
from git_backup.core import (
    IContentHandler,
    IVersionControlClient,
    NotAbsolutePathError,
    Revision,
    SelectAction,
    get_logger,
)
from git_backup.git.client import GitClient

logger = get_logger("backup.engine")

ConfirmCallback = Callable[[str], bool]


def revision_file_name(abs_path: str, revision_id: str) -> str:
    """Name for a side copy of a revision, e.g. ``notes.txt.~1a2b3c4~``."""
    return f"{os.path.basename(abs_path)}.~{revision_id[:7]}~"


class BackupEngine:
    """Wires the store components together from one configuration.

    The collaborator-facing methods absorb relative paths (nothing to do);
    policy violations and git failures propagate for the caller to report.
    """

    def __init__(
        self,
        config: GitBackupConfig,
        client: IVersionControlClient | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Engine configuration.
            client: Version-control client; defaults to a GitClient built
                from ``config``.
            confirm: Yes/no prompt used under the ALWAYS_ASK policy.
        """
        self._client_override = client
        self._confirm = confirm
        self._build(config)

    def _build(self, config: GitBackupConfig) -> None:
        client = self._client_override or GitClient(config.git_binary, config.git_timeout)
        self.config = config
        self.store = ShadowStore(config.store_path, client, config.rewrite_timeout)
        self.exclusions = ExclusionFilter(config.exclusion_rules)
        self.writer = VersionWriter(self.store, self.exclusions)
        self.reader = HistoryReader(self.store, config.log_format)
        self.rewriter = HistoryRewriter(
            self.store,
            self.writer,
            config.combine_policy,
            aggressive_gc=config.aggressive_gc,
        )

    def apply_config(self, config: GitBackupConfig) -> None:
        """Swap in a new configuration, e.g. from ConfigLoader observers."""
        with self.store.lock.write():
            self._build(config)
        logger.info("Backup engine reconfigured (store: %s)", config.store_path)

    def on_save(self, abs_path: str) -> bool:
        """Back up ``abs_path`` after it was saved.

        Returns:
            True if a revision was written.
        """
        try:
            return self.writer.backup(abs_path)
        except NotAbsolutePathError:
            logger.debug("Ignoring save of path that is not normalized and absolute: %r", abs_path)
            return False

    def list_candidates(self, abs_path: str) -> list[Revision]:
        """Revisions of ``abs_path`` for display, newest first."""
        try:
            return self.reader.list_revisions(abs_path)
        except NotAbsolutePathError:
            return []

    def fetch_content(self, revision_id: str, abs_path: str) -> bytes | None:
        """Content of ``abs_path`` at ``revision_id``, or None if stale."""
        try:
            return self.reader.fetch_content(revision_id, abs_path)
        except NotAbsolutePathError:
            return None

    def select_action(
        self,
        revision_id: str,
        abs_path: str,
        action: SelectAction,
        handler: IContentHandler,
    ) -> bool:
        """Fetch a revision and hand it to ``handler`` for rendering.

        Returns:
            False if the revision is stale or the path unusable; the handler
            is not called in that case.
        """
        content = self.fetch_content(revision_id, abs_path)
        if content is None:
            return False

        action = SelectAction(action)
        if action is SelectAction.OPEN_NEW:
            handler.open_new(abs_path, revision_id, content)
        elif action is SelectAction.REPLACE_CURRENT:
            handler.replace_current(abs_path, revision_id, content)
        else:
            handler.diff(abs_path, revision_id, content)
        return True

    def _confirmed(self, question: str) -> bool:
        policy = self.rewriter.policy
        if policy is not CombinePolicy.ALWAYS_ASK:
            return True
        if self._confirm is None:
            logger.warning("No confirmation prompt available; declining: %s", question)
            return False
        return bool(self._confirm(question))

    def request_remove(self, abs_path: str) -> bool:
        """Delete every backup of ``abs_path`` after confirmation.

        Raises:
            CombiningDisabledError: The policy disables rewrites.
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
        """
        if self.rewriter.policy is not CombinePolicy.DISABLED and not self._confirmed(
            f"Remove all backups of {abs_path}?"
        ):
            return False
        return self.rewriter.remove_file(abs_path)

    def request_combine(self, abs_path: str) -> bool:
        """Collapse the backups of ``abs_path`` into one after confirmation.

        Raises:
            CombiningDisabledError: The policy disables rewrites.
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
        """
        confirmed = False
        if self.rewriter.policy is not CombinePolicy.DISABLED:
            confirmed = self._confirmed(f"Combine all backups of {abs_path} into one?")
            if not confirmed:
                return False
        return self.rewriter.combine(abs_path, confirmed)

    def gc(self) -> bool:
        """Compact the store, best effort."""
        return self.store.gc()
