"""History Reader: listing revisions of a file and fetching their content."""

from __future__ import annotations

from git_backup.backup.paths import to_store_relative, trailer_value
from git_backup.backup.store import ShadowStore
from git_backup.core import (
    GitError,
    HistoryMismatchError,
    Revision,
    get_logger,
)
from git_backup.core.constants import DEFAULT_LOG_FORMAT, PATH_TRAILER

logger = get_logger("backup.history")

# Separators that cannot appear in a hash or an encoded trailer value
_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"


def history_format(label_format: str = "") -> str:
    """``git log`` format rendering hash, path trailer and label per commit."""
    return f"%H%x00%(trailers:key={PATH_TRAILER},valueonly)%x00{label_format}%x1e"


def parse_history(output: str, rel_path: str) -> list[Revision]:
    """Pick the revisions attributed to ``rel_path`` out of a log query.

    Args:
        output: ``git log`` output rendered with :func:`history_format`.
        rel_path: Store-relative path to select.

    Returns:
        Matching revisions in log order (newest first).

    Raises:
        HistoryMismatchError: A label spans several lines, so labels could
            not be lined up one per revision.
    """
    wanted = trailer_value(rel_path)
    revisions = []
    for record in output.split(_RECORD_SEP):
        # git ends every record with a newline of its own
        record = record.lstrip("\n")
        if not record:
            continue
        commit, _, rest = record.partition(_FIELD_SEP)
        trailer, _, label = rest.partition(_FIELD_SEP)
        if wanted not in trailer.splitlines():
            continue
        if "\n" in label:
            raise HistoryMismatchError(
                f"Label {label!r} of revision {commit[:7]} spans several lines; "
                "the log format must render exactly one line per revision"
            )
        revisions.append(Revision(label=label, revision_id=commit))
    return revisions


class HistoryReader:
    """Read-only queries over the store."""

    def __init__(self, store: ShadowStore, log_format: str = DEFAULT_LOG_FORMAT) -> None:
        self._store = store
        self._log_format = log_format

    @property
    def log_format(self) -> str:
        return self._log_format

    def _history(self, rel_path: str, label_format: str = "") -> list[Revision]:
        if not self._store.has_commits():
            return []
        # --grep only narrows the walk; parse_history does the exact match
        output = self._store.run_command(
            [
                "log",
                "--fixed-strings",
                f"--grep={PATH_TRAILER}: {trailer_value(rel_path)}",
                f"--format={history_format(label_format)}",
            ],
            strip_trailing_newline=False,
        )
        return parse_history(output, rel_path)

    def list_revisions(self, abs_path: str) -> list[Revision]:
        """Revisions of ``abs_path``, newest first.

        Returns an empty list when the file is not tracked by the store.

        Raises:
            NotAbsolutePathError: ``abs_path`` is empty, relative or not
                normalized.
            HistoryMismatchError: The log format renders multi-line labels.
            GitError: A git query failed.
        """
        rel_path = to_store_relative(abs_path)
        with self._store.lock.read():
            if not self._store.is_tracked(rel_path):
                return []
            return self._history(rel_path, self._log_format)

    def resolve_revision(self, revision_id: str, abs_path: str) -> str | None:
        """Full id of the file revision that ``revision_id`` abbreviates.

        Returns:
            The full hash, or None if no revision of the file matches or the
            prefix is ambiguous.
        """
        rel_path = to_store_relative(abs_path)
        with self._store.lock.read():
            matches = [
                r.revision_id
                for r in self._history(rel_path)
                if r.revision_id.startswith(revision_id)
            ]
        if len(matches) != 1:
            return None
        return matches[0]

    def fetch_content(self, revision_id: str, abs_path: str) -> bytes | None:
        """Exact bytes of ``abs_path`` as stored in ``revision_id``.

        Returns:
            The content, or None when either argument is empty or the
            revision is not (or no longer) one of the file's revisions.

        Raises:
            NotAbsolutePathError: ``abs_path`` is non-empty but relative or
                not normalized.
        """
        if not revision_id or not abs_path:
            return None
        rel_path = to_store_relative(abs_path)

        with self._store.lock.read():
            if not self._store.is_initialized:
                return None
            full_id = self.resolve_revision(revision_id, abs_path)
            if full_id is None:
                logger.debug("Stale revision %s for %s", revision_id, abs_path)
                return None
            try:
                return self._store.client.show(self._store.root, full_id, rel_path)
            except GitError as e:
                # Raced with a rewrite or gc
                logger.debug("Cannot read %s at %s: %s", abs_path, full_id, e)
                return None
