"""Per-file backup history kept in a hidden git repository.

Components, leaf to root: path mapping, exclusion rules, the shadow
store, the version writer, the history reader and the history rewriter.
BackupEngine wires them together for front ends.
"""

from git_backup.backup.diff import RevisionDiff, diff_revision
from git_backup.backup.engine import BackupEngine, revision_file_name
from git_backup.backup.exclusions import ExclusionFilter, is_excluded
from git_backup.backup.history import HistoryReader
from git_backup.backup.locking import StoreLock, store_lock
from git_backup.backup.paths import (
    is_absolute,
    is_normalized,
    to_absolute,
    to_store_relative,
    trailer_value,
)
from git_backup.backup.rewriter import HistoryRewriter
from git_backup.backup.store import ShadowStore
from git_backup.backup.writer import VersionWriter

__all__ = [
    "BackupEngine",
    "ExclusionFilter",
    "HistoryReader",
    "HistoryRewriter",
    "RevisionDiff",
    "ShadowStore",
    "StoreLock",
    "VersionWriter",
    "diff_revision",
    "is_absolute",
    "is_excluded",
    "is_normalized",
    "revision_file_name",
    "store_lock",
    "to_absolute",
    "to_store_relative",
    "trailer_value",
]
