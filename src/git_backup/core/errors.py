"""Exception hierarchy for git-backup."""

from __future__ import annotations


class GitBackupError(Exception):
    """Base class for all git-backup errors."""


class ConfigError(GitBackupError):
    """Configuration could not be loaded or validated."""


class NotAbsolutePathError(GitBackupError):
    """An absolute, normalized path was required but something else was given."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a normalized absolute path: {path!r}")
        self.path = path


class StorePathError(GitBackupError):
    """A mapped path would land outside the backup store."""


class CombiningDisabledError(GitBackupError):
    """History rewriting was requested while the policy disables it."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Combining/removing backups is disabled (file: {path})")
        self.path = path


class GitError(GitBackupError):
    """A git invocation failed or could not be launched.

    Attributes:
        returncode: Exit status of the git process (127 if it never started).
        stderr: Captured standard error output.
    """

    def __init__(self, message: str, returncode: int = 1, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class GitTimeoutError(GitError):
    """A git invocation exceeded its timeout."""


class HistoryMismatchError(GitBackupError):
    """Revision labels and revision ids did not line up."""
