"""Core package containing interfaces, types, and errors."""

from git_backup.core.errors import (
    CombiningDisabledError,
    ConfigError,
    GitBackupError,
    GitError,
    GitTimeoutError,
    HistoryMismatchError,
    NotAbsolutePathError,
    StorePathError,
)
from git_backup.core.interfaces import (
    IConfigLoader,
    IContentHandler,
    IVersionControlClient,
)
from git_backup.core.logging import get_logger, setup_logging
from git_backup.core.types import GitOutput, Revision, SelectAction

__all__ = [
    "CombiningDisabledError",
    "ConfigError",
    "GitBackupError",
    "GitError",
    "GitOutput",
    "GitTimeoutError",
    "HistoryMismatchError",
    "IConfigLoader",
    "IContentHandler",
    "IVersionControlClient",
    "NotAbsolutePathError",
    "Revision",
    "SelectAction",
    "StorePathError",
    "get_logger",
    "setup_logging",
]
