"""Centralized constants for git-backup."""

from pathlib import Path

# =============================================================================
# Locations
# =============================================================================

# Default root of the shadow store
DEFAULT_STORE_PATH: Path = Path.home() / ".git-backup"

# User configuration directory
DEFAULT_CONFIG_DIR: Path = Path.home() / ".config" / "git-backup"

# =============================================================================
# Timeouts (seconds)
# =============================================================================

# Ordinary git invocations (add, commit, log, show, ...)
GIT_TIMEOUT: float = 10.0

# History rewrite and the compaction that follows it
REWRITE_TIMEOUT: float = 300.0

# =============================================================================
# Commits
# =============================================================================

# Subject of every backup commit
COMMIT_MESSAGE: str = "backup"

# Trailer key naming the store-relative path a commit belongs to
PATH_TRAILER: str = "Backup-Path"

# Fixed committer identity; backups are not attributed to the real user
COMMITTER_NAME: str = "git-backup"
COMMITTER_EMAIL: str = "git-backup@localhost"

# =============================================================================
# History
# =============================================================================

# Default label per revision: commit date, relative age
DEFAULT_LOG_FORMAT: str = "%cd, %ar"
