"""Git process invocation."""

from git_backup.git.client import GitClient

__all__ = ["GitClient"]
