"""Configuration loading for git-backup."""

from git_backup.config.loader import ConfigLoader
from git_backup.config.models import CombinePolicy, GitBackupConfig

__all__ = ["CombinePolicy", "ConfigLoader", "GitBackupConfig"]
