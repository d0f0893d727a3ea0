"""Command-line front end for git-backup."""

from git_backup.cli.main import main

__all__ = ["main"]
