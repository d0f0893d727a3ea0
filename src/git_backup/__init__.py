"""git-backup - transparent per-file backups into a hidden git repository."""

try:
    from importlib.metadata import version

    __version__ = version("git-backup")
except Exception:
    __version__ = "0.0.0"  # Fallback for development/testing

__all__ = ["__version__"]
