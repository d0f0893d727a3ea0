"""Configuration loader for git-backup.

This module implements the ConfigLoader class that handles layered
configuration loading, merging, validation, and live reload.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

from git_backup.config.models import GitBackupConfig
from git_backup.config.sources import (
    EnvironmentSource,
    IConfigSource,
    JsonFileSource,
    YamlFileSource,
)
from git_backup.core import ConfigError, IConfigLoader, get_logger
from git_backup.core.constants import DEFAULT_CONFIG_DIR

logger = get_logger("config.loader")


class ConfigLoader(IConfigLoader):
    """Configuration loader with layered merging.

    Load order (later overrides earlier):
    1. Defaults (from GitBackupConfig)
    2. User settings (~/.config/git-backup/settings.json, else .yaml)
    3. Explicit config file passed by the caller
    4. Environment variables (GIT_BACKUP_*)

    Thread Safety:
    - Uses threading.Lock to protect config access during reload
    - Observers are notified outside the lock to prevent deadlocks
    """

    def __init__(
        self,
        user_dir: Path | None = None,
        config_file: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        """Initialize configuration loader.

        Args:
            user_dir: User configuration directory. Defaults to ~/.config/git-backup
            config_file: Extra JSON or YAML file layered over user settings.
            environ: Environment to read GIT_BACKUP_* from. Defaults to os.environ.
        """
        self._user_dir = user_dir or DEFAULT_CONFIG_DIR
        self._config_file = config_file
        self._environ = environ
        self._config: GitBackupConfig | None = None
        self._observers: list[Callable[[GitBackupConfig], None]] = []
        self._file_watcher: BaseObserver | None = None
        self._lock = threading.Lock()

    @property
    def config(self) -> GitBackupConfig:
        """Get current configuration, loading if necessary."""
        with self._lock:
            if self._config is None:
                self._config = self.load_all()
            return self._config

    @property
    def user_dir(self) -> Path:
        """Get user configuration directory."""
        return self._user_dir

    def load_all(self) -> GitBackupConfig:
        """Load and merge all configuration sources.

        Returns:
            Validated GitBackupConfig with all sources merged.

        Raises:
            ConfigError: If the merged configuration does not validate, or
                the explicit config file has an unsupported format.
        """
        config: dict[str, Any] = GitBackupConfig().model_dump()

        user_json = self._user_dir / "settings.json"
        user_yaml = self._user_dir / "settings.yaml"
        if user_json.exists():
            config = self._load_and_merge(config, JsonFileSource(user_json))
        elif user_yaml.exists():
            config = self._load_and_merge(config, YamlFileSource(user_yaml))

        if self._config_file is not None:
            # An explicitly requested file must parse; do not skip it silently
            config = self.merge(config, self.load(self._config_file))

        config = self._load_and_merge(config, EnvironmentSource(self._environ))

        try:
            return GitBackupConfig.model_validate(config)
        except ValidationError as e:
            logger.error("Configuration validation failed: %s", e)
            raise ConfigError(f"Configuration validation failed: {e}") from e

    def _load_and_merge(
        self,
        base: dict[str, Any],
        source: IConfigSource,
    ) -> dict[str, Any]:
        try:
            if source.exists():
                override = source.load()
                if override:
                    logger.debug("Loaded config from %s", source)
                    return self.merge(base, override)
                logger.debug("Config source %s exists but returned empty", source)
        except ConfigError as e:
            logger.debug("Skipped config source %s: %s", source, e)
        except FileNotFoundError:
            # Deleted between exists() and load()
            logger.debug("Config source %s disappeared before load", source)
        return base

    def load(self, path: Path) -> dict[str, Any]:
        """Load a single configuration file.

        Args:
            path: Path to configuration file.

        Returns:
            Configuration dictionary.

        Raises:
            ConfigError: If file format is not supported or file is invalid.
        """
        suffix = path.suffix.lower()
        if suffix == ".json":
            return JsonFileSource(path).load()
        if suffix in (".yaml", ".yml"):
            return YamlFileSource(path).load()
        raise ConfigError(f"Unsupported configuration format: {suffix}")

    def merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two configuration dictionaries.

        Nested dictionaries are merged recursively; any other value
        (including lists such as exclusion_rules) is replaced.
        """
        result = copy.deepcopy(base)

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self.merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def validate(self, config: dict[str, Any]) -> tuple[bool, list[str]]:
        """Validate configuration against schema."""
        try:
            GitBackupConfig.model_validate(config)
            return True, []
        except ValidationError as e:
            return False, [str(e)]

    def reload(self) -> None:
        """Reload configuration from all sources.

        If reload fails, the old configuration is preserved.
        """
        try:
            new_config = self.load_all()
        except ConfigError as e:
            logger.error("Failed to reload configuration: %s", e)
            return
        with self._lock:
            self._config = new_config
        self._notify_observers(new_config)
        logger.info("Configuration reloaded")

    def watch(self) -> None:
        """Start watching the user configuration directory for changes."""
        if self._file_watcher is not None:
            return

        handler = _ConfigChangeHandler(self)
        self._file_watcher = Observer()

        watched = [self._user_dir]
        if self._config_file is not None:
            watched.append(self._config_file.parent)
        for path in dict.fromkeys(watched):
            if path.is_dir():
                self._file_watcher.schedule(  # type: ignore[no-untyped-call]
                    handler, str(path), recursive=False
                )
                logger.debug("Watching %s for configuration changes", path)

        self._file_watcher.start()  # type: ignore[no-untyped-call]
        logger.info("Configuration file watcher started")

    def stop_watching(self) -> None:
        """Stop watching configuration files. Safe to call multiple times."""
        if self._file_watcher is not None:
            self._file_watcher.stop()  # type: ignore[no-untyped-call]
            self._file_watcher.join(timeout=5.0)
            self._file_watcher = None
            logger.info("Configuration file watcher stopped")

    def add_observer(self, callback: Callable[[GitBackupConfig], None]) -> None:
        """Add observer for configuration changes.

        Args:
            callback: Called with the new GitBackupConfig after each reload.
        """
        if callback not in self._observers:
            self._observers.append(callback)

    def remove_observer(self, callback: Callable[[GitBackupConfig], None]) -> None:
        """Remove a previously registered observer."""
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self, config: GitBackupConfig) -> None:
        for observer in self._observers:
            try:
                observer(config)
            except Exception as e:
                logger.error("Observer error: %s", e)


class _ConfigChangeHandler(FileSystemEventHandler):
    """Debounced reload trigger for settings files."""

    DEBOUNCE_SECONDS = 0.5

    def __init__(self, loader: ConfigLoader) -> None:
        super().__init__()
        self._loader = loader
        self._pending_reload: threading.Timer | None = None
        self._lock = threading.Lock()

    def _schedule_reload(self, src_path: str) -> None:
        with self._lock:
            if self._pending_reload is not None:
                self._pending_reload.cancel()

            def do_reload() -> None:
                with self._lock:
                    self._pending_reload = None
                logger.debug("Debounced config reload triggered by: %s", src_path)
                self._loader.reload()

            self._pending_reload = threading.Timer(self.DEBOUNCE_SECONDS, do_reload)
            self._pending_reload.daemon = True
            self._pending_reload.start()

    @staticmethod
    def _is_config_file(path: str) -> bool:
        # Editors write swap and temp files next to the real one
        if path.endswith((".swp", ".tmp", "~", ".bak")):
            return False
        return path.endswith((".json", ".yaml", ".yml"))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_config_file(str(event.src_path)):
            self._schedule_reload(str(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_config_file(str(event.src_path)):
            self._schedule_reload(str(event.src_path))
