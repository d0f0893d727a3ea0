"""Configuration sources for git-backup.

Each source knows how to read one layer of configuration: a JSON file,
a YAML file, or the process environment.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

import yaml

from git_backup.core import ConfigError, get_logger

logger = get_logger("config.sources")


class IConfigSource(ABC):
    """Interface for configuration sources."""

    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Load configuration from source.

        Returns:
            Dictionary containing configuration data.
            Returns empty dict if source doesn't exist.

        Raises:
            ConfigError: If source exists but cannot be parsed.
        """
        ...

    @abstractmethod
    def exists(self) -> bool:
        """Check if source exists."""
        ...


class _FileSource(IConfigSource):
    """Common handling for file-backed sources."""

    format_name: ClassVar[str] = ""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Get the file path."""
        return self._path

    def exists(self) -> bool:
        return self._path.exists() and self._path.is_file()

    def load(self) -> dict[str, Any]:
        if not self.exists():
            return {}

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot read %s: %s", self._path, e)
            raise ConfigError(f"Cannot read {self._path}: {e}") from e

        if not text.strip():
            return {}

        data = self._parse(text)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"{self.format_name} root must be a mapping, got {type(data).__name__}"
            )
        return data

    @abstractmethod
    def _parse(self, text: str) -> Any:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._path})"


class JsonFileSource(_FileSource):
    """Load configuration from a JSON file."""

    format_name = "JSON"

    def _parse(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s", self._path, e)
            raise ConfigError(f"Invalid JSON in {self._path}: {e}") from e


class YamlFileSource(_FileSource):
    """Load configuration from a YAML file."""

    format_name = "YAML"

    def _parse(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            logger.warning("Invalid YAML in %s: %s", self._path, e)
            raise ConfigError(f"Invalid YAML in {self._path}: {e}") from e


class EnvironmentSource(IConfigSource):
    """Load configuration from environment variables.

    - GIT_BACKUP_STORE_PATH -> store_path
    - GIT_BACKUP_GIT_BINARY -> git_binary
    - GIT_BACKUP_LOG_FORMAT -> log_format
    - GIT_BACKUP_COMBINE_POLICY -> combine_policy
    - GIT_BACKUP_GIT_TIMEOUT -> git_timeout
    - GIT_BACKUP_EXCLUSION_RULES -> exclusion_rules (os.pathsep separated)
    """

    PREFIX: ClassVar[str] = "GIT_BACKUP_"

    MAPPINGS: ClassVar[dict[str, str]] = {
        "GIT_BACKUP_STORE_PATH": "store_path",
        "GIT_BACKUP_GIT_BINARY": "git_binary",
        "GIT_BACKUP_LOG_FORMAT": "log_format",
        "GIT_BACKUP_COMBINE_POLICY": "combine_policy",
        "GIT_BACKUP_GIT_TIMEOUT": "git_timeout",
        "GIT_BACKUP_EXCLUSION_RULES": "exclusion_rules",
    }

    FLOAT_KEYS: ClassVar[frozenset[str]] = frozenset({"git_timeout"})
    LIST_KEYS: ClassVar[frozenset[str]] = frozenset({"exclusion_rules"})

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        """Initialize environment source.

        Args:
            environ: Environment dictionary. Defaults to os.environ.
        """
        self._environ = environ if environ is not None else dict(os.environ)

    def load(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        for env_var, key in self.MAPPINGS.items():
            value = self._environ.get(env_var)
            if value is not None:
                config[key] = self._convert_value(value, key)
        return config

    def exists(self) -> bool:
        """Environment always exists."""
        return True

    def _convert_value(self, value: str, key: str) -> Any:
        if key in self.LIST_KEYS:
            return [item for item in value.split(os.pathsep) if item]

        if key in self.FLOAT_KEYS:
            try:
                return float(value)
            except ValueError:
                logger.warning("Invalid float value for %s: %s", key, value)
                return value

        return value

    def __repr__(self) -> str:
        return "EnvironmentSource()"
