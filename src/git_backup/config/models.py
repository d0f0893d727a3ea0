"""Configuration models for git-backup.

This module defines the Pydantic model holding every recognized option,
including validation of exclusion patterns and timeouts.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from git_backup.core.constants import (
    DEFAULT_LOG_FORMAT,
    DEFAULT_STORE_PATH,
    GIT_TIMEOUT,
    REWRITE_TIMEOUT,
)


class CombinePolicy(str, Enum):
    """Policy for destructive history rewrites (combine and remove)."""

    ALWAYS_ASK = "always_ask"
    NEVER_ASK = "never_ask"
    DISABLED = "disabled"


class GitBackupConfig(BaseModel):
    """Root configuration model.

    Attributes:
        store_path: Root directory of the shadow store.
        git_binary: Git executable, resolved through PATH when not absolute.
        log_format: ``git log`` format string for revision labels.
        exclusion_rules: Regular expressions; a path fully matching any of
            them is never backed up.
        combine_policy: Whether combine/remove ask, proceed, or refuse.
        git_timeout: Timeout for ordinary git calls in seconds (1-600).
        rewrite_timeout: Timeout for history rewrites in seconds (1-3600).
        aggressive_gc: Use ``git gc --aggressive`` after a rewrite.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",  # Ignore unknown fields
    )

    store_path: Path = Field(default_factory=lambda: DEFAULT_STORE_PATH)
    git_binary: str = "git"
    log_format: str = DEFAULT_LOG_FORMAT
    exclusion_rules: list[str] = Field(default_factory=list)
    combine_policy: CombinePolicy = CombinePolicy.ALWAYS_ASK
    git_timeout: float = Field(default=GIT_TIMEOUT, ge=1, le=600)
    rewrite_timeout: float = Field(default=REWRITE_TIMEOUT, ge=1, le=3600)
    aggressive_gc: bool = True

    @field_validator("store_path")
    @classmethod
    def expand_store_path(cls, v: Path) -> Path:
        """Expand ``~`` so the store root is always absolute-looking."""
        return v.expanduser()

    @field_validator("git_binary", "log_format")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Reject empty strings."""
        if not v or not v.strip():
            raise ValueError("Value must be a non-empty string")
        return v.strip()

    @field_validator("exclusion_rules")
    @classmethod
    def validate_exclusion_rules(cls, v: list[str]) -> list[str]:
        """Ensure every exclusion rule is a valid regular expression."""
        for rule in v:
            try:
                re.compile(rule)
            except re.error as e:
                raise ValueError(f"Invalid exclusion rule {rule!r}: {e}") from e
        return v
