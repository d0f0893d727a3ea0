"""Subprocess-backed git client.

Every command is an argument list handed straight to ``subprocess.run``;
nothing is ever interpolated into a shell command line.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

from git_backup.core import GitError, GitOutput, GitTimeoutError, get_logger
from git_backup.core.constants import GIT_TIMEOUT
from git_backup.core.interfaces import IVersionControlClient

logger = get_logger("git.client")

# Inherited variables that would redirect git away from the store or
# override its fixed identity
_SCRUBBED_ENV = frozenset({
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_OBJECT_DIRECTORY",
    "GIT_AUTHOR_NAME",
    "GIT_AUTHOR_EMAIL",
    "GIT_AUTHOR_DATE",
    "GIT_COMMITTER_NAME",
    "GIT_COMMITTER_EMAIL",
    "GIT_COMMITTER_DATE",
})


class GitClient(IVersionControlClient):
    """Runs the git binary synchronously with a timeout."""

    def __init__(self, binary: str = "git", timeout: float = GIT_TIMEOUT) -> None:
        """Initialize the client.

        Args:
            binary: Git executable name or path.
            timeout: Default timeout per invocation in seconds.
        """
        self._binary = binary
        self._timeout = timeout

    @property
    def binary(self) -> str:
        """Git executable used for every command."""
        return self._binary

    @property
    def timeout(self) -> float:
        """Default timeout in seconds."""
        return self._timeout

    def _environment(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        env = {k: v for k, v in os.environ.items() if k not in _SCRUBBED_ENV}
        env["GIT_LITERAL_PATHSPECS"] = "1"
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["LC_ALL"] = "C"
        if extra:
            env.update(extra)
        return env

    def run(
        self,
        cwd: Path,
        *args: str,
        check: bool = True,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> GitOutput:
        """Run git with ``args`` inside ``cwd``.

        Raises:
            GitError: Non-zero exit (when ``check``) or the binary could not
                be started.
            GitTimeoutError: The command did not finish in time.
        """
        command = [self._binary, *args]
        effective_timeout = timeout if timeout is not None else self._timeout
        logger.debug("Running %s in %s", command, cwd)

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                timeout=effective_timeout,
                env=self._environment(env),
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise GitTimeoutError(
                f"git {args[0] if args else ''} timed out after {effective_timeout}s",
                returncode=-1,
            ) from e
        except FileNotFoundError as e:
            raise GitError(
                f"git binary not found: {self._binary}", returncode=127
            ) from e
        except OSError as e:
            raise GitError(f"Cannot run {self._binary}: {e}", returncode=126) from e

        stderr = result.stderr.decode("utf-8", errors="replace")
        if check and result.returncode != 0:
            raise GitError(
                f"git {args[0] if args else ''} failed: {stderr.strip()}",
                returncode=result.returncode,
                stderr=stderr,
            )

        return GitOutput(
            stdout=result.stdout,
            stderr=stderr,
            returncode=result.returncode,
        )
