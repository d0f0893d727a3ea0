"""Shared test fixtures for git-backup tests.

Fixture Dependency Hierarchy
============================

::

    isolated_git_env (autouse: HOME and git config isolated per test)

    temp_home (fake filesystem root for files being backed up)
    ├── sample_file (home/u/notes.txt containing "a")
    └── store_root (directory the shadow store lives in)
        ├── config (GitBackupConfig, combine_policy=never_ask)
        │   └── engine (BackupEngine driving the real git binary)
        └── fake_store (ShadowStore over FakeGitClient)

    fake_client (FakeGitClient: records argv, answers from a script)

Notes:
- Tests needing the real git binary are marked ``integration`` and are
  skipped when git is not on PATH.
"""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from pathlib import Path

import pytest

from git_backup.backup import BackupEngine, ShadowStore
from git_backup.config import CombinePolicy, GitBackupConfig
from git_backup.core import GitError, GitOutput, IVersionControlClient


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests when the git binary is unavailable."""
    if shutil.which("git") is not None:
        return
    skip = pytest.mark.skip(reason="git not installed")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


class FakeGitClient(IVersionControlClient):
    """In-memory stand-in for GitClient.

    Responses are matched by argv prefix; the longest matching prefix
    wins. A response may be bytes, str, GitOutput or an exception.
    ``init`` creates the ``.git`` directory so the store sees itself as
    initialized.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.envs: list[Mapping[str, str] | None] = []
        self.responses: dict[tuple[str, ...], object] = {}

    def respond(self, *prefix: str, output: object) -> None:
        self.responses[prefix] = output

    def run(
        self,
        cwd: Path,
        *args: str,
        check: bool = True,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> GitOutput:
        self.calls.append(args)
        self.envs.append(env)
        if args[:1] == ("init",):
            (cwd / ".git").mkdir(parents=True, exist_ok=True)

        matches = [p for p in self.responses if args[: len(p)] == p]
        if not matches:
            return GitOutput(stdout=b"")
        response = self.responses[max(matches, key=len)]
        if isinstance(response, BaseException):
            if isinstance(response, GitError) and not check:
                return GitOutput(stdout=b"", stderr=response.stderr, returncode=response.returncode)
            raise response
        if isinstance(response, GitOutput):
            return response
        if isinstance(response, str):
            response = response.encode()
        return GitOutput(stdout=response)

    def commands(self) -> list[str]:
        """First argument of each call, in order."""
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's git configuration and environment out of tests."""
    home = tmp_path_factory.mktemp("git-home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    for var in ("GIT_BACKUP_STORE_PATH", "GIT_BACKUP_COMBINE_POLICY", "GIT_BACKUP_LOG_FORMAT",
                "GIT_BACKUP_EXCLUSION_RULES", "GIT_BACKUP_GIT_BINARY", "GIT_BACKUP_GIT_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def temp_home(tmp_path: Path) -> Path:
    """Directory standing in for a user's home."""
    home = tmp_path / "home" / "u"
    home.mkdir(parents=True)
    return home


@pytest.fixture
def sample_file(temp_home: Path) -> Path:
    """A small text file to back up."""
    path = temp_home / "notes.txt"
    path.write_text("a")
    return path


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Location of the shadow store (not created)."""
    return tmp_path / "store"


@pytest.fixture
def config(store_root: Path) -> GitBackupConfig:
    """Configuration whose rewrites proceed without asking."""
    return GitBackupConfig(
        store_path=store_root,
        combine_policy=CombinePolicy.NEVER_ASK,
        aggressive_gc=False,
    )


@pytest.fixture
def engine(config: GitBackupConfig) -> BackupEngine:
    """Engine over the real git binary."""
    return BackupEngine(config)


@pytest.fixture
def fake_client() -> FakeGitClient:
    return FakeGitClient()


@pytest.fixture
def fake_store(store_root: Path, fake_client: FakeGitClient) -> ShadowStore:
    return ShadowStore(store_root, fake_client)
