"""End-to-end backup history against the real git binary."""

from __future__ import annotations

import os
import re
import sys
import threading
from pathlib import Path

import pytest

from git_backup.backup import BackupEngine
from git_backup.config import CombinePolicy, GitBackupConfig
from git_backup.core import CombiningDisabledError, GitError, HistoryMismatchError

pytestmark = pytest.mark.integration


def contents(engine: BackupEngine, path: Path) -> list[bytes | None]:
    """Content of every revision of ``path``, newest first."""
    return [engine.fetch_content(r.revision_id, str(path)) for r in engine.list_candidates(str(path))]


class TestBackup:
    """Writing and reading revisions."""

    def test_two_saves_two_revisions(self, engine: BackupEngine, sample_file: Path, store_root: Path) -> None:
        assert engine.on_save(str(sample_file)) is True
        assert (store_root / str(sample_file)[1:]).read_text() == "a"
        assert len(engine.list_candidates(str(sample_file))) == 1

        sample_file.write_text("b")
        assert engine.on_save(str(sample_file)) is True

        new, old = engine.list_candidates(str(sample_file))
        assert engine.fetch_content(old.revision_id, str(sample_file)) == b"a"
        assert engine.fetch_content(new.revision_id, str(sample_file)) == b"b"
        assert engine.fetch_content(old.short_id, str(sample_file)) == b"a"

    def test_unchanged_file_still_versioned(self, engine: BackupEngine, sample_file: Path) -> None:
        engine.on_save(str(sample_file))
        engine.on_save(str(sample_file))
        assert contents(engine, sample_file) == [b"a", b"a"]

    def test_binary_content_round_trips(self, engine: BackupEngine, temp_home: Path) -> None:
        blob = temp_home / "data.bin"
        payload = bytes(range(256)) + b"\r\n\r\n"
        blob.write_bytes(payload)

        engine.on_save(str(blob))

        assert contents(engine, blob) == [payload]

    def test_revisions_are_per_file(self, engine: BackupEngine, sample_file: Path, temp_home: Path) -> None:
        other = temp_home / "other.txt"
        other.write_text("x")
        engine.on_save(str(sample_file))
        engine.on_save(str(other))
        sample_file.write_text("b")
        engine.on_save(str(sample_file))

        assert contents(engine, sample_file) == [b"b", b"a"]
        assert contents(engine, other) == [b"x"]
        other_rev = engine.list_candidates(str(other))[0].revision_id
        assert engine.fetch_content(other_rev, str(sample_file)) is None

    def test_excluded_file(self, store_root: Path, temp_home: Path) -> None:
        secret = temp_home / "secret.txt"
        secret.write_text("hunter2")
        config = GitBackupConfig(
            store_path=store_root,
            exclusion_rules=[re.escape(str(temp_home)) + r"/secret\.txt"],
        )
        engine = BackupEngine(config)

        assert engine.on_save(str(secret)) is False
        assert engine.list_candidates(str(secret)) == []
        assert not store_root.exists()

    def test_missing_file(self, engine: BackupEngine, temp_home: Path) -> None:
        assert engine.on_save(str(temp_home / "nope.txt")) is False

    def test_untracked_file_has_no_revisions(self, engine: BackupEngine, sample_file: Path, temp_home: Path) -> None:
        engine.on_save(str(sample_file))
        assert engine.list_candidates(str(temp_home / "never-saved.txt")) == []

    def test_multi_line_labels_rejected(self, store_root: Path, sample_file: Path) -> None:
        engine = BackupEngine(GitBackupConfig(store_path=store_root, log_format="%cd%n%ar"))
        engine.on_save(str(sample_file))

        with pytest.raises(HistoryMismatchError):
            engine.list_candidates(str(sample_file))

    def test_existing_empty_store_dir_adopted(self, engine: BackupEngine, sample_file: Path, store_root: Path) -> None:
        store_root.mkdir()
        assert engine.on_save(str(sample_file)) is True
        assert (store_root / ".git").is_dir()

    def test_concurrent_saves(self, engine: BackupEngine, temp_home: Path) -> None:
        files = []
        for i in range(6):
            path = temp_home / f"f{i}.txt"
            path.write_text(str(i))
            files.append(path)
        errors: list[BaseException] = []

        def save(path: Path) -> None:
            try:
                engine.on_save(str(path))
            except BaseException as e:
                errors.append(e)

        threads = [threading.Thread(target=save, args=(p,)) for p in files]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        for i, path in enumerate(files):
            assert contents(engine, path) == [str(i).encode()]


class TestRemove:
    """Deleting a file's history."""

    def test_only_file_in_store(self, engine: BackupEngine, sample_file: Path, store_root: Path) -> None:
        engine.on_save(str(sample_file))
        stale = engine.list_candidates(str(sample_file))[0].revision_id

        assert engine.request_remove(str(sample_file)) is True

        assert engine.list_candidates(str(sample_file)) == []
        assert engine.fetch_content(stale, str(sample_file)) is None
        assert not (store_root / str(sample_file)[1:]).exists()
        assert engine.on_save(str(sample_file)) is True
        assert contents(engine, sample_file) == [b"a"]

    def test_other_files_survive(self, engine: BackupEngine, sample_file: Path, temp_home: Path) -> None:
        other = temp_home / "other.txt"
        other.write_text("x")
        engine.on_save(str(sample_file))
        engine.on_save(str(other))
        sample_file.write_text("b")
        engine.on_save(str(sample_file))
        stale = engine.list_candidates(str(sample_file))[0].revision_id

        assert engine.request_remove(str(sample_file)) is True

        assert engine.list_candidates(str(sample_file)) == []
        assert engine.fetch_content(stale, str(sample_file)) is None
        assert contents(engine, other) == [b"x"]
        assert sample_file.read_text() == "b"

    def test_path_needing_quotes(self, engine: BackupEngine, temp_home: Path) -> None:
        odd = temp_home / "it's a $file*.txt"
        odd.write_text("q")
        keep = temp_home / "keep.txt"
        keep.write_text("k")
        engine.on_save(str(odd))
        engine.on_save(str(keep))

        assert engine.request_remove(str(odd)) is True

        assert engine.list_candidates(str(odd)) == []
        assert contents(engine, keep) == [b"k"]

    def test_untracked(self, engine: BackupEngine, sample_file: Path) -> None:
        assert engine.request_remove(str(sample_file)) is False


class TestAwkwardNames:
    """Names that do not survive a round trip through text untouched."""

    @pytest.mark.skipif(sys.platform == "darwin", reason="APFS rejects names that are not UTF-8")
    def test_undecodable_name(self, engine: BackupEngine, temp_home: Path) -> None:
        odd = temp_home / os.fsdecode(b"caf\xe9.txt")
        odd.write_bytes(b"latin-1")
        keep = temp_home / "keep.txt"
        keep.write_text("k")

        assert engine.on_save(str(odd)) is True
        engine.on_save(str(keep))
        assert contents(engine, odd) == [b"latin-1"]

        assert engine.request_remove(str(odd)) is True
        assert engine.list_candidates(str(odd)) == []
        assert contents(engine, keep) == [b"k"]

    def test_trailing_space_is_its_own_file(self, engine: BackupEngine, temp_home: Path) -> None:
        plain = temp_home / "name"
        plain.write_text("plain")
        spaced = temp_home / "name "
        spaced.write_text("spaced")
        engine.on_save(str(plain))
        engine.on_save(str(spaced))

        assert contents(engine, spaced) == [b"spaced"]
        assert contents(engine, plain) == [b"plain"]

        assert engine.request_remove(str(spaced)) is True
        assert engine.list_candidates(str(spaced)) == []
        assert contents(engine, plain) == [b"plain"]

    def test_percent_in_name(self, engine: BackupEngine, temp_home: Path) -> None:
        pct = temp_home / "100%.txt"
        pct.write_text("p")
        encoded_lookalike = temp_home / "100%25.txt"
        encoded_lookalike.write_text("e")
        engine.on_save(str(pct))
        engine.on_save(str(encoded_lookalike))

        assert contents(engine, pct) == [b"p"]
        assert contents(engine, encoded_lookalike) == [b"e"]
        assert engine.request_remove(str(pct)) is True
        assert contents(engine, encoded_lookalike) == [b"e"]

    @pytest.mark.parametrize("alias", ["/sub/../notes.txt", "/./notes.txt", "//notes.txt"])
    def test_alias_of_saved_file_ignored(
        self, engine: BackupEngine, sample_file: Path, temp_home: Path, alias: str
    ) -> None:
        engine.on_save(str(sample_file))
        aliased = str(temp_home) + alias

        assert engine.on_save(aliased) is False
        assert engine.list_candidates(aliased) == []
        assert len(engine.list_candidates(str(sample_file))) == 1


class TestFailedBackup:
    """A backup whose commit fails leaves the store as it was."""

    @staticmethod
    def fail_next_commit(engine: BackupEngine, monkeypatch: pytest.MonkeyPatch) -> None:
        client = engine.store.client
        real_commit = client.commit
        state = {"fail": True}

        def commit(*args, **kwargs):
            if state.pop("fail", False):
                raise GitError("commit failed", returncode=1)
            return real_commit(*args, **kwargs)

        monkeypatch.setattr(client, "commit", commit)

    def test_new_file(
        self, engine: BackupEngine, sample_file: Path, temp_home: Path, store_root: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        keep = temp_home / "keep.txt"
        keep.write_text("k")
        engine.on_save(str(sample_file))
        engine.on_save(str(keep))
        other = temp_home / "other.txt"
        other.write_text("x")
        self.fail_next_commit(engine, monkeypatch)

        with pytest.raises(GitError):
            engine.on_save(str(other))

        assert engine.store.run_command(["status", "--porcelain"]) == ""
        assert not (store_root / str(other)[1:]).exists()
        assert engine.list_candidates(str(other)) == []
        assert engine.request_remove(str(sample_file)) is True
        assert engine.on_save(str(other)) is True
        assert contents(engine, other) == [b"x"]
        assert contents(engine, keep) == [b"k"]

    def test_tracked_file(
        self, engine: BackupEngine, sample_file: Path, store_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        engine.on_save(str(sample_file))
        sample_file.write_text("b")
        self.fail_next_commit(engine, monkeypatch)

        with pytest.raises(GitError):
            engine.on_save(str(sample_file))

        assert engine.store.run_command(["status", "--porcelain"]) == ""
        assert (store_root / str(sample_file)[1:]).read_text() == "a"
        assert contents(engine, sample_file) == [b"a"]
        assert engine.on_save(str(sample_file)) is True
        assert contents(engine, sample_file) == [b"b", b"a"]


class TestCombine:
    """Collapsing a file's history."""

    def test_combine_keeps_current_content(self, engine: BackupEngine, sample_file: Path, temp_home: Path) -> None:
        other = temp_home / "other.txt"
        other.write_text("x")
        engine.on_save(str(other))
        for text in ("a", "b", "c"):
            sample_file.write_text(text)
            engine.on_save(str(sample_file))
        sample_file.write_text("d")

        assert engine.request_combine(str(sample_file)) is True

        assert contents(engine, sample_file) == [b"d"]
        assert contents(engine, other) == [b"x"]

    def test_combine_single_file_store(self, engine: BackupEngine, sample_file: Path) -> None:
        engine.on_save(str(sample_file))
        engine.on_save(str(sample_file))

        assert engine.request_combine(str(sample_file)) is True
        assert contents(engine, sample_file) == [b"a"]

    def test_combine_missing_file_keeps_history(self, engine: BackupEngine, sample_file: Path) -> None:
        engine.on_save(str(sample_file))
        sample_file.unlink()

        assert engine.request_combine(str(sample_file)) is False
        assert contents(engine, sample_file) == [b"a"]

    def test_disabled_policy_leaves_history(self, store_root: Path, sample_file: Path) -> None:
        engine = BackupEngine(
            GitBackupConfig(store_path=store_root, combine_policy=CombinePolicy.DISABLED)
        )
        engine.on_save(str(sample_file))
        sample_file.write_text("b")
        engine.on_save(str(sample_file))

        with pytest.raises(CombiningDisabledError):
            engine.request_combine(str(sample_file))
        with pytest.raises(CombiningDisabledError):
            engine.request_remove(str(sample_file))

        assert contents(engine, sample_file) == [b"b", b"a"]


class TestGc:
    """Store compaction."""

    def test_gc_keeps_revisions(self, engine: BackupEngine, sample_file: Path) -> None:
        engine.on_save(str(sample_file))
        before = [r.revision_id for r in engine.list_candidates(str(sample_file))]

        assert engine.gc() is True

        assert [r.revision_id for r in engine.list_candidates(str(sample_file))] == before

    def test_gc_without_store(self, engine: BackupEngine) -> None:
        assert engine.gc() is False
