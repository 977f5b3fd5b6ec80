"""Unit tests for the content fingerprint cache."""

import json
from unittest.mock import patch

import pytest

from shoal.build.fingerprint_cache import (
    DIGEST_SIZE,
    FileFingerprint,
    FingerprintCache,
    hash_file,
)
from shoal.errors import ConfigError


@pytest.fixture
def source_tree(tmp_path):
    """Create a project with nested sources."""
    src = tmp_path / "src"
    (src / "lib").mkdir(parents=True)
    (src / "main.c").write_text("int main(void) { return 0; }\n")
    (src / "util.c").write_text("int util(void) { return 1; }\n")
    (src / "lib" / "helper.h").write_text("#pragma once\n")
    return tmp_path


@pytest.fixture
def cache(source_tree):
    """Fingerprint cache for the source tree."""
    return FingerprintCache(source_tree, source_tree / "src", source_tree / "shoal.lock")


class TestHashFile:
    """Test content digests."""

    def test_fixed_width_hex(self, tmp_path):
        """Digest is a fixed-width hex string."""
        path = tmp_path / "a.c"
        path.write_text("int a;")
        digest = hash_file(path)
        assert len(digest) == DIGEST_SIZE * 2
        int(digest, 16)

    def test_identical_content_identical_hash(self, tmp_path):
        """Files with the same bytes have the same fingerprint."""
        (tmp_path / "a.c").write_bytes(b"same content")
        (tmp_path / "b.c").write_bytes(b"same content")
        assert hash_file(tmp_path / "a.c") == hash_file(tmp_path / "b.c")

    def test_different_content_different_hash(self, tmp_path):
        """Files with different bytes have different fingerprints."""
        (tmp_path / "a.c").write_bytes(b"int a;")
        (tmp_path / "b.c").write_bytes(b"int b;")
        assert hash_file(tmp_path / "a.c") != hash_file(tmp_path / "b.c")

    def test_missing_file_raises(self, tmp_path):
        """Unreadable files raise OSError."""
        with pytest.raises(OSError):
            hash_file(tmp_path / "missing.c")


class TestComputeSnapshot:
    """Test snapshot computation."""

    def test_recursive_and_ordered(self, cache):
        """Every file is listed, directories are descended, order is sorted."""
        snapshot = cache.compute_snapshot()
        assert [entry.path for entry in snapshot] == [
            "src/lib/helper.h",
            "src/main.c",
            "src/util.c",
        ]

    def test_directories_not_recorded(self, cache, source_tree):
        """Empty directories produce no entries."""
        (source_tree / "src" / "empty").mkdir()
        paths = [entry.path for entry in cache.compute_snapshot()]
        assert "src/empty" not in paths

    def test_missing_source_dir_raises(self, tmp_path):
        """An unreadable source root fails the whole operation."""
        cache = FingerprintCache(tmp_path, tmp_path / "nope", tmp_path / "shoal.lock")
        with pytest.raises(OSError):
            cache.compute_snapshot()

    def test_touch_without_edit_keeps_hash(self, cache, source_tree):
        """Rewriting identical content does not change the snapshot."""
        before = cache.compute_snapshot()
        main = source_tree / "src" / "main.c"
        main.write_text(main.read_text())
        assert cache.compute_snapshot() == before


class TestDiff:
    """Test change detection."""

    def test_no_changes(self, cache):
        """Snapshot followed by diff with no edits is empty."""
        old = cache.compute_snapshot()
        cache.lock_path.touch()
        assert cache.diff(old) == []

    def test_single_mutation(self, cache, source_tree):
        """Mutating one file reports exactly that file."""
        old = cache.compute_snapshot()
        cache.lock_path.touch()
        (source_tree / "src" / "util.c").write_text("int util(void) { return 2; }\n")

        assert cache.diff(old) == ["src/util.c"]

    def test_comparison_is_positional(self, cache, source_tree):
        """Inserting a file shifts later entries and misattributes changes."""
        old = cache.compute_snapshot()
        cache.lock_path.touch()
        # Sorts first, so every existing entry moves down one index
        (source_tree / "src" / "aaa.c").write_text("int aaa;\n")

        changed = cache.diff(old)
        assert changed == ["src/aaa.c", "src/lib/helper.h", "src/main.c"]
        # util.c is past the end of the old snapshot and is never compared
        assert "src/util.c" not in changed

    def test_diff_without_lock_raises_before_reading(self, cache):
        """Missing lock state is a ConfigError and no file is read."""
        with patch("shoal.build.fingerprint_cache.hash_file") as mock_hash:
            with pytest.raises(ConfigError) as exc_info:
                cache.diff([])
            mock_hash.assert_not_called()
        assert "No prior build state" in str(exc_info.value)


class TestRefreshAndPersist:
    """Test refreshing and writing the lock file."""

    def test_refresh_without_lock_raises(self, cache):
        """refresh() requires a lock file."""
        with patch("shoal.build.fingerprint_cache.hash_file") as mock_hash:
            with pytest.raises(ConfigError):
                cache.refresh()
            mock_hash.assert_not_called()

    def test_refresh_replaces_state(self, cache):
        """refresh() stores the new snapshot on the cache."""
        cache.lock_path.touch()
        snapshot = cache.refresh()
        assert cache.snapshot == snapshot
        assert len(snapshot) == 3

    def test_persist_writes_lock_file(self, cache):
        """persist() creates the lock file on a first build."""
        snapshot = cache.persist()

        data = json.loads(cache.lock_path.read_text())
        assert data == {"files": [entry.to_dict() for entry in snapshot]}
        assert not cache.lock_path.with_suffix(".tmp").exists()

    def test_persist_read_failure_leaves_no_lock(self, cache):
        """A fingerprinting failure on a first build creates no lock file."""
        with patch("shoal.build.fingerprint_cache.hash_file", side_effect=OSError("unreadable")):
            with pytest.raises(OSError):
                cache.persist()

        assert not cache.lock_path.exists()
        assert not cache.lock_path.with_suffix(".tmp").exists()

    def test_persist_read_failure_keeps_previous_lock(self, cache):
        """A fingerprinting failure leaves the previous lock file unchanged."""
        cache.persist()
        before = cache.lock_path.read_text()

        with patch("shoal.build.fingerprint_cache.hash_file", side_effect=OSError("unreadable")):
            with pytest.raises(OSError):
                cache.persist()

        assert cache.lock_path.read_text() == before

    def test_persist_write_failure_removes_temp_file(self, cache):
        """A failed lock write leaves neither a lock nor a temporary file."""
        with patch("shoal.build.fingerprint_cache.json.dump", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                cache.persist()

        assert not cache.lock_path.exists()
        assert not cache.lock_path.with_suffix(".tmp").exists()

    def test_persist_empty_tree_deletes_lock(self, tmp_path):
        """An empty source tree removes the lock file instead of writing it."""
        (tmp_path / "src").mkdir()
        cache = FingerprintCache(tmp_path, tmp_path / "src", tmp_path / "shoal.lock")
        cache.lock_path.write_text('{"files": []}')

        assert cache.persist() == []
        assert not cache.lock_path.exists()

    def test_load_round_trip(self, cache):
        """A persisted snapshot loads back unchanged."""
        snapshot = cache.persist()
        fresh = FingerprintCache(cache.project_dir, cache.source_dir, cache.lock_path)
        assert fresh.load() == snapshot

    def test_load_missing_returns_none(self, cache):
        """No lock file loads as None."""
        assert cache.load() is None

    def test_load_corrupt_returns_none(self, cache):
        """A corrupt lock file loads as None."""
        cache.lock_path.write_text("not json {")
        assert cache.load() is None

    def test_from_dict(self):
        """Lock entries deserialize into fingerprints."""
        entry = FileFingerprint.from_dict({"path": "src/main.c", "hash": "00ff"})
        assert entry == FileFingerprint("src/main.c", "00ff")
