"""Content fingerprint cache for incremental builds.

This module tracks source tree changes between builds, allowing the build
orchestrator to skip recompilation of unchanged files.

Lock file (shoal.lock, project root):
    {
      "files": [
        {"path": "src/main.c", "hash": "9f2c41d0a1b3e5c7"},
        ...
      ]
    }

Design:
    - Fingerprints are 8-byte BLAKE2b digests of full file content, so a
      touch without an edit is not a change and a rewrite with identical
      content is not a change either
    - The source directory is walked recursively in sorted-name order;
      directories are descended, never recorded
    - Snapshots are ordered lists compared index-by-index (old[i] vs new[i]),
      not keyed by path. Adding, removing or renaming a file shifts every
      later index, so changes after that point may be misattributed or missed
    - The lock file's existence is the only "previous build" signal
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DIGEST_SIZE = 8
READ_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class FileFingerprint:
    """Content fingerprint of one file under the source directory."""

    path: str  # Relative to the project root, POSIX separators
    hash: str  # Hex digest, 2 * DIGEST_SIZE characters

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"path": self.path, "hash": self.hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileFingerprint":
        """Create from dictionary."""
        return cls(path=str(data["path"]), hash=str(data["hash"]))


FingerprintSnapshot = List[FileFingerprint]


def hash_file(file_path: Path) -> str:
    """Calculate the content digest of a file.

    Args:
        file_path: Path to file

    Returns:
        Hex digest string

    Raises:
        OSError: If the file cannot be opened or read
    """
    digest = hashlib.blake2b(digest_size=DIGEST_SIZE)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FingerprintCache:
    """Computes, compares and persists fingerprint snapshots of a source tree."""

    def __init__(self, project_dir: Path, source_dir: Path, lock_path: Path):
        """Initialize fingerprint cache.

        Args:
            project_dir: Project root; recorded paths are relative to it
            source_dir: Directory to fingerprint recursively
            lock_path: Path of the lock file holding the persisted snapshot
        """
        self.project_dir = Path(project_dir)
        self.source_dir = Path(source_dir)
        self.lock_path = Path(lock_path)
        self.snapshot: FingerprintSnapshot = []

    def has_lock(self) -> bool:
        """Check whether a previous build state exists."""
        return self.lock_path.exists()

    def _require_lock(self) -> None:
        if not self.has_lock():
            raise ConfigError(
                f"No prior build state: cannot find {self.lock_path.name} in project root "
                + f"({self.project_dir})"
            )

    def relative_path(self, file_path: Path) -> str:
        """Path of a file relative to the project root, POSIX separators."""
        return os.path.relpath(file_path, self.project_dir).replace(os.sep, "/")

    def _list_files(self, directory: Path) -> List[Path]:
        files = []
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            if entry.is_dir():
                files.extend(self._list_files(Path(entry.path)))
            elif entry.is_file():
                files.append(Path(entry.path))
        return files

    def compute_snapshot(self) -> FingerprintSnapshot:
        """Fingerprint every regular file under the source directory.

        Returns:
            Snapshot ordered by traversal order

        Raises:
            OSError: If the source directory or any file cannot be read; no
                partial snapshot is returned
        """
        snapshot = [
            FileFingerprint(path=self.relative_path(file_path), hash=hash_file(file_path))
            for file_path in self._list_files(self.source_dir)
        ]
        logger.debug(f"Fingerprinted {len(snapshot)} files under {self.source_dir}")
        return snapshot

    def diff(self, old: FingerprintSnapshot) -> List[str]:
        """Report files whose content changed since the old snapshot.

        The comparison is positional: entry i of the fresh snapshot is
        reported when its hash differs from entry i of the old one. Entries
        beyond the shorter of the two snapshots are not compared.

        Args:
            old: Snapshot from the previous build

        Returns:
            Relative paths (from the fresh snapshot) of changed entries

        Raises:
            ConfigError: If no lock file exists (checked before reading any file)
            OSError: If the source tree cannot be read
        """
        self._require_lock()

        current = self.compute_snapshot()
        changed = [
            new_entry.path
            for old_entry, new_entry in zip(old, current)
            if old_entry.hash != new_entry.hash
        ]

        if len(old) != len(current):
            logger.warning(
                f"Source tree changed from {len(old)} to {len(current)} files since the last "
                + "build; change detection is positional and may be inaccurate"
            )
        logger.debug(f"{len(changed)} changed file(s): {changed}")
        return changed

    def refresh(self) -> FingerprintSnapshot:
        """Recompute the snapshot and make it the cache's current state.

        Raises:
            ConfigError: If no lock file exists
            OSError: If the source tree cannot be read
        """
        self._require_lock()
        self.snapshot = self.compute_snapshot()
        return self.snapshot

    def load(self) -> Optional[FingerprintSnapshot]:
        """Load the persisted snapshot.

        Returns:
            The snapshot, or None if the lock file is missing or unreadable
        """
        if not self.has_lock():
            logger.debug(f"Lock file not found: {self.lock_path}")
            return None

        try:
            with open(self.lock_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            snapshot = [FileFingerprint.from_dict(entry) for entry in data["files"]]
        except (json.JSONDecodeError, KeyError, TypeError, OSError) as e:
            logger.warning(f"Failed to load build state from {self.lock_path}: {e}")
            return None

        self.snapshot = snapshot
        logger.debug(f"Loaded {len(snapshot)} fingerprints from {self.lock_path}")
        return snapshot

    def save(self, snapshot: FingerprintSnapshot) -> None:
        """Write a snapshot to the lock file atomically.

        Args:
            snapshot: Snapshot to persist
        """
        data = {"files": [entry.to_dict() for entry in snapshot]}

        temp_file = self.lock_path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_file.replace(self.lock_path)
        except OSError:
            temp_file.unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {len(snapshot)} fingerprints to {self.lock_path}")

    def persist(self) -> FingerprintSnapshot:
        """Refresh the snapshot after a successful build and write it out.

        The snapshot is computed before the lock file is touched, so a read
        failure leaves the previous lock file (or its absence) as it was. An
        empty snapshot means the source tree is unusable: the lock file is
        deleted instead of written.

        Returns:
            The refreshed snapshot

        Raises:
            OSError: If the source tree cannot be read or the lock file
                cannot be written
        """
        snapshot = self.compute_snapshot()
        if snapshot:
            self.save(snapshot)
        else:
            logger.warning(f"Could not find any files in {self.source_dir}; removing {self.lock_path.name}")
            self.lock_path.unlink(missing_ok=True)
        self.snapshot = snapshot
        return snapshot
