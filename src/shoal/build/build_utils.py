"""Build utilities for Shoal.

This module provides filesystem helpers shared by build operations.
"""

import logging
import os
import shutil
import stat
import sys
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List

logger = logging.getLogger(__name__)


def ensure_directories(directories: Iterable[Path]) -> List[Path]:
    """
    Create every missing directory.

    A directory that cannot be created is reported and skipped; the
    remaining directories are still attempted.

    Args:
        directories: Directories to create (parents included)

    Returns:
        Directories that could not be created
    """
    failed = []
    for directory in directories:
        if directory.exists():
            continue
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Could not create directory \"{directory}\": {e}")
            logger.warning(f"Could not create directory {directory}: {e}")
            failed.append(directory)
    return failed


def remove_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    """
    Error handler for shutil.rmtree on Windows.

    Read-only files cannot be deleted on Windows; clear the attribute and
    retry the operation.
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(path: Path, max_retries: int = 3) -> None:
    """
    Remove a directory tree, tolerating read-only and briefly locked files.

    Args:
        path: Path to directory to remove
        max_retries: Maximum number of attempts

    Raises:
        OSError: If directory cannot be removed after all retries
    """
    if not path.exists():
        return

    for attempt in range(max_retries):
        try:
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=remove_readonly)
            else:
                shutil.rmtree(path, onerror=remove_readonly)
            return
        except OSError as e:
            if attempt < max_retries - 1:
                time.sleep(0.5)
            else:
                raise OSError(
                    f"Failed to remove directory {path} after {max_retries} attempts: {e}"
                ) from e
