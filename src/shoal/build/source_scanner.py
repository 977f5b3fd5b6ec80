"""
Compilation unit discovery.

This module selects the source files that make up the project executable:
- Only the immediate entries of the source directory are considered
- Subdirectories are skipped
- Files declared as standalone binaries are excluded
- Only files with the project language's extension are kept
"""

from pathlib import Path
from typing import Iterable, List

from ..config import BuildTarget
from ..errors import BuildError


class SourceScanner:
    """
    Scans the project source directory for compilation units.

    Example usage:
        scanner = SourceScanner(project_dir)
        files = scanner.select(project_dir / "src", "c", project.binaries)
    """

    def __init__(self, project_dir: Path):
        """
        Initialize source scanner.

        Args:
            project_dir: Project root; standalone binary paths are relative to it
        """
        self.project_dir = Path(project_dir)

    def _standalone_paths(self, standalone_binaries: Iterable[BuildTarget]) -> set:
        return {
            (self.project_dir / binary.source_path).resolve()
            for binary in standalone_binaries
        }

    def select(
        self,
        source_dir: Path,
        extension: str,
        standalone_binaries: Iterable[BuildTarget] = ()
    ) -> List[Path]:
        """
        Select compilable files.

        Args:
            source_dir: Source directory to scan (non-recursive)
            extension: Language extension without the dot (e.g. 'c', 'cpp')
            standalone_binaries: Declared standalone targets to exclude

        Returns:
            Sorted list of source file paths

        Raises:
            BuildError: If no compilable files are found
            OSError: If the source directory cannot be read
        """
        source_dir = Path(source_dir)
        excluded = self._standalone_paths(standalone_binaries)

        files = []
        for entry in sorted(source_dir.iterdir()):
            if entry.is_dir():
                continue
            if entry.resolve() in excluded:
                continue
            if entry.suffix == f".{extension}":
                files.append(entry)

        if not files:
            raise BuildError(f"No compilable files found in {source_dir}.")

        return files
