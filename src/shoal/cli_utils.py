"""CLI utility functions for Shoal.

This module provides common utilities used across CLI commands including:
- Project file discovery (shoal.ini)
- Error handling and formatting
- Logging setup
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from shoal.config import PROJECT_FILE_NAME, ProjectConfig, ProjectFile
from shoal.errors import ConfigError


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for CLI use.

    Args:
        verbose: Log debug messages instead of warnings only
    """
    logger = logging.getLogger()
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)

    for handler in logger.handlers:
        if getattr(handler, "_shoal_handler", False):
            handler.setLevel(level)
            return

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    console_handler._shoal_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)


class ProjectLocator:
    """Finds and loads the project file."""

    MAX_PARENT_SEARCH = 4

    @staticmethod
    def find_project_file(start_dir: Path, max_parents: Optional[int] = None) -> Path:
        """Find shoal.ini in start_dir or one of its parents.

        Args:
            start_dir: Directory to start searching from
            max_parents: How many parent directories to check

        Returns:
            Path to shoal.ini

        Raises:
            ConfigError: If no project file is found
        """
        if max_parents is None:
            max_parents = ProjectLocator.MAX_PARENT_SEARCH

        directory = Path(start_dir).resolve()
        for _ in range(max_parents + 1):
            candidate = directory / PROJECT_FILE_NAME
            if candidate.exists():
                return candidate
            if directory.parent == directory:
                break
            directory = directory.parent

        raise ConfigError(
            f"Could not find {PROJECT_FILE_NAME}, please make sure that you are in a "
            + "valid project directory."
        )

    @staticmethod
    def load_project(start_dir: Path) -> ProjectConfig:
        """Find and load the project configuration."""
        return ProjectFile(ProjectLocator.find_project_file(start_dir)).load()


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_config_error(error: ConfigError) -> None:
        """Handle ConfigError with standard formatting."""
        ErrorFormatter.print_error("Error: Invalid configuration", str(error))
        sys.exit(1)

    @staticmethod
    def handle_permission_error(error: PermissionError) -> None:
        """Handle PermissionError with standard formatting."""
        ErrorFormatter.print_error("Error: Permission denied", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
