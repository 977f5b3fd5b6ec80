"""
Error taxonomy for Shoal.

Every failure the build core reports is one of these exception types:
- ConfigError: missing lock state, unsupported host platform, bad project file
- BuildError: no compilable files, object relocation failure
- CompileError: an external compiler/linker process exited non-zero
"""

from typing import List, Optional


class ShoalError(Exception):
    """Base class for all Shoal errors."""
    pass


class ConfigError(ShoalError):
    """Raised for configuration problems detected before any process is spawned."""
    pass


class BuildError(ShoalError):
    """Raised when the build pipeline cannot continue."""
    pass


class CompileError(ShoalError):
    """Raised when a compile or link process exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
