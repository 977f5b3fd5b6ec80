"""Shoal: an incremental build orchestrator for C/C++ source trees."""

__version__ = "0.1.0"

from .errors import BuildError, CompileError, ConfigError, ShoalError

__all__ = [
    "__version__",
    "ShoalError",
    "ConfigError",
    "BuildError",
    "CompileError",
]
