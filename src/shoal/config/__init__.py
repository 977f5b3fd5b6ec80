"""Configuration parsing modules for Shoal."""

from .project_config import (
    LOCK_FILE_NAME,
    PROJECT_FILE_NAME,
    SUPPORTED_PLATFORMS,
    BuildTarget,
    CompilerOptions,
    Directories,
    Language,
    PlatformOptions,
    ProjectConfig,
    ProjectFile,
    split_flags,
)

__all__ = [
    "LOCK_FILE_NAME",
    "PROJECT_FILE_NAME",
    "SUPPORTED_PLATFORMS",
    "BuildTarget",
    "CompilerOptions",
    "Directories",
    "Language",
    "PlatformOptions",
    "ProjectConfig",
    "ProjectFile",
    "split_flags",
]
