"""Compilation Flag Builder.

This module resolves the final compiler argument list for a build.

Design:
    - Exactly one build mode preset applies (debug or release)
    - Language flags come from the project's compiler configuration, unless
      the host platform's override defines flags for that language, in which
      case the override replaces them wholesale (no merge)
    - Free-form user flags from the command line are appended last
    - Resolution is a pure function so the project build and the standalone
      binary build share it
"""

import platform
from enum import Enum
from typing import List, Optional, Sequence, Union

from ..config import SUPPORTED_PLATFORMS, Language, ProjectConfig, split_flags
from ..errors import ConfigError


class BuildMode(Enum):
    """Optimization/debug-symbol preset selector."""

    DEBUG = "debug"
    RELEASE = "release"


# A flag string typed on one line, or argv tokens already split by the shell
UserFlags = Union[str, Sequence[str]]

MODE_PRESETS = {
    BuildMode.RELEASE: ["-Wall", "-Wextra", "-O3"],
    BuildMode.DEBUG: ["-g", "-ggdb", "-Wall", "-Wextra", "-Og"],
}


class PlatformDetector:
    """Detects the host platform name used for per-platform overrides."""

    @staticmethod
    def detect_host_platform(system: Optional[str] = None) -> str:
        """Detect the current platform.

        Args:
            system: Value of platform.system() to map (defaults to the host)

        Returns:
            Platform identifier ('linux', 'osx', 'windows' or 'bsd')

        Raises:
            ConfigError: If the operating system is unsupported
        """
        if system is None:
            system = platform.system()
        system = system.lower()

        if system == "linux":
            return "linux"
        elif system == "darwin":
            return "osx"
        elif system == "windows":
            return "windows"
        elif system.endswith("bsd") or system == "dragonfly":
            return "bsd"
        else:
            raise ConfigError(f"Unsupported operating system: {system}")


class FlagBuilder:
    """Builds compiler argument lists from configuration."""

    @staticmethod
    def parse_flag_string(flag_string: str) -> List[str]:
        """Parse a flag string that may contain quoted values.

        Args:
            flag_string: String containing compiler flags

        Returns:
            List of individual flags

        Example:
            >>> FlagBuilder.parse_flag_string('-DFOO="bar baz" -DTEST')
            ['-DFOO=bar baz', '-DTEST']
        """
        return split_flags(flag_string)

    @staticmethod
    def language_flags(project: ProjectConfig, language: Language, platform_name: str) -> List[str]:
        """Select the language flags for a host platform.

        Args:
            project: Resolved project configuration
            language: Language being compiled
            platform_name: Host platform identifier

        Returns:
            The platform override's flags if it defines them for the
            language, otherwise the project's base flags
        """
        override = project.platforms.get(platform_name)
        if override is not None:
            flags = override.flags_for(language)
            if flags is not None:
                return list(flags)
        return list(project.compiler_for(language).flags)

    @staticmethod
    def resolve(mode: BuildMode, language_flags: List[str], user_flags: UserFlags = "") -> List[str]:
        """Resolve the final flag list.

        Args:
            mode: Build mode selecting the preset
            language_flags: Language (or standalone target) flags
            user_flags: Free-form flags from the command line; a string is
                split like a shell would, a sequence is taken verbatim

        Returns:
            Mode preset, then language flags, then user flags
        """
        flags = list(MODE_PRESETS[mode])
        flags.extend(flag for flag in language_flags if flag.strip())
        if isinstance(user_flags, str):
            flags.extend(FlagBuilder.parse_flag_string(user_flags.strip()))
        else:
            flags.extend(flag for flag in user_flags if flag.strip())
        return flags

    @staticmethod
    def resolve_for_project(
        project: ProjectConfig,
        mode: BuildMode,
        platform_name: str,
        user_flags: UserFlags = "",
        language: Optional[Language] = None
    ) -> List[str]:
        """Resolve flags for (language, mode, platform, user flags).

        Raises:
            ConfigError: If platform_name is not a supported platform
        """
        if platform_name not in SUPPORTED_PLATFORMS:
            raise ConfigError(f"Unsupported operating system: {platform_name}")
        if language is None:
            language = project.language
        return FlagBuilder.resolve(
            mode, FlagBuilder.language_flags(project, language, platform_name), user_flags
        )
