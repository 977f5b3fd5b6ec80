"""
Project configuration for Shoal.

This module provides the resolved project value consumed by the build core,
and a read-only loader for shoal.ini project files.

Example shoal.ini:
    [project]
    name = hello
    language = c
    libraries = m

    [directories]
    source_dir = ./src

    [platform:linux]
    c_flags = -pthread

    [bin:tool]
    path = src/tool.c
    flags = -DTOOL

Values support ${section:key} interpolation, so a literal dollar sign is
written '$$' (e.g. -Wl,-rpath,$$ORIGIN).
"""

import configparser
import os
import shlex
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ConfigError

PROJECT_FILE_NAME = "shoal.ini"
LOCK_FILE_NAME = "shoal.lock"

SUPPORTED_PLATFORMS = ("linux", "osx", "windows", "bsd")


class Language(Enum):
    """Source language of a project or standalone binary."""

    C = "c"
    CXX = "cxx"

    @property
    def extension(self) -> str:
        """File extension (without the dot) of sources in this language."""
        return "c" if self is Language.C else "cpp"

    @property
    def display_name(self) -> str:
        return "C" if self is Language.C else "C++"

    @classmethod
    def parse(cls, value: str) -> "Language":
        """
        Parse a language name from a project file.

        Accepts 'c', 'cxx', 'c++' and 'cpp' (case-insensitive).

        Raises:
            ConfigError: If the language is not recognized
        """
        normalized = value.strip().lower()
        if normalized == "c":
            return cls.C
        if normalized in ("cxx", "c++", "cpp"):
            return cls.CXX
        raise ConfigError(f"Unknown language '{value}'. Expected 'c' or 'cxx'.")


@dataclass
class Directories:
    """Project directories, relative to the project root."""

    source_dir: str = "./src"
    build_dir: str = "./build"
    object_dir: str = "./obj"

    def all_dirs(self) -> List[str]:
        return [self.source_dir, self.build_dir, self.object_dir]


@dataclass
class CompilerOptions:
    """Compiler command and base flags for one language."""

    command: str
    flags: List[str] = field(default_factory=list)


@dataclass
class PlatformOptions:
    """
    Per-host overrides.

    A value of None means the platform section does not define flags for
    that language; the project's base flags apply.
    """

    name: str
    c_flags: Optional[List[str]] = None
    cxx_flags: Optional[List[str]] = None

    def flags_for(self, language: Language) -> Optional[List[str]]:
        return self.c_flags if language is Language.C else self.cxx_flags


@dataclass
class BuildTarget:
    """A source file compiled directly into its own executable."""

    name: str
    source_path: str
    language: Language
    flags: List[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """Fully resolved project configuration."""

    name: str
    root: Path
    language: Language = Language.C
    libraries: List[str] = field(default_factory=list)
    library_directories: List[str] = field(default_factory=list)
    directories: Directories = field(default_factory=Directories)
    c_compiler: CompilerOptions = field(default_factory=lambda: CompilerOptions("gcc"))
    cxx_compiler: CompilerOptions = field(default_factory=lambda: CompilerOptions("g++"))
    platforms: Dict[str, PlatformOptions] = field(default_factory=dict)
    binaries: List[BuildTarget] = field(default_factory=list)

    def __post_init__(self):
        self.root = Path(self.root).resolve()

    def compiler_for(self, language: Language) -> CompilerOptions:
        return self.c_compiler if language is Language.C else self.cxx_compiler

    @property
    def source_dir(self) -> Path:
        return self.root / self.directories.source_dir

    @property
    def build_dir(self) -> Path:
        return self.root / self.directories.build_dir

    @property
    def object_dir(self) -> Path:
        return self.root / self.directories.object_dir

    @property
    def lock_path(self) -> Path:
        return self.root / LOCK_FILE_NAME

    @staticmethod
    def executable_name(name: str) -> str:
        """Append the host executable suffix to a binary name."""
        return f"{name}.exe" if sys.platform == "win32" else name

    def find_binary(self, name: str) -> Optional[BuildTarget]:
        for binary in self.binaries:
            if binary.name == name:
                return binary
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root: Path) -> "ProjectConfig":
        """
        Build a project from plain data.

        Args:
            data: Mapping with the keys of ProjectConfig; 'language' may be a
                string, 'directories' a mapping, 'binaries' a list of mappings
                with name/path/language/flags, 'platforms' a mapping of
                platform name to {c_flags, cxx_flags}
            root: Project root directory

        Returns:
            ProjectConfig instance
        """
        if "name" not in data:
            raise ConfigError("Project is missing required field: name")

        language = data.get("language", Language.C)
        if isinstance(language, str):
            language = Language.parse(language)

        directories = data.get("directories", {})
        if isinstance(directories, dict):
            directories = Directories(**directories)

        binaries = []
        for entry in data.get("binaries", []):
            if isinstance(entry, BuildTarget):
                binaries.append(entry)
                continue
            bin_language = entry.get("language", language)
            if isinstance(bin_language, str):
                bin_language = Language.parse(bin_language)
            binaries.append(BuildTarget(
                name=entry["name"],
                source_path=entry["path"],
                language=bin_language,
                flags=list(entry.get("flags", [])),
            ))

        platforms = {}
        for platform_name, options in data.get("platforms", {}).items():
            if platform_name not in SUPPORTED_PLATFORMS:
                raise ConfigError(
                    f"Unknown platform '{platform_name}'. "
                    + f"Supported platforms: {', '.join(SUPPORTED_PLATFORMS)}"
                )
            if isinstance(options, PlatformOptions):
                platforms[platform_name] = options
            else:
                platforms[platform_name] = PlatformOptions(
                    name=platform_name,
                    c_flags=options.get("c_flags"),
                    cxx_flags=options.get("cxx_flags"),
                )

        c_compiler = CompilerOptions(
            os.environ.get("SHOAL_CC") or data.get("c_compiler", "gcc"),
            list(data.get("c_flags", [])),
        )
        cxx_compiler = CompilerOptions(
            os.environ.get("SHOAL_CXX") or data.get("cxx_compiler", "g++"),
            list(data.get("cxx_flags", [])),
        )

        return cls(
            name=data["name"],
            root=root,
            language=language,
            libraries=list(data.get("libraries", [])),
            library_directories=list(data.get("library_directories", [])),
            directories=directories,
            c_compiler=c_compiler,
            cxx_compiler=cxx_compiler,
            platforms=platforms,
            binaries=binaries,
        )


def _split_list(value: Optional[str]) -> List[str]:
    """Split a whitespace and/or comma separated INI value."""
    if not value:
        return []
    items = []
    for line in value.split("\n"):
        for item in line.replace(",", " ").split():
            if item:
                items.append(item)
    return items


def split_flags(value: Optional[str]) -> List[str]:
    """Split a compiler flag string the way a POSIX shell would.

    Commas are kept, so linker flags such as -Wl,-rpath,/opt/lib survive,
    and quoted values stay one argument.

    Example:
        >>> split_flags('-DFOO="bar baz" -DTEST')
        ['-DFOO=bar baz', '-DTEST']
    """
    if not value:
        return []
    try:
        return shlex.split(value)
    except ValueError:
        return value.split()


class ProjectFile:
    """
    Parser for shoal.ini project files.

    Usage:
        project = ProjectFile(Path("shoal.ini")).load()
    """

    REQUIRED_FIELDS = {"name"}

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with a shoal.ini file.

        Args:
            ini_path: Path to the shoal.ini file

        Raises:
            ConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = Path(ini_path)

        if not self.ini_path.exists():
            raise ConfigError(f"Project file not found: {self.ini_path}")

        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigError(f"Failed to parse {self.ini_path}: {e}") from e

    def _section(self, name: str) -> Dict[str, str]:
        if name not in self.config:
            return {}
        try:
            return {key: (value or "").strip() for key, value in self.config[name].items()}
        except configparser.Error as e:
            raise ConfigError(
                f"Invalid value in {self.ini_path} [{name}]: {e}. "
                + "Write a literal '$' as '$$'."
            ) from e

    def get_sections(self, prefix: str) -> List[str]:
        """
        Get the names of all sections with the given prefix.

        Example:
            For [bin:tool] and [bin:bench], get_sections('bin') returns
            ['tool', 'bench']
        """
        names = []
        for section in self.config.sections():
            if section.startswith(f"{prefix}:"):
                names.append(section.split(":", 1)[1])
        return names

    def to_dict(self) -> Dict[str, Any]:
        """Flatten the INI sections into the mapping ProjectConfig.from_dict expects."""
        project = self._section("project")
        missing_fields = self.REQUIRED_FIELDS - {k for k, v in project.items() if v}
        if missing_fields:
            raise ConfigError(
                f"{self.ini_path} [project] is missing required fields: "
                + f"{', '.join(sorted(missing_fields))}"
            )

        language = project.get("language") or "c"
        data: Dict[str, Any] = {
            "name": project["name"],
            "language": language,
            "libraries": _split_list(project.get("libraries")),
            "library_directories": _split_list(project.get("library_directories")),
            "directories": {
                key: value
                for key, value in self._section("directories").items()
                if key in ("source_dir", "build_dir", "object_dir") and value
            },
        }

        compiler = self._section("compiler")
        if compiler.get("c"):
            data["c_compiler"] = compiler["c"]
        if compiler.get("cxx"):
            data["cxx_compiler"] = compiler["cxx"]
        data["c_flags"] = split_flags(compiler.get("c_flags"))
        data["cxx_flags"] = split_flags(compiler.get("cxx_flags"))

        platforms = {}
        for platform_name in self.get_sections("platform"):
            section = self._section(f"platform:{platform_name}")
            platforms[platform_name] = {
                "c_flags": split_flags(section["c_flags"]) if "c_flags" in section else None,
                "cxx_flags": split_flags(section["cxx_flags"]) if "cxx_flags" in section else None,
            }
        data["platforms"] = platforms

        binaries = []
        for bin_name in self.get_sections("bin"):
            section = self._section(f"bin:{bin_name}")
            if not section.get("path"):
                raise ConfigError(f"{self.ini_path} [bin:{bin_name}] is missing required field: path")
            binaries.append({
                "name": bin_name,
                "path": section["path"],
                "language": section.get("language") or language,
                "flags": split_flags(section.get("flags")),
            })
        data["binaries"] = binaries

        return data

    def load(self) -> ProjectConfig:
        """Load the project, rooted at the directory containing shoal.ini."""
        return ProjectConfig.from_dict(self.to_dict(), self.ini_path.parent)
