"""Unit tests for compiler flag resolution."""

import pytest

from shoal.build.flag_builder import MODE_PRESETS, BuildMode, FlagBuilder, PlatformDetector
from shoal.config import CompilerOptions, Language, PlatformOptions, ProjectConfig
from shoal.errors import ConfigError


@pytest.fixture
def project(tmp_path):
    """Project with base flags and a Linux override for C only."""
    return ProjectConfig(
        name="demo",
        root=tmp_path,
        c_compiler=CompilerOptions("gcc", ["-std=c11"]),
        cxx_compiler=CompilerOptions("g++", ["-std=c++17"]),
        platforms={"linux": PlatformOptions(name="linux", c_flags=["-pthread"])},
    )


class TestPlatformDetector:
    """Test host platform mapping."""

    @pytest.mark.parametrize("system,expected", [
        ("Linux", "linux"),
        ("Darwin", "osx"),
        ("Windows", "windows"),
        ("FreeBSD", "bsd"),
        ("OpenBSD", "bsd"),
        ("DragonFly", "bsd"),
    ])
    def test_supported(self, system, expected):
        assert PlatformDetector.detect_host_platform(system) == expected

    def test_unsupported(self):
        """Hosts outside the fixed platform set are a ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            PlatformDetector.detect_host_platform("SunOS")
        assert "Unsupported operating system" in str(exc_info.value)


class TestResolve:
    """Test the pure flag resolution function."""

    def test_debug_preset(self):
        assert FlagBuilder.resolve(BuildMode.DEBUG, []) == ["-g", "-ggdb", "-Wall", "-Wextra", "-Og"]

    def test_release_preset(self):
        assert FlagBuilder.resolve(BuildMode.RELEASE, []) == ["-Wall", "-Wextra", "-O3"]

    def test_exactly_one_preset(self):
        """Release flags never carry debug symbols and vice versa."""
        release = FlagBuilder.resolve(BuildMode.RELEASE, [])
        debug = FlagBuilder.resolve(BuildMode.DEBUG, [])
        assert "-g" not in release
        assert "-O3" not in debug
        assert release != debug

    def test_order_preset_language_user(self):
        """Mode preset, then language flags, then user flags."""
        flags = FlagBuilder.resolve(BuildMode.RELEASE, ["-std=c11"], "  -DFOO -DBAR=1  ")
        assert flags == MODE_PRESETS[BuildMode.RELEASE] + ["-std=c11", "-DFOO", "-DBAR=1"]

    def test_blank_user_flags_ignored(self):
        assert FlagBuilder.resolve(BuildMode.DEBUG, [], "   ") == MODE_PRESETS[BuildMode.DEBUG]

    def test_quoted_user_flags(self):
        flags = FlagBuilder.resolve(BuildMode.DEBUG, [], '-DNAME="a b"')
        assert flags[-1] == "-DNAME=a b"

    def test_user_flag_tokens_taken_verbatim(self):
        """Tokens already split by the shell are not split again."""
        flags = FlagBuilder.resolve(BuildMode.DEBUG, [], ["-DMSG=a b", "-Wl,-rpath,/opt/lib"])
        assert flags[-2:] == ["-DMSG=a b", "-Wl,-rpath,/opt/lib"]


class TestLanguageFlags:
    """Test platform override selection."""

    def test_override_replaces_base(self, project):
        """The platform's flags replace the base flags entirely."""
        assert FlagBuilder.language_flags(project, Language.C, "linux") == ["-pthread"]

    def test_override_without_language_flags_falls_back(self, project):
        """An override that defines no flags for the language leaves the base flags."""
        assert FlagBuilder.language_flags(project, Language.CXX, "linux") == ["-std=c++17"]

    def test_no_override_for_platform(self, project):
        assert FlagBuilder.language_flags(project, Language.C, "osx") == ["-std=c11"]

    def test_resolve_for_project(self, project):
        flags = FlagBuilder.resolve_for_project(project, BuildMode.DEBUG, "linux", "-DX")
        assert flags == MODE_PRESETS[BuildMode.DEBUG] + ["-pthread", "-DX"]

    def test_resolve_for_project_unsupported_platform(self, project):
        with pytest.raises(ConfigError):
            FlagBuilder.resolve_for_project(project, BuildMode.DEBUG, "haiku")

    def test_resolve_for_project_explicit_language(self, project):
        flags = FlagBuilder.resolve_for_project(
            project, BuildMode.RELEASE, "windows", language=Language.CXX
        )
        assert flags == MODE_PRESETS[BuildMode.RELEASE] + ["-std=c++17"]

    def test_bsd_override_applies(self, project):
        """A [platform:bsd] override is used on BSD hosts."""
        project.platforms["bsd"] = PlatformOptions(name="bsd", c_flags=["-I/usr/local/include"])

        flags = FlagBuilder.resolve_for_project(project, BuildMode.RELEASE, "bsd")

        assert flags == MODE_PRESETS[BuildMode.RELEASE] + ["-I/usr/local/include"]
