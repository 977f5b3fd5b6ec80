"""
Build orchestration for Shoal projects.

This module coordinates an incremental build from a resolved project
configuration to linked executables. It integrates all build components:
- Flag resolution (mode preset, language/platform flags, user flags)
- Compilation unit selection
- Content fingerprint change detection
- Per-file compilation and object relocation
- Linking against the accumulated object set
- Lock file persistence

State machine (project build):
    Start -> NoLock: compile all | HasLock: detect changes
    Detect changes -> changed: compile subset
                    | unchanged, binary missing: compile all
                    | unchanged, binary present: done (skip)
    Compile -> Link -> Persist cache -> Done
    Any compile or link failure ends the build with no cache update.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..config import BuildTarget, ProjectConfig
from ..errors import BuildError, CompileError, ConfigError, ShoalError
from .build_utils import ensure_directories, safe_rmtree
from .compilation_executor import CompilationExecutor, ProcessRunner, SubprocessRunner
from .fingerprint_cache import FingerprintCache
from .flag_builder import BuildMode, FlagBuilder, PlatformDetector, UserFlags
from .source_scanner import SourceScanner

logger = logging.getLogger(__name__)

BinSelector = Union[str, Sequence[str], None]


@dataclass
class BinaryResult:
    """Result of building one standalone binary."""

    name: str
    success: bool
    executable: Optional[Path]
    message: str


@dataclass
class BuildResult:
    """Result of a complete build operation."""

    success: bool
    mode: BuildMode
    executable: Optional[Path]
    build_time: float
    message: str
    compiled: List[Path] = field(default_factory=list)
    skipped: bool = False
    binaries: List[BinaryResult] = field(default_factory=list)


class BuildOrchestrator:
    """
    Orchestrates incremental builds of C/C++ projects.

    Example usage:
        orchestrator = BuildOrchestrator()
        result = orchestrator.build(project, BuildMode.RELEASE)
        if result.success:
            print(f"Executable: {result.executable}")
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        verbose: bool = False,
        show_progress: bool = True,
        platform_name: Optional[str] = None
    ):
        """
        Initialize build orchestrator.

        Args:
            runner: Process spawning capability (defaults to SubprocessRunner)
            verbose: Pass -v to the compiler
            show_progress: Show a progress bar while compiling
            platform_name: Host platform override (detected when None)
        """
        self.runner = runner or SubprocessRunner()
        self.verbose = verbose
        self.show_progress = show_progress
        self.platform_name = platform_name

    def _executor(self, project: ProjectConfig, verbose: bool) -> CompilationExecutor:
        return CompilationExecutor(
            self.runner, project.root, verbose=verbose, show_progress=self.show_progress
        )

    def build(
        self,
        project: ProjectConfig,
        mode: BuildMode = BuildMode.DEBUG,
        bin_selector: BinSelector = None,
        verbose: Optional[bool] = None,
        extra_flags: UserFlags = ""
    ) -> BuildResult:
        """
        Execute a build.

        Args:
            project: Resolved project configuration
            mode: Debug or release
            bin_selector: Name(s) of standalone binaries, or 'all'; None for
                a project build
            verbose: Override verbose setting
            extra_flags: Free-form compiler flags appended last

        Returns:
            BuildResult with build status and output paths
        """
        start_time = time.time()
        verbose_mode = verbose if verbose is not None else self.verbose

        try:
            if bin_selector:
                return self._build_binaries(project, mode, bin_selector, verbose_mode, extra_flags, start_time)
            return self._build_project(project, mode, verbose_mode, extra_flags, start_time)
        except (ShoalError, OSError) as e:
            logger.debug(f"Build failed: {type(e).__name__}: {e}")
            return BuildResult(
                success=False,
                mode=mode,
                executable=None,
                build_time=time.time() - start_time,
                message=str(e),
            )

    def _build_project(
        self,
        project: ProjectConfig,
        mode: BuildMode,
        verbose: bool,
        extra_flags: UserFlags,
        start_time: float
    ) -> BuildResult:
        platform_name = self.platform_name or PlatformDetector.detect_host_platform()
        flags = FlagBuilder.resolve_for_project(project, mode, platform_name, extra_flags)
        compiler = project.compiler_for(project.language).command

        build_path = project.build_dir / mode.value
        object_path = project.object_dir / mode.value
        executable = build_path / project.executable_name(project.name)

        ensure_directories([project.source_dir, project.build_dir, project.object_dir, object_path, build_path])

        compilable = SourceScanner(project.root).select(
            project.source_dir, project.language.extension, project.binaries
        )

        cache = FingerprintCache(project.root, project.source_dir, project.lock_path)
        if cache.has_lock():
            old_snapshot = cache.load()
            if old_snapshot is None:
                print("Build state unreadable. Compiling everything.")
            else:
                changed = set(cache.diff(old_snapshot))
                if changed:
                    compilable = [f for f in compilable if cache.relative_path(f) in changed]
                elif not executable.exists():
                    print("Binary missing. Compiling anyway.")
                else:
                    print("No compilation needed.")
                    return BuildResult(
                        success=True,
                        mode=mode,
                        executable=executable,
                        build_time=time.time() - start_time,
                        message="No compilation needed",
                        skipped=True,
                    )

        if verbose:
            print(f"Flags: {' '.join(flags)}")

        executor = self._executor(project, verbose)
        compiled = executor.compile_objects(compiler, flags, compilable, object_path)

        objects = sorted(p for p in object_path.iterdir() if p.is_file())
        executor.link(
            compiler, objects, flags, executable, project.library_directories, project.libraries
        )

        cache.persist()

        return BuildResult(
            success=True,
            mode=mode,
            executable=executable,
            build_time=time.time() - start_time,
            message="Build successful",
            compiled=compiled,
        )

    def _select_binaries(self, project: ProjectConfig, bin_selector: BinSelector) -> List[BuildTarget]:
        if not project.binaries:
            raise ConfigError(f"Project '{project.name}' declares no standalone binaries")

        names = [bin_selector] if isinstance(bin_selector, str) else list(bin_selector or [])
        if "all" in names:
            return list(project.binaries)

        targets = []
        for name in names:
            target = project.find_binary(name)
            if target is None:
                available = ", ".join(binary.name for binary in project.binaries)
                raise ConfigError(f"No binary named '{name}'. Available binaries: {available}")
            targets.append(target)
        return targets

    def _build_binaries(
        self,
        project: ProjectConfig,
        mode: BuildMode,
        bin_selector: BinSelector,
        verbose: bool,
        extra_flags: UserFlags,
        start_time: float
    ) -> BuildResult:
        targets = self._select_binaries(project, bin_selector)

        build_path = project.build_dir / mode.value
        ensure_directories([build_path])
        executor = self._executor(project, verbose)

        results = []
        for target in targets:
            flags = FlagBuilder.resolve(mode, target.flags, extra_flags)
            output = build_path / project.executable_name(target.name)
            try:
                executor.compile_binary(
                    project.compiler_for(target.language).command,
                    flags,
                    project.root / target.source_path,
                    output,
                    project.library_directories,
                    project.libraries,
                )
                results.append(BinaryResult(target.name, True, output, "Build successful"))
            except CompileError as e:
                print(f"Could not compile {target.name}: {e}")
                results.append(BinaryResult(target.name, False, None, str(e)))

        failed = [r.name for r in results if not r.success]
        if failed:
            message = f"Failed to build {len(failed)} of {len(results)} binaries: {', '.join(failed)}"
        else:
            message = f"Built {len(results)} binaries"

        return BuildResult(
            success=not failed,
            mode=mode,
            executable=None,
            build_time=time.time() - start_time,
            message=message,
            binaries=results,
        )

    def clean(self, project: ProjectConfig) -> None:
        """
        Remove build state: the lock file and every directory except sources.

        Args:
            project: Resolved project configuration
        """
        project.lock_path.unlink(missing_ok=True)

        source_dir = project.source_dir.resolve()
        for directory in (project.build_dir, project.object_dir):
            if directory.resolve() == source_dir:
                continue
            safe_rmtree(directory)

    def run(
        self,
        project: ProjectConfig,
        mode: BuildMode = BuildMode.DEBUG,
        bin_selector: BinSelector = None,
        program_args: Sequence[str] = (),
        verbose: Optional[bool] = None,
        extra_flags: UserFlags = ""
    ) -> int:
        """
        Build, then execute the project executable or selected binaries.

        Returns:
            Exit status of the last program run

        Raises:
            BuildError: If the build fails or an executable is missing
        """
        result = self.build(project, mode, bin_selector, verbose, extra_flags)
        if not result.success:
            raise BuildError(result.message)

        if bin_selector:
            names = [target.name for target in self._select_binaries(project, bin_selector)]
        else:
            names = [project.name]

        exit_code = 0
        for name in names:
            executable_name = project.executable_name(name)
            executable = project.build_dir / mode.value / executable_name
            if not executable.exists():
                raise BuildError(
                    f"Cannot find the \"{executable_name}\" executable. Did it compile properly?"
                )
            print(f"\n[Running '{executable_name}']")
            exit_code = self.runner.spawn(str(executable), list(program_args), project.root)
        return exit_code
