"""Compilation Executor.

This module runs the external compiler for every step of a build: compiling
single sources to objects, relocating the produced objects, linking, and
compiling standalone binaries in one step.

Design:
    - Spawning a process is the only side effect, behind the ProcessRunner
      interface so a fake compiler can be substituted
    - Only the exit status is interpreted; compiler diagnostics stream
      straight to the terminal
    - No timeout: a hung compiler blocks the build
    - Ctrl+C terminates the compiler's whole process tree before re-raising
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import psutil
from tqdm import tqdm

from ..errors import BuildError, CompileError

logger = logging.getLogger(__name__)


class ProcessRunner(ABC):
    """Spawns an external process and waits for it to exit."""

    @abstractmethod
    def spawn(self, command: str, args: List[str], cwd: Path) -> int:
        """Run a command to completion.

        Args:
            command: Executable name or path
            args: Arguments
            cwd: Working directory

        Returns:
            Exit status (negative for signal termination)

        Raises:
            OSError: If the executable cannot be started
        """


class SubprocessRunner(ProcessRunner):
    """ProcessRunner backed by subprocess.Popen."""

    def spawn(self, command: str, args: List[str], cwd: Path) -> int:
        cmd = [command] + list(args)
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")

        proc = subprocess.Popen(cmd, cwd=str(cwd))
        try:
            return proc.wait()
        except KeyboardInterrupt:
            self._kill_process_tree(proc.pid)
            raise

    @staticmethod
    def _kill_process_tree(pid: int) -> None:
        """Terminate a process and all of its descendants."""
        try:
            root = psutil.Process(pid)
            procs = root.children(recursive=True) + [root]
        except psutil.NoSuchProcess:
            return

        for proc in procs:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass

        _, alive = psutil.wait_procs(procs, timeout=3)
        for proc in alive:
            try:
                proc.kill()
                logger.warning(f"Force killed stubborn process {proc.pid}")
            except psutil.NoSuchProcess:
                pass


class CompilationExecutor:
    """Executes compile and link commands for one project.

    This class handles:
    - Compiling a source to <stem>.o in the working directory
    - Moving produced objects into the object directory
    - Linking the accumulated object set into an executable
    - Compiling standalone binaries directly to executables
    """

    def __init__(
        self,
        runner: ProcessRunner,
        working_dir: Path,
        verbose: bool = False,
        show_progress: bool = True
    ):
        """Initialize compilation executor.

        Args:
            runner: Process spawning capability
            working_dir: Directory the compiler runs in (project root)
            verbose: Pass -v to the compiler
            show_progress: Whether to show compilation progress
        """
        self.runner = runner
        self.working_dir = Path(working_dir)
        self.verbose = verbose
        self.show_progress = show_progress

    def _run(self, compiler: str, args: List[str], what: str) -> None:
        if self.verbose:
            args = ["-v"] + args
        try:
            returncode = self.runner.spawn(compiler, args, self.working_dir)
        except OSError as e:
            raise CompileError(
                f"Could not execute compiler '{compiler}': {e}",
                command=[compiler] + args,
            ) from e

        if returncode != 0:
            raise CompileError(
                f"{what} failed: compiler command returned with error code {returncode}",
                command=[compiler] + args,
                returncode=returncode,
            )

    def compile_object(self, compiler: str, flags: List[str], source: Path) -> Path:
        """Compile a single source file with -c.

        Returns:
            Path of the object the compiler writes in the working directory

        Raises:
            CompileError: If the compiler cannot be run or exits non-zero
        """
        self._run(compiler, list(flags) + ["-c", str(source)], f"Compilation of {source.name}")
        return self.working_dir / f"{source.stem}.o"

    def relocate_object(self, source: Path, object_dir: Path) -> Path:
        """Move <stem>.o from the working directory into object_dir.

        Raises:
            BuildError: If the object cannot be moved
        """
        produced = self.working_dir / f"{source.stem}.o"
        destination = object_dir / f"{source.stem}.o"
        try:
            shutil.move(str(produced), str(destination))
        except OSError as e:
            raise BuildError(
                f"Cannot move object file: {e}. Did the project compile properly?"
            ) from e
        return destination

    def compile_objects(
        self,
        compiler: str,
        flags: List[str],
        sources: List[Path],
        object_dir: Path
    ) -> List[Path]:
        """Compile sources one at a time, relocating each object.

        The first failure aborts the remaining sources.

        Returns:
            Relocated object paths
        """
        progress_bar: Optional[tqdm] = None
        if self.show_progress and not self.verbose and len(sources) > 1:
            progress_bar = tqdm(total=len(sources), unit="file", desc="Compiling", leave=False, disable=None)
        emit = tqdm.write if progress_bar is not None else print

        objects = []
        try:
            for source in sources:
                emit(f"Compiling {source.name} to {source.stem}.o...")
                self.compile_object(compiler, flags, source)
                objects.append(self.relocate_object(source, object_dir))
                emit(f"Compiled {source.stem}.o")
                if progress_bar is not None:
                    progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        return objects

    def link(
        self,
        compiler: str,
        objects: List[Path],
        flags: List[str],
        output: Path,
        library_dirs: List[str],
        libraries: List[str]
    ) -> Path:
        """Link objects into an executable.

        Command: objects..., flags..., -o output, -L<dir>..., -l<lib>...

        Raises:
            CompileError: If the linker exits non-zero
        """
        args = [str(obj) for obj in objects]
        args.extend(flags)
        args.extend(["-o", str(output)])
        args.extend(f"-L{directory}" for directory in library_dirs)
        args.extend(f"-l{library}" for library in libraries)

        print(f"Linking {output.name}...")
        self._run(compiler, args, f"Linking {output.name}")
        return output

    def compile_binary(
        self,
        compiler: str,
        flags: List[str],
        source: Path,
        output: Path,
        library_dirs: List[str],
        libraries: List[str]
    ) -> Path:
        """Compile a standalone source straight to an executable.

        Command: flags..., -L<dir>..., -l<lib>..., source, -o output

        Raises:
            CompileError: If the compiler exits non-zero
        """
        args = list(flags)
        args.extend(f"-L{directory}" for directory in library_dirs)
        args.extend(f"-l{library}" for library in libraries)
        args.extend([str(source), "-o", str(output)])

        print(f"Compiling {source.name} to {output.name}...")
        self._run(compiler, args, f"Compilation of {source.name}")
        print(f"Compiled {source.name} to {output.name}")
        return output
