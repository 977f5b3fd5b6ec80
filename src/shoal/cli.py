"""
Command-line interface for Shoal.

This module provides the `shoal` CLI tool for building C/C++ projects.
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from shoal import __version__
from shoal.build import BuildMode, BuildOrchestrator
from shoal.cli_utils import (
    ErrorFormatter,
    PathValidator,
    ProjectLocator,
    setup_logging,
)
from shoal.errors import ConfigError, ShoalError


@dataclass
class BuildArgs:
    """Arguments for the build and run commands."""

    project_dir: Path
    mode: BuildMode = BuildMode.DEBUG
    bins: List[str] = field(default_factory=list)
    verbose: bool = False
    flags: List[str] = field(default_factory=list)


@dataclass
class RunArgs(BuildArgs):
    """Arguments for the run command."""

    program_args: List[str] = field(default_factory=list)


def build_command(args: BuildArgs) -> None:
    """Build the project executable or standalone binaries.

    Examples:
        shoal build                     # Debug build
        shoal build -r                  # Release build
        shoal build --bin all           # Build every standalone binary
        shoal build -f -DFOO -O0        # Append compiler flags
    """
    try:
        project = ProjectLocator.load_project(args.project_dir)

        if args.verbose:
            print(f"Building project: {project.name} ({project.language.display_name})")
            print(f"Mode: {args.mode.value}")
            print()

        orchestrator = BuildOrchestrator(verbose=args.verbose)
        result = orchestrator.build(
            project,
            mode=args.mode,
            bin_selector=args.bins or None,
            verbose=args.verbose,
            extra_flags=args.flags,
        )

        if result.success:
            ErrorFormatter.print_success(result.message)
            if result.executable and not result.skipped:
                print(f"Executable: {result.executable}")
            for binary in result.binaries:
                print(f"Executable: {binary.executable}")
            if args.verbose:
                print(f"Build time: {result.build_time:.2f}s")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Build failed!", result.message)
            sys.exit(1)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def run_command(args: RunArgs) -> None:
    """Build, then run the project executable or standalone binaries.

    Examples:
        shoal run                       # Build and run in debug mode
        shoal run -r -- --input a.txt   # Release build, pass program arguments
    """
    try:
        project = ProjectLocator.load_project(args.project_dir)
        orchestrator = BuildOrchestrator(verbose=args.verbose)
        exit_code = orchestrator.run(
            project,
            mode=args.mode,
            bin_selector=args.bins or None,
            program_args=args.program_args,
            verbose=args.verbose,
            extra_flags=args.flags,
        )
        sys.exit(exit_code)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except ShoalError as e:
        ErrorFormatter.print_error("Run failed!", str(e))
        sys.exit(1)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(project_dir: Path) -> None:
    """Remove build outputs, objects and the lock file."""
    try:
        project = ProjectLocator.load_project(project_dir)
        BuildOrchestrator().clean(project)
        ErrorFormatter.print_success(f"Cleaned {project.name}")
        sys.exit(0)
    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e)


def split_program_args(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first '--' into (shoal args, program args).

    A '--' that follows -f/--flags belongs to the compiler flags.
    """
    for index, arg in enumerate(argv):
        if arg in ("-f", "--flags"):
            break
        if arg == "--":
            return argv[:index], argv[index + 1:]
    return argv, []


def _add_build_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Project directory (default: current directory)",
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "-d",
        "--debug",
        dest="mode",
        action="store_const",
        const=BuildMode.DEBUG,
        help="Build in debug mode (default)",
    )
    mode_group.add_argument(
        "-r",
        "--release",
        dest="mode",
        action="store_const",
        const=BuildMode.RELEASE,
        help="Build in release mode",
    )
    parser.add_argument(
        "--bin",
        dest="bins",
        action="append",
        default=[],
        metavar="NAME",
        help="Build a standalone binary by name, or 'all'",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Make the compiler output verbose",
    )
    parser.add_argument(
        "-f",
        "--flags",
        nargs=argparse.REMAINDER,
        default=[],
        help="Pass every following argument to the compiler",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Shoal - incremental build orchestrator for C/C++ projects."""
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="shoal",
        description="Shoal - incremental build orchestrator for C/C++ projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"shoal {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser(
        "build",
        help="Build the current project",
    )
    _add_build_options(build_parser)

    run_parser = subparsers.add_parser(
        "run",
        help="Build and run the current project (program arguments after --)",
    )
    _add_build_options(run_parser)

    clean_parser = subparsers.add_parser(
        "clean",
        help="Remove build outputs, objects and the lock file",
    )
    clean_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Project directory (default: current directory)",
    )

    program_args: List[str] = []
    if argv and argv[0] == "run":
        argv, program_args = split_program_args(argv)

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    project_dir = parsed_args.project_dir or Path.cwd()
    PathValidator.validate_project_dir(project_dir)

    if parsed_args.command == "clean":
        clean_command(project_dir)
        return

    setup_logging(parsed_args.verbose)

    build_args = dict(
        project_dir=project_dir,
        mode=parsed_args.mode or BuildMode.DEBUG,
        bins=parsed_args.bins,
        verbose=parsed_args.verbose,
        flags=list(parsed_args.flags),
    )

    if parsed_args.command == "build":
        build_command(BuildArgs(**build_args))
    elif parsed_args.command == "run":
        run_command(RunArgs(program_args=program_args, **build_args))


if __name__ == "__main__":
    main()
