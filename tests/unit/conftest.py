"""Shared fixtures for shoal unit tests."""

from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from shoal.build import ProcessRunner
from shoal.config import ProjectConfig


class FakeRunner(ProcessRunner):
    """Records spawned commands and imitates a compiler on disk.

    A '-c <source>' invocation writes '<stem>.o' into the working directory;
    any other invocation with '-o <output>' writes the output file. Exit
    codes can be scripted per command, or for any invocation mentioning a
    given argument substring.
    """

    def __init__(self):
        self.calls: List[Tuple[str, List[str], Path]] = []
        self.returncodes: Dict[str, int] = {}
        self.fail_on: Dict[str, int] = {}
        self.produce_objects = True

    def spawn(self, command, args, cwd):
        args = list(args)
        cwd = Path(cwd)
        self.calls.append((command, args, cwd))

        if command in self.returncodes:
            return self.returncodes[command]
        for needle, code in self.fail_on.items():
            if any(needle in arg for arg in args):
                return code

        if "-c" in args:
            if self.produce_objects:
                source = Path(args[args.index("-c") + 1])
                (cwd / f"{source.stem}.o").write_text(f"object of {source.name}")
        elif "-o" in args:
            output = Path(args[args.index("-o") + 1])
            if not output.is_absolute():
                output = cwd / output
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text("executable")
        return 0

    @property
    def compile_calls(self):
        return [call for call in self.calls if "-c" in call[1]]

    @property
    def link_calls(self):
        return [
            call for call in self.calls
            if "-c" not in call[1] and any(arg.endswith(".o") for arg in call[1])
        ]


@pytest.fixture
def fake_runner():
    """Fake compiler process runner."""
    return FakeRunner()


@pytest.fixture
def c_project(tmp_path):
    """Create a C project with a single src/main.c."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.c").write_text("int main(void) { return 0; }\n")
    return ProjectConfig(name="hello", root=tmp_path)
