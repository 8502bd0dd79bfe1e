"""Pytest configuration and fixtures for mule tests.

Child processes (compilers, git, pkg-config, generators, test binaries) are
never really launched: ``fake_processes`` patches ``subprocess.run`` with a
recorder that answers with configurable exit codes and, like a real
compiler, creates whatever file follows ``-o`` (or the archive name after
``ar rcs``, or a shell redirection target).
"""

import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional
from unittest.mock import patch

import pytest

from mule import output


class FakeProcesses:
    """Records commands and fakes their results."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self.scripts: List[str] = []
        self._rules: List[tuple] = []

    def respond(
        self,
        match: Callable[[List[str]], bool],
        returncode: int = 0,
        stdout: str = "",
        action: Optional[Callable[[List[str]], None]] = None,
    ) -> None:
        """Answer matching commands. Later rules win over earlier ones."""
        self._rules.insert(0, (match, returncode, stdout, action))

    def fail(self, program: str, returncode: int = 1) -> None:
        """Make every invocation of program fail."""
        self.respond(lambda argv: argv[0] == program, returncode=returncode)

    def commands(self, program: str) -> List[List[str]]:
        return [argv for argv in self.calls if argv[0] == program]

    def __call__(self, cmd, **kwargs) -> subprocess.CompletedProcess:
        if isinstance(cmd, str):
            # shell=True: record the words the shell would see
            self.scripts.append(cmd)
            argv = shlex.split(cmd)
        else:
            argv = [str(part) for part in cmd]
        self.calls.append(argv)
        self.kwargs.append(kwargs)

        returncode, stdout = 0, ""
        for match, rule_code, rule_stdout, action in self._rules:
            if match(argv):
                returncode, stdout = rule_code, rule_stdout
                if returncode == 0 and action is not None:
                    action(argv)
                break

        if returncode == 0:
            self._touch_outputs(argv)
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr="")

    @staticmethod
    def _touch_outputs(argv: List[str]) -> None:
        outputs = []
        if "-o" in argv[:-1]:
            outputs.append(argv[argv.index("-o") + 1])
        if argv[:2] == ["ar", "rcs"]:
            outputs.append(argv[2])
        if ">" in argv[:-1]:
            outputs.append(argv[argv.index(">") + 1])
        for name in outputs:
            path = Path(name)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()


@pytest.fixture
def fake_processes():
    fake = FakeProcesses()
    with patch("subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture(autouse=True)
def _reset_output():
    """Keep verbose mode from leaking between tests."""
    output.set_verbose(False)
    yield
    output.set_verbose(False)


@pytest.fixture
def make_project(tmp_path):
    """Create a project directory from a mule.toml body and a file map.

    Source files are back-dated one hour so anything a build writes is newer.
    """

    def _make(toml: str, files: Optional[dict] = None, name: str = "project") -> Path:
        project = tmp_path / name
        project.mkdir()
        (project / "mule.toml").write_text(toml)
        past = time.time() - 3600
        for relative, content in (files or {}).items():
            path = project / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            os.utime(path, (past, past))
        return project

    return _make


@pytest.fixture
def touch_later():
    """Set a file's mtime to now plus an offset in seconds."""

    def _touch(path: Path, offset: float = 10.0) -> None:
        stamp = time.time() + offset
        os.utime(path, (stamp, stamp))

    return _touch
