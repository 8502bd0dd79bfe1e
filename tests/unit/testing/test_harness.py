"""Tests for building and running test binaries."""

import io

import pytest
from rich.console import Console

from mule.config import load_config
from mule.testing import DuplicateTestError, TestCase, TestHarnessBuilder, TestRegistry

TOML = '[package]\nname = "calc"\n[build]\ndefines = ["TESTING"]\n'
FILES = {
    "src/main.cpp": "int main() { return 0; }\n",
    "src/math.cpp": "int add(int a, int b) { return a + b; }\n",
    "src/math_test.cpp": '#include "mule_test.h"\nint add(int, int);\nMULE_TEST(adds) { MULE_ASSERT(add(2, 2) == 4); }\n',
    "tests/smoke.cpp": "int main() { return 0; }\n",
}


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def calc(make_project):
    return make_project(TOML, FILES)


def run_tests(project, console, registry=None):
    return TestHarnessBuilder(project, console=console).run(load_config(project), registry)


def builds(fake_processes):
    return [argv for argv in fake_processes.commands("clang++") if "-o" in argv]


class TestHarnessBuilderRun:
    def test_unit_and_integration_binaries(self, calc, console, fake_processes):
        summary = run_tests(calc, console)

        assert summary.success
        assert (summary.passed, summary.failed) == (2, 0)
        assert [r.name for r in summary.results] == ["unit_tests", "test_smoke"]
        assert [str(calc / "build" / "unit_tests")] in fake_processes.calls
        assert [str(calc / "build" / "test_smoke")] in fake_processes.calls

    def test_unit_binary_sources(self, calc, console, fake_processes):
        run_tests(calc, console)

        unit, integration = builds(fake_processes)
        main = str(calc / "build" / "test_support" / "unit_test_main.cpp")
        sources = [arg for arg in unit if arg.endswith(".cpp")]
        assert sources == [main, str(calc / "src" / "math.cpp"), str(calc / "src" / "math_test.cpp")]
        assert unit[unit.index("-o") + 1] == str(calc / "build" / "unit_tests")
        assert str(calc / "src" / "main.cpp") not in unit

        assert [arg for arg in integration if arg.endswith(".cpp")] == [
            str(calc / "tests" / "smoke.cpp"),
            str(calc / "src" / "math.cpp"),
        ]

    def test_shared_flags(self, calc, console, fake_processes):
        run_tests(calc, console)

        unit = builds(fake_processes)[0]
        assert unit[2] == f"-I{calc / 'build' / 'test_support'}"
        assert unit[3] == f"-I{calc}"
        assert "-DTESTING" in unit

    def test_support_files_written(self, calc, console, fake_processes):
        run_tests(calc, console)

        main = (calc / "build" / "test_support" / "unit_test_main.cpp").read_text()
        assert '{"adds", mule_test_adds},' in main
        assert (calc / "build" / "test_support" / "mule_test.h").exists()

    def test_injected_registry(self, calc, console, fake_processes):
        registry = TestRegistry()
        registry.add(TestCase(name="custom", source=calc / "src" / "math_test.cpp"))

        run_tests(calc, console, registry)

        main = (calc / "build" / "test_support" / "unit_test_main.cpp").read_text()
        assert "mule_test_custom" in main
        assert "mule_test_adds" not in main

    def test_compile_failure_does_not_stop_other_binaries(self, calc, console, fake_processes):
        unit_binary = str(calc / "build" / "unit_tests")
        fake_processes.respond(lambda argv: argv[0] == "clang++" and unit_binary in argv, returncode=1)

        summary = run_tests(calc, console)

        assert (summary.passed, summary.failed) == (1, 1)
        assert not summary.results[0].compiled
        assert [unit_binary] not in fake_processes.calls
        assert [str(calc / "build" / "test_smoke")] in fake_processes.calls

    def test_failing_binary(self, calc, console, fake_processes):
        smoke = str(calc / "build" / "test_smoke")
        fake_processes.respond(lambda argv: argv == [smoke], returncode=1)

        summary = run_tests(calc, console)

        assert not summary.success
        assert summary.results[1].exit_code == 1
        assert "exit code 1" in console.file.getvalue()

    def test_no_tests(self, make_project, console, fake_processes):
        project = make_project(TOML, {"src/main.cpp": "int main() {}\n"})

        summary = run_tests(project, console)

        assert (summary.passed, summary.failed) == (0, 0)
        assert summary.success
        assert summary.message == "No tests found."
        assert builds(fake_processes) == []

    def test_no_toolchain(self, calc, console, fake_processes):
        for program in ("clang++", "g++", "cl"):
            fake_processes.fail(program, returncode=127)

        summary = run_tests(calc, console)

        assert summary.failed == 1
        assert not summary.success
        assert not (calc / "build").exists()

    def test_duplicate_tests(self, make_project, console, fake_processes):
        project = make_project(
            TOML,
            {"src/a_test.cpp": "MULE_TEST(same) {}\n", "src/b_test.cpp": "MULE_TEST(same) {}\n"},
        )
        with pytest.raises(DuplicateTestError):
            run_tests(project, console)
