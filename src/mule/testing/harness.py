"""
Test binary assembly and execution.

Test Kinds:
    Unit tests         src/**/*_test.cpp, linked together with the library
                       sources and a generated harness main into one
                       binary, build/unit_tests
    Integration tests  tests/*.cpp, each linked with the library sources
                       into its own program, build/test_<stem>

Every binary runs immediately after it compiles. A failed compile or a
non-zero exit counts as one failure; later binaries still build and run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..build.build_context import BuildContext, assemble_build_context, discover_dependency_roots
from ..build.commands import CommandSynthesizer
from ..build.source_scanner import SourceScanner
from ..build.toolchain import detect_toolchain
from ..config.project_config import ArtifactType, Config
from ..layout import ProjectLayout
from ..output import log, log_detail, log_error, log_success
from ..subprocess_utils import run_command
from .registry import TestRegistry, collect_tests, write_support_files

logger = logging.getLogger(__name__)

UNIT_TEST_BINARY = "unit_tests"
INTEGRATION_TEST_PREFIX = "test_"


@dataclass
class TestBinaryResult:
    """Outcome of building and running one test binary.

    Attributes:
        name: Binary name (unit_tests or test_<stem>)
        kind: "unit" or "integration"
        compiled: Whether the binary built
        exit_code: Exit status of the run (None if it never ran)
    """

    __test__ = False

    name: str
    kind: str
    compiled: bool
    exit_code: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.compiled and self.exit_code == 0


@dataclass
class TestSummary:
    """Aggregate result of a test run, counted per binary."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    results: List[TestBinaryResult] = field(default_factory=list)
    message: str = ""

    @property
    def success(self) -> bool:
        return self.failed == 0

    def record(self, result: TestBinaryResult) -> None:
        self.results.append(result)
        if result.passed:
            self.passed += 1
        else:
            self.failed += 1


class TestHarnessBuilder:
    """Builds and runs a project's unit and integration tests."""

    __test__ = False

    def __init__(self, project_dir: Path, verbose: bool = False, console: Optional[Console] = None):
        """
        Initialize the harness builder.

        Args:
            project_dir: Project root
            verbose: Show every synthesized command
            console: Rich console for the summary table (defaults to stdout)
        """
        self.project_dir = Path(project_dir)
        self.layout = ProjectLayout(self.project_dir)
        self.verbose = verbose
        self._console = console if console is not None else Console()

    def run(self, config: Config, registry: Optional[TestRegistry] = None) -> TestSummary:
        """Build and run every test binary.

        Args:
            config: Project configuration
            registry: Unit tests to run; collected from the unit-test sources if omitted

        Returns:
            TestSummary; success when no binary failed

        Raises:
            DuplicateTestError: If collected unit tests share a name
        """
        toolchain = detect_toolchain()
        if toolchain is None:
            log_error("No suitable compiler found for tests")
            return TestSummary(failed=1, message="No suitable compiler found")

        scanned = SourceScanner(self.project_dir).scan()
        if not scanned.unit_test_sources and not scanned.integration_tests:
            log("No tests found.")
            return TestSummary(message="No tests found.")

        self.layout.build_dir.mkdir(parents=True, exist_ok=True)
        synthesizer = CommandSynthesizer(toolchain)
        context = assemble_build_context(self.layout, config, discover_dependency_roots(self.layout.deps_dir))
        summary = TestSummary()

        if scanned.unit_test_sources:
            if registry is None:
                registry = collect_tests(scanned.unit_test_sources)
            _, harness_main = write_support_files(registry, self.layout.test_support_dir)
            log(f"Running unit tests ({len(registry)} case(s))...")
            summary.record(
                self._build_and_run(
                    name=UNIT_TEST_BINARY,
                    kind="unit",
                    sources=[harness_main, *scanned.library_sources, *scanned.unit_test_sources],
                    context=context,
                    synthesizer=synthesizer,
                )
            )

        for test_source in scanned.integration_tests:
            log(f"Running integration test: {test_source.stem}...")
            summary.record(
                self._build_and_run(
                    name=f"{INTEGRATION_TEST_PREFIX}{test_source.stem}",
                    kind="integration",
                    sources=[test_source, *scanned.library_sources],
                    context=context,
                    synthesizer=synthesizer,
                )
            )

        summary.message = f"{summary.passed} passed, {summary.failed} failed"
        self._print_summary(summary)
        return summary

    def _build_and_run(
        self,
        name: str,
        kind: str,
        sources: Sequence[Path],
        context: BuildContext,
        synthesizer: CommandSynthesizer,
    ) -> TestBinaryResult:
        binary = self.layout.build_dir / synthesizer.artifact_name(name, ArtifactType.BINARY)
        flags = context.compile_flags(synthesizer, extra_include_dirs=[self.layout.test_support_dir, self.project_dir])
        cmd = synthesizer.compile_and_link(
            sources,
            binary,
            context.config.standard,
            flags,
            lib_dirs=context.lib_dirs,
            libs=context.libs,
            linker_flags=context.linker_flags,
        )
        log_detail(CommandSynthesizer.format(cmd), verbose_only=True)
        if run_command(cmd, cwd=self.project_dir).returncode != 0:
            log_error(f"{name}: compilation failed")
            return TestBinaryResult(name=name, kind=kind, compiled=False)

        exit_code = run_command([binary], cwd=self.project_dir).returncode
        logger.debug("%s exited with %d", name, exit_code)
        return TestBinaryResult(name=name, kind=kind, compiled=True, exit_code=exit_code)

    def _print_summary(self, summary: TestSummary) -> None:
        table = Table(show_edge=False, box=None, padding=(0, 1), expand=False)
        table.add_column("Test", style="bold", no_wrap=True, min_width=24)
        table.add_column("Kind", no_wrap=True)
        table.add_column("Result", no_wrap=True)
        for result in summary.results:
            table.add_row(result.name, result.kind, self._format_result(result))
        self._console.print(table)

        if summary.success:
            log_success(f"Test Summary: {summary.message}.")
        else:
            log_error(f"Test Summary: {summary.message}.")

    @staticmethod
    def _format_result(result: TestBinaryResult) -> Text:
        if not result.compiled:
            return Text("✗ build failed", style="red")
        if result.passed:
            return Text("✓ passed", style="green")
        return Text(f"✗ exit code {result.exit_code}", style="red")
