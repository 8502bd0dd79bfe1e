"""
Incremental build orchestration for mule projects.

Build Phases:
    1. Detect toolchain and scan sources (abort before touching any file when
       the compiler, or nvcc for .cu sources, is missing)
    2. Resolve dependencies, write mule.lock, run dependency sub-builds
    3. Assemble compile and link flags (including Qt toolkit flags)
    4. Run generators
    5. Compile stale sources (first failure stops the build)
    6. Archive or link the final artifact

Objects that are up to date are reused; a second build with no changes
performs no compilation. Objects are kept when linking fails so the next
build only redoes the link.
"""

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..config.project_config import ArtifactType, Config
from ..diagnostics import Diagnostic, Severity, has_fatal, report
from ..layout import ProjectLayout
from ..output import (
    TimedLogger,
    log,
    log_artifact_path,
    log_build_complete,
    log_detail,
    log_error,
    log_file,
    log_phase,
    log_success,
)
from ..packages.dependency_resolver import DependencyResolver
from ..packages.lockfile import write_lockfile
from ..subprocess_utils import command_exists, run_command
from .build_context import BuildContext, assemble_build_context, discover_dependency_roots
from .build_state import CompiledUnit
from .commands import CommandSynthesizer
from .generator import GeneratorError, GeneratorPipeline
from .source_scanner import CUDA_EXTENSIONS, SOURCE_EXTENSIONS, SourceCollection, SourceScanner
from .toolchain import DETECTION_ORDER, NVCC, ToolchainDescriptor, detect_toolchain
from .toolkit_flags import ToolkitFlags, query_qt_flags

logger = logging.getLogger(__name__)

TOTAL_PHASES = 6
CUDA_RUNTIME_LIB = "cudart"


class CompilationError(Exception):
    """Raised when a source file fails to compile."""

    pass


class LinkError(Exception):
    """Raised when archiving or linking the artifact fails."""

    pass


@dataclass
class BuildResult:
    """Result of a build operation.

    Attributes:
        success: Whether the artifact was produced
        artifact_path: Path of the produced artifact (None on failure)
        compiled: Number of sources compiled in this build
        reused: Number of up-to-date objects reused
        build_time: Wall-clock duration in seconds
        message: Summary or error message
        diagnostics: Non-exception problems reported during the build
    """

    success: bool
    artifact_path: Optional[Path]
    compiled: int
    reused: int
    build_time: float
    message: str
    diagnostics: List[Diagnostic] = field(default_factory=list)


class BuildOrchestrator:
    """Drives a full build of one project."""

    def __init__(self, project_dir: Path, verbose: bool = False):
        """
        Initialize the orchestrator.

        Args:
            project_dir: Project root (contains mule.toml)
            verbose: Show every synthesized command
        """
        self.project_dir = Path(project_dir)
        self.layout = ProjectLayout(self.project_dir)
        self.verbose = verbose

    def build(
        self,
        config: Config,
        resolve_dependencies: bool = True,
        build_dependencies: bool = True,
    ) -> BuildResult:
        """Build the project artifact.

        Args:
            config: Project configuration
            resolve_dependencies: Resolve declared dependencies before compiling;
                when False, whatever is already in the dependency store is used
            build_dependencies: Run dependencies' own build systems

        Returns:
            BuildResult with status, artifact path and counters
        """
        start_time = time.time()
        diagnostics: List[Diagnostic] = []

        log_phase(1, TOTAL_PHASES, "Detecting toolchain...")
        toolchain = detect_toolchain()
        if toolchain is None:
            names = ", ".join(d.compiler for d in DETECTION_ORDER)
            diagnostics.append(Diagnostic(Severity.FATAL, "toolchain", f"no suitable compiler ({names}) found in PATH"))
            report(diagnostics)
            return self._error_result(start_time, "No suitable compiler found", diagnostics)
        log_detail(f"Compiler: {toolchain.compiler}")

        scanned = SourceScanner(self.project_dir, include_cuda=config.cuda.enabled).scan()
        if self._missing_nvcc(scanned.build_sources, diagnostics):
            return self._error_result(start_time, "CUDA compiler not found", diagnostics)

        self.layout.build_dir.mkdir(parents=True, exist_ok=True)

        try:
            return self._build(
                config, toolchain, scanned, start_time, diagnostics, resolve_dependencies, build_dependencies
            )
        except (GeneratorError, CompilationError, LinkError) as e:
            log_error(str(e))
            return self._error_result(start_time, str(e), diagnostics)

    def _build(
        self,
        config: Config,
        toolchain: ToolchainDescriptor,
        scanned: SourceCollection,
        start_time: float,
        diagnostics: List[Diagnostic],
        resolve_dependencies: bool,
        build_dependencies: bool,
    ) -> BuildResult:
        synthesizer = CommandSynthesizer(toolchain)

        # Phase 2: dependencies
        with TimedLogger("Resolving dependencies", phase=(2, TOTAL_PHASES)):
            if resolve_dependencies:
                dependency_roots = self._resolve_dependencies(config, toolchain, build_dependencies, diagnostics)
            else:
                dependency_roots = discover_dependency_roots(self.layout.deps_dir)
        report(diagnostics)
        if has_fatal(diagnostics):
            return self._error_result(start_time, "Dependency resolution failed", diagnostics)

        # Phase 3: flags
        log_phase(3, TOTAL_PHASES, "Assembling build flags...")
        toolkit: Optional[ToolkitFlags] = None
        if config.qt.enabled:
            toolkit = query_qt_flags(config.qt.modules)
            report(toolkit.diagnostics)
            diagnostics.extend(toolkit.diagnostics)
        context = assemble_build_context(self.layout, config, dependency_roots, toolkit)

        # Phase 4: generators
        with TimedLogger("Running generators", phase=(4, TOTAL_PHASES)) as timed:
            extensions = SOURCE_EXTENSIONS + (CUDA_EXTENSIONS if config.cuda.enabled else ())
            generation = GeneratorPipeline(self.layout, extensions).run(config.generators)
            timed.detail(f"{generation.invocations} generator run(s), {len(generation.outputs)} output(s)")

        # Phase 5: compile
        log_phase(5, TOTAL_PHASES, "Compiling sources...")
        sources = scanned.build_sources + generation.sources
        if not sources:
            return self._error_result(start_time, f"No source files found in {self.layout.src_dir}", diagnostics)

        # Scanned .cu files were checked in phase 1; only generated ones are new here
        if self._missing_nvcc(generation.sources, diagnostics):
            return self._error_result(start_time, "CUDA compiler not found", diagnostics)
        if any(source.suffix in CUDA_EXTENSIONS for source in sources):
            context = context.with_libs([CUDA_RUNTIME_LIB])

        position_independent = config.artifact_type is ArtifactType.SHARED_LIBRARY
        units = [self._unit(source, synthesizer) for source in sources]
        compiled, reused = self._compile_units(units, context, synthesizer, position_independent)
        log_detail(f"Compiled {compiled} file(s), reused {reused}", verbose_only=True)

        # Phase 6: link
        artifact = self.layout.build_dir / synthesizer.artifact_name(config.name, config.artifact_type)
        with TimedLogger(self._link_label(config.artifact_type), phase=(6, TOTAL_PHASES)):
            self._produce_artifact(config.artifact_type, [u.object_path for u in units], artifact, context, synthesizer)

        build_time = time.time() - start_time
        log_success(f"Build successful: {artifact.name}")
        log_artifact_path(artifact)
        log_build_complete(build_time)
        return BuildResult(
            success=True,
            artifact_path=artifact,
            compiled=compiled,
            reused=reused,
            build_time=build_time,
            message="Build successful",
            diagnostics=diagnostics,
        )

    def _resolve_dependencies(
        self,
        config: Config,
        toolchain: ToolchainDescriptor,
        build_dependencies: bool,
        diagnostics: List[Diagnostic],
    ) -> List[Path]:
        resolver = DependencyResolver(self.layout)
        resolution = resolver.resolve(config.dependencies)
        diagnostics.extend(resolution.diagnostics)
        if has_fatal(resolution.diagnostics):
            return []

        write_lockfile(resolution.resolved, self.layout.lockfile)
        log_detail(f"Resolved {len(resolution.resolved)} dependency(ies)", verbose_only=True)
        if build_dependencies:
            diagnostics.extend(resolver.build_dependencies(resolution.resolved, toolchain))
        return [dep.location for dep in resolution.resolved]

    @staticmethod
    def _missing_nvcc(sources: Sequence[Path], diagnostics: List[Diagnostic]) -> bool:
        """Record a FATAL diagnostic when sources need nvcc and it is not in PATH."""
        if not any(source.suffix in CUDA_EXTENSIONS for source in sources):
            return False
        if command_exists(NVCC.probe_command):
            return False
        diagnostics.append(Diagnostic(Severity.FATAL, "cuda", "nvcc not found in PATH"))
        report(diagnostics[-1:])
        return True

    def _unit(self, source: Path, synthesizer: CommandSynthesizer) -> CompiledUnit:
        if source.suffix in CUDA_EXTENSIONS:
            synthesizer = CommandSynthesizer(NVCC)
        return CompiledUnit.evaluate(source, self.layout.object_path(source, synthesizer.object_name(source)))

    def _compile_units(
        self,
        units: Sequence[CompiledUnit],
        context: BuildContext,
        synthesizer: CommandSynthesizer,
        position_independent: bool,
    ) -> tuple[int, int]:
        """Compile stale units in order.

        Returns:
            (compiled, reused) counts

        Raises:
            CompilationError: On the first failing compile
        """
        cuda = CommandSynthesizer(NVCC)
        compiled = reused = 0
        for unit in units:
            if not unit.stale:
                log_file("compile", unit.source.name, cached=True, verbose_only=True)
                reused += 1
                continue

            unit_synthesizer = cuda if unit.source.suffix in CUDA_EXTENSIONS else synthesizer
            unit.object_path.parent.mkdir(parents=True, exist_ok=True)
            cmd = unit_synthesizer.compile(
                unit.source,
                unit.object_path,
                context.config.standard,
                context.compile_flags(unit_synthesizer),
                position_independent=position_independent,
            )
            log_file("compile", unit.source.name)
            log_detail(CommandSynthesizer.format(cmd), verbose_only=True)
            result = run_command(cmd, cwd=self.project_dir)
            if result.returncode != 0:
                raise CompilationError(f"Compilation failed: {unit.source} (exit code {result.returncode})")
            compiled += 1
        return compiled, reused

    def _produce_artifact(
        self,
        artifact_type: ArtifactType,
        objects: Sequence[Path],
        artifact: Path,
        context: BuildContext,
        synthesizer: CommandSynthesizer,
    ) -> None:
        if artifact_type is ArtifactType.STATIC_LIBRARY:
            if artifact.exists():
                # ar rcs appends; start from an empty archive
                artifact.unlink()
            cmd = synthesizer.archive(objects, artifact)
        else:
            cmd = synthesizer.link(
                objects,
                artifact,
                lib_dirs=context.lib_dirs,
                libs=context.libs,
                flags=context.link_flags,
                linker_flags=context.linker_flags,
                shared=artifact_type is ArtifactType.SHARED_LIBRARY,
            )
        log_detail(CommandSynthesizer.format(cmd), verbose_only=True)
        result = run_command(cmd, cwd=self.project_dir)
        if result.returncode != 0:
            raise LinkError(f"{self._link_label(artifact_type)} failed for {artifact.name} (exit code {result.returncode})")

    @staticmethod
    def _link_label(artifact_type: ArtifactType) -> str:
        if artifact_type is ArtifactType.STATIC_LIBRARY:
            return "Archiving static library"
        if artifact_type is ArtifactType.SHARED_LIBRARY:
            return "Linking shared library"
        return "Linking executable"

    def run(self, config: Config, args: Sequence[str] = ()) -> int:
        """Build, then execute the produced program.

        Args:
            config: Project configuration
            args: Arguments forwarded to the program

        Returns:
            The program's exit code, or 1 when it could not be built or run
        """
        if config.artifact_type is not ArtifactType.BINARY:
            log_error(f"Project '{config.name}' is a {config.artifact_type.value}, only binaries can be run")
            return 1

        result = self.build(config)
        if not result.success or result.artifact_path is None:
            log_error("Build failed, cannot run")
            return 1

        log(f"--- Running {config.name} ---")
        completed = run_command([result.artifact_path, *args], cwd=self.project_dir)
        return completed.returncode

    def clean(self) -> bool:
        """Remove the build output directory.

        Returns:
            True if there was anything to remove
        """
        if not self.layout.build_dir.exists():
            log_detail("Nothing to clean", verbose_only=True)
            return False
        shutil.rmtree(self.layout.build_dir)
        log("Cleaned build artifacts.")
        return True

    def _error_result(self, start_time: float, message: str, diagnostics: List[Diagnostic]) -> BuildResult:
        return BuildResult(
            success=False,
            artifact_path=None,
            compiled=0,
            reused=0,
            build_time=time.time() - start_time,
            message=message,
            diagnostics=diagnostics,
        )
