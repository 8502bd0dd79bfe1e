"""Dependency resolution into the per-project dependency store.

Every declared dependency is materialized under ``.mule/deps/<name>`` and
pinned to a concrete revision:

    Local path   -> symlink (or recursive copy) to the absolute path;
                    the revision is that absolute path
    Remote (git) -> shallow clone, optional tag/commit checkout;
                    the revision is always the HEAD commit read back
    Legacy URL   -> treated as remote with no pin

Failures are per dependency. A missing local path, a failed clone or an
unreadable HEAD skips that dependency and resolution continues. A pinned
tag or commit that cannot be checked out is fatal: building against
whatever revision happens to be on disk would defeat the pin.

Sub-builds:
    build_dependencies() runs a remote dependency's own build tool when it has one.
    CMakeLists.txt takes priority over Makefile; neither is fine
    (header-only dependencies).
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..build.toolchain import ToolchainDescriptor
from ..config.project_config import Dependency
from ..diagnostics import Diagnostic, Severity
from ..layout import ProjectLayout
from ..output import log_detail
from ..subprocess_utils import command_exists, run_command
from . import git_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedDependency:
    """A dependency plus its concrete, reproducible revision.

    Only DependencyResolver creates these.

    Attributes:
        dependency: The declaration (legacy declarations already normalized)
        revision: Commit hash for remote deps, absolute path for local deps
        location: Materialized path inside the dependency store
    """

    dependency: Dependency
    revision: str
    location: Path

    @property
    def name(self) -> str:
        return self.dependency.name

    @property
    def is_local(self) -> bool:
        return self.dependency.is_local


@dataclass
class ResolutionResult:
    """Resolved dependencies (declaration order) and per-dependency problems."""

    resolved: List[ResolvedDependency] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class DependencyResolver:
    """Materializes and pins dependencies for one project."""

    def __init__(self, layout: ProjectLayout):
        self.layout = layout
        self.store = layout.deps_dir

    def resolve(self, dependencies: Sequence[Dependency]) -> ResolutionResult:
        """Resolve dependencies in declaration order. Safe to re-run.

        Args:
            dependencies: Declared dependencies

        Returns:
            ResolutionResult with what succeeded and what did not
        """
        result = ResolutionResult()
        if not dependencies:
            return result
        self.store.mkdir(parents=True, exist_ok=True)

        for declared in dependencies:
            dependency = declared.normalized()
            if dependency.is_local:
                outcome = self._resolve_local(dependency)
            else:
                outcome = self._resolve_remote(dependency)
            if isinstance(outcome, Diagnostic):
                result.diagnostics.append(outcome)
            else:
                result.resolved.append(outcome)
        return result

    def _resolve_local(self, dependency: Dependency) -> ResolvedDependency | Diagnostic:
        link = self.store / dependency.name
        self._remove_entry(link)

        target = Path(dependency.path or "")
        if not target.is_absolute():
            target = self.layout.project_dir / target
        target = Path(os.path.abspath(target))
        if not target.exists():
            return Diagnostic(Severity.SKIP, dependency.name, f"local dependency not found at {target}")

        try:
            link.symlink_to(target, target_is_directory=True)
            log_detail(f"Linked local dependency: {dependency.name} -> {target}")
        except (OSError, NotImplementedError) as e:
            logger.debug("Symlink not possible for %s (%s), copying instead", dependency.name, e)
            if target.is_dir():
                shutil.copytree(target, link)
            else:
                shutil.copy2(target, link)
            log_detail(f"Copied local dependency: {dependency.name} <- {target}")

        return ResolvedDependency(dependency=dependency, revision=str(target), location=link)

    def _resolve_remote(self, dependency: Dependency) -> ResolvedDependency | Diagnostic:
        destination = self.store / dependency.name
        url = dependency.remote_url or ""

        if destination.is_symlink() or (destination.exists() and not git_client.is_checkout(destination)):
            # Left over from a path declaration of the same name
            logger.debug("Replacing non-git store entry for %s", dependency.name)
            self._remove_entry(destination)

        if not destination.exists():
            log_detail(f"Downloading dependency: {dependency.name} from {url}")
            if not git_client.clone(url, destination):
                # A half-written clone would look materialized on the next run
                self._remove_entry(destination)
                return Diagnostic(Severity.SKIP, dependency.name, f"failed to clone {url}")

        pin = dependency.pin
        if pin is not None and not git_client.checkout(destination, pin):
            return Diagnostic(Severity.FATAL, dependency.name, f"could not check out pinned revision '{pin}'")

        revision = git_client.head_revision(destination)
        if revision is None:
            return Diagnostic(Severity.SKIP, dependency.name, "could not read HEAD revision")
        logger.debug("Pinned %s at %s", dependency.name, revision)
        return ResolvedDependency(dependency=dependency, revision=revision, location=destination)

    @staticmethod
    def _remove_entry(path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)

    def build_dependencies(
        self, resolved: Sequence[ResolvedDependency], toolchain: ToolchainDescriptor
    ) -> List[Diagnostic]:
        """Run each remote dependency's own build system, if it has one.

        Local path dependencies are skipped: their store entry points into the
        user's own tree, and a sub-build there would write into it.

        Args:
            resolved: Resolved dependencies
            toolchain: Host toolchain; its compiler is handed to the sub-build

        Returns:
            WARN diagnostics for failed or impossible sub-builds
        """
        diagnostics: List[Diagnostic] = []
        for dep in resolved:
            if dep.is_local:
                logger.debug("Not building local dependency %s in place", dep.name)
                continue
            command_sets = self._sub_build_commands(dep.location, toolchain)
            if command_sets is None:
                logger.debug("No build system for %s, treating as header-only", dep.name)
                continue
            tool, commands = command_sets
            if not command_exists([tool, "--version"]):
                diagnostics.append(Diagnostic(Severity.WARN, dep.name, f"'{tool}' not found, dependency not built"))
                continue
            log_detail(f"Building dependency: {dep.name} ({tool})")
            for cmd in commands:
                if run_command(cmd, cwd=dep.location).returncode != 0:
                    diagnostics.append(Diagnostic(Severity.WARN, dep.name, f"sub-build failed: {' '.join(cmd)}"))
                    break
        return diagnostics

    @staticmethod
    def _sub_build_commands(
        location: Path, toolchain: ToolchainDescriptor
    ) -> Optional[tuple[str, List[List[str]]]]:
        if (location / "CMakeLists.txt").exists():
            build_dir = location / "build"
            return "cmake", [
                ["cmake", "-S", str(location), "-B", str(build_dir), f"-DCMAKE_CXX_COMPILER={toolchain.compiler}"],
                ["cmake", "--build", str(build_dir)],
            ]
        if (location / "Makefile").exists():
            return "make", [["make", "-C", str(location), f"CXX={toolchain.compiler}"]]
        return None
