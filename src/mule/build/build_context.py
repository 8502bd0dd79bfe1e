"""Build Context - aggregated compile and link inputs.

The project Config is never modified. Everything a build adds on top of it
(generated-source include path, dependency include and library paths,
toolkit flags) goes into a BuildContext, a derived working copy that flows
through compilation and linking.

Compile Flag Order:
    1. Own include/ directory
    2. Generated-sources directory
    3. User include_dirs (then toolkit include dirs)
    4. User raw flags (then toolkit compile flags)
    5. User defines
    6. Per dependency: its root, include/, src/ (each only if present)

Link Inputs:
    User lib_dirs, then per dependency build/ and lib/ (each only if present),
    user libs, user raw flags, user linker_flags (then toolkit link flags).

The build engine and the test harness both call assemble_build_context(),
so the two always see the same flags.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from ..config.project_config import Config
from ..layout import ProjectLayout

if TYPE_CHECKING:
    from .commands import CommandSynthesizer
    from .toolkit_flags import ToolkitFlags

DEPENDENCY_INCLUDE_SUBDIRS = ("include", "src")
DEPENDENCY_LIBRARY_SUBDIRS = ("build", "lib")


@dataclass(frozen=True)
class BuildContext:
    """Compile and link inputs for one build, derived from a Config.

    Attributes:
        config: The (unmodified) project configuration
        layout: Project directory layout
        include_dirs: Own, generated, user and toolkit include directories
        flags: User raw flags followed by toolkit compile flags
        defines: User preprocessor defines
        dependency_include_dirs: Discovered dependency include directories
        lib_dirs: User and discovered dependency library directories
        libs: Libraries to link
        link_flags: Raw flags passed at link time (user raw flags)
        linker_flags: User linker flags followed by toolkit link flags
    """

    config: Config
    layout: ProjectLayout
    include_dirs: tuple[Path, ...]
    flags: tuple[str, ...]
    defines: tuple[str, ...]
    dependency_include_dirs: tuple[Path, ...]
    lib_dirs: tuple[Path, ...]
    libs: tuple[str, ...]
    link_flags: tuple[str, ...]
    linker_flags: tuple[str, ...]

    def compile_flags(self, synthesizer: "CommandSynthesizer", extra_include_dirs: Sequence[Path] = ()) -> list[str]:
        """Render the compile flags in the documented order for one dialect.

        Args:
            synthesizer: Command synthesizer of the target dialect
            extra_include_dirs: Directories searched before everything else
        """
        flags = synthesizer.include_flags([*extra_include_dirs, *self.include_dirs])
        flags.extend(self.flags)
        flags.extend(synthesizer.define_flags(self.defines))
        flags.extend(synthesizer.include_flags(self.dependency_include_dirs))
        return flags

    def with_libs(self, extra_libs: Sequence[str]) -> "BuildContext":
        """Return a copy with additional libraries appended."""
        return replace(self, libs=self.libs + tuple(lib for lib in extra_libs if lib not in self.libs))


def discover_dependency_roots(deps_dir: Path) -> list[Path]:
    """List materialized dependencies in the store, sorted by name."""
    if not deps_dir.is_dir():
        return []
    return sorted(entry for entry in deps_dir.iterdir() if entry.is_dir())


def _resolve(project_dir: Path, value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else project_dir / path


def assemble_build_context(
    layout: ProjectLayout,
    config: Config,
    dependency_roots: Sequence[Path],
    toolkit: Optional["ToolkitFlags"] = None,
) -> BuildContext:
    """Aggregate include, define, flag and library inputs for a build.

    Args:
        layout: Project layout
        config: Project configuration (not modified)
        dependency_roots: Materialized dependency directories, in order
        toolkit: Optional GUI toolkit flags to merge in

    Returns:
        A new BuildContext
    """
    project_dir = layout.project_dir
    build = config.build

    include_dirs = [layout.include_dir, layout.generated_dir]
    include_dirs.extend(_resolve(project_dir, d) for d in build.include_dirs)
    flags = list(build.flags)
    linker_flags = list(build.linker_flags)
    if toolkit is not None:
        include_dirs.extend(Path(d) for d in toolkit.include_dirs)
        flags.extend(toolkit.compile_flags)
        linker_flags.extend(toolkit.linker_flags)

    dependency_includes: list[Path] = []
    dependency_libs: list[Path] = []
    for root in dependency_roots:
        if root.is_dir():
            dependency_includes.append(root)
        dependency_includes.extend(root / sub for sub in DEPENDENCY_INCLUDE_SUBDIRS if (root / sub).is_dir())
        dependency_libs.extend(root / sub for sub in DEPENDENCY_LIBRARY_SUBDIRS if (root / sub).is_dir())

    lib_dirs = [_resolve(project_dir, d) for d in build.lib_dirs]
    lib_dirs.extend(dependency_libs)

    return BuildContext(
        config=config,
        layout=layout,
        include_dirs=tuple(include_dirs),
        flags=tuple(flags),
        defines=tuple(build.defines),
        dependency_include_dirs=tuple(dependency_includes),
        lib_dirs=tuple(lib_dirs),
        libs=tuple(build.libs),
        link_flags=tuple(build.flags),
        linker_flags=tuple(linker_flags),
    )
