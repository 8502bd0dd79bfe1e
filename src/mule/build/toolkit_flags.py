"""GUI toolkit (Qt) flag discovery through pkg-config.

For every requested module the Qt 6 package is queried first
(``Qt6Widgets``); when it reports nothing the Qt 5 package is tried
(``Qt5Widgets``). Compile flags are split: ``-I`` entries become include
directories, everything else stays a compile flag. Link flags are appended
verbatim.
"""

import logging
import shlex
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..diagnostics import Diagnostic, Severity
from ..subprocess_utils import run_command

logger = logging.getLogger(__name__)

PKG_CONFIG = "pkg-config"
QT_NAMESPACES = ("Qt6", "Qt5")


@dataclass
class ToolkitFlags:
    """Flags discovered for a GUI toolkit."""

    include_dirs: List[str] = field(default_factory=list)
    compile_flags: List[str] = field(default_factory=list)
    linker_flags: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def extend(self, other: "ToolkitFlags") -> None:
        for value in other.include_dirs:
            if value not in self.include_dirs:
                self.include_dirs.append(value)
        for value in other.compile_flags:
            if value not in self.compile_flags:
                self.compile_flags.append(value)
        self.linker_flags.extend(other.linker_flags)
        self.diagnostics.extend(other.diagnostics)


def _pkg_config(package: str, query: str) -> Optional[List[str]]:
    """Run one pkg-config query. None when the package is unknown or the output is empty."""
    result = run_command([PKG_CONFIG, query, package], capture=True)
    if result.returncode != 0:
        return None
    tokens = shlex.split(result.stdout or "")
    return tokens or None


def query_module(module: str) -> ToolkitFlags:
    """Discover flags for one Qt module, e.g. "Widgets"."""
    flags = ToolkitFlags()
    for namespace in QT_NAMESPACES:
        package = f"{namespace}{module}"
        cflags = _pkg_config(package, "--cflags")
        libs = _pkg_config(package, "--libs")
        if cflags is None and libs is None:
            logger.debug("pkg-config knows nothing about %s", package)
            continue
        for token in cflags or []:
            if token.startswith("-I"):
                flags.include_dirs.append(token[2:])
            else:
                flags.compile_flags.append(token)
        flags.linker_flags.extend(libs or [])
        logger.debug("Using %s for Qt module %s", package, module)
        return flags

    flags.diagnostics.append(
        Diagnostic(Severity.WARN, f"qt:{module}", f"no pkg-config entry for {' or '.join(n + module for n in QT_NAMESPACES)}")
    )
    return flags


def query_qt_flags(modules: Sequence[str]) -> ToolkitFlags:
    """Discover compile and link flags for the requested Qt modules, in order."""
    combined = ToolkitFlags()
    for module in modules:
        combined.extend(query_module(module))
    return combined
