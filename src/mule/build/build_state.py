"""Timestamp-based staleness tracking.

A unit is stale when its output does not exist, or when its source was
modified strictly after the output. The same rule applies to compiled
objects and to generator outputs.

This is a timestamp oracle, not a content hash: a timestamp-preserving copy
or clock skew can leave a changed source looking fresh. Included headers
are not tracked either; touching a shared header does not rebuild its
includers.
"""

from dataclasses import dataclass
from pathlib import Path


def is_stale(source: Path, output: Path) -> bool:
    """Return True if output must be regenerated from source.

    Args:
        source: Input file (source, generator input)
        output: Derived file (object, generated source)
    """
    if not output.exists():
        return True
    return source.stat().st_mtime_ns > output.stat().st_mtime_ns


@dataclass(frozen=True)
class CompiledUnit:
    """One source file and its object file for the current build.

    Computed fresh on every build invocation; never persisted.

    Attributes:
        source: Source file path
        object_path: Object file path under the build directory
        stale: Whether the object must be (re)compiled
    """

    source: Path
    object_path: Path
    stale: bool

    @classmethod
    def evaluate(cls, source: Path, object_path: Path) -> "CompiledUnit":
        return cls(source=source, object_path=object_path, stale=is_stale(source, object_path))
