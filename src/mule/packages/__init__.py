"""Dependency resolution, the dependency store and the lockfile."""

from .dependency_resolver import DependencyResolver, ResolutionResult, ResolvedDependency
from .lockfile import LockEntry, LockfileError, read_lockfile, write_lockfile

__all__ = [
    "DependencyResolver",
    "LockEntry",
    "LockfileError",
    "ResolutionResult",
    "ResolvedDependency",
    "read_lockfile",
    "write_lockfile",
]
