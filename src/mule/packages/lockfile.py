"""mule.lock reading and writing.

The lockfile records the exact revision every dependency resolved to on the
last resolution pass. It is rewritten in full each time and is never used as
an input to resolution; it exists for auditing and reproducibility checks.

Format:

    # Verified dependency snapshots

    [dependencies]
    foo = { path = "/abs/vendor/foo" }
    bar = { git = "https://example.com/bar.git", commit = "abc123", tag = "v1.0" }
"""

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .dependency_resolver import ResolvedDependency

LOCKFILE_HEADER = "# Verified dependency snapshots\n\n[dependencies]\n"

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


class LockfileError(Exception):
    """Raised when a lockfile cannot be parsed."""

    pass


@dataclass(frozen=True)
class LockEntry:
    """One recorded dependency snapshot.

    Attributes:
        name: Dependency name
        mode: "path" or "git"
        revision: Absolute path (path mode) or commit hash (git mode)
        remote_url: Repository URL (git mode only)
        tag: Declared tag, if any (git mode only)
    """

    name: str
    mode: str
    revision: str
    remote_url: Optional[str] = None
    tag: Optional[str] = None


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    return f'"{escaped}"'


def _key(name: str) -> str:
    return name if _BARE_KEY.match(name) else _quote(name)


def format_entry(dep: ResolvedDependency) -> str:
    """Render one lockfile line for a resolved dependency."""
    if dep.is_local:
        fields = [("path", dep.revision)]
    else:
        fields = [("git", dep.dependency.remote_url or ""), ("commit", dep.revision)]
        if dep.dependency.tag:
            fields.append(("tag", dep.dependency.tag))
    body = ", ".join(f"{key} = {_quote(value)}" for key, value in fields)
    return f"{_key(dep.name)} = {{ {body} }}\n"


def write_lockfile(resolved: Sequence[ResolvedDependency], path: Path) -> None:
    """Overwrite the lockfile with the given snapshots, in order."""
    content = LOCKFILE_HEADER + "".join(format_entry(dep) for dep in resolved)
    path.write_text(content, encoding="utf-8")


def read_lockfile(path: Path) -> List[LockEntry]:
    """Parse a lockfile back into entries (file order).

    Returns:
        Recorded entries; empty if the file does not exist

    Raises:
        LockfileError: If the file is not valid TOML or has malformed entries
    """
    if not path.exists():
        return []
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise LockfileError(f"Invalid lockfile {path}: {e}") from e

    entries = []
    for name, value in data.get("dependencies", {}).items():
        if not isinstance(value, dict):
            raise LockfileError(f"Lockfile entry '{name}' must be an inline table")
        if "path" in value:
            entries.append(LockEntry(name=name, mode="path", revision=value["path"]))
        elif "git" in value and "commit" in value:
            entries.append(
                LockEntry(
                    name=name,
                    mode="git",
                    revision=value["commit"],
                    remote_url=value["git"],
                    tag=value.get("tag"),
                )
            )
        else:
            raise LockfileError(f"Lockfile entry '{name}' has neither a path nor a git commit")
    return entries
