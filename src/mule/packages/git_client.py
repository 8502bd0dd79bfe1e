"""Thin wrapper around the git command line.

Only the handful of operations the dependency resolver needs: a shallow
clone, checking out a pinned reference (fetching it first when the shallow
history does not contain it), reading back HEAD, and telling a checkout
apart from other store entries.
"""

import logging
from pathlib import Path
from typing import Optional

from ..subprocess_utils import run_command

logger = logging.getLogger(__name__)

GIT = "git"


def clone(url: str, destination: Path) -> bool:
    """Shallow-clone url into destination. Returns True on success."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    result = run_command([GIT, "clone", "--depth", "1", url, str(destination)])
    return result.returncode == 0


def checkout(repo: Path, ref: str) -> bool:
    """Check out ref in repo.

    A shallow clone usually lacks older tags and commits, so when the plain
    checkout fails the ref is fetched from origin and FETCH_HEAD is checked
    out instead.

    Returns:
        True if the working tree is now at ref
    """
    result = run_command([GIT, "checkout", "--quiet", ref], cwd=repo, capture=True)
    if result.returncode == 0:
        return True

    logger.debug("Ref %s not in local history of %s, fetching", ref, repo.name)
    fetched = run_command([GIT, "fetch", "--depth", "1", "origin", ref], cwd=repo, capture=True)
    if fetched.returncode != 0:
        return False
    result = run_command([GIT, "checkout", "--quiet", "FETCH_HEAD"], cwd=repo, capture=True)
    return result.returncode == 0


def head_revision(repo: Path) -> Optional[str]:
    """Return the commit hash HEAD points at, or None if it cannot be read."""
    result = run_command([GIT, "rev-parse", "HEAD"], cwd=repo, capture=True)
    if result.returncode != 0:
        return None
    revision = (result.stdout or "").strip()
    return revision or None


def is_checkout(path: Path) -> bool:
    """True if path is the top of a git working tree (has a .git entry)."""
    return (path / ".git").exists()
