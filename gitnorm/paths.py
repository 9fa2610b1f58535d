"""
Discovery of the .git directory and working directory of a repository.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gitnorm.core.exceptions import PathResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryPaths:
    """Absolute paths of a repository's .git directory and working tree."""

    dot_git_directory: Path
    working_directory: Path


def _read_gitdir_file(git_file: Path) -> Optional[Path]:
    """Follow a 'gitdir: <path>' file as written for worktrees and submodules."""
    try:
        content = git_file.read_text().strip()
    except (IOError, OSError):
        return None
    if not content.startswith("gitdir:"):
        return None
    target = Path(content[len("gitdir:"):].strip())
    if not target.is_absolute():
        target = git_file.parent / target
    return target.resolve()


def find_dot_git(start: Path) -> Optional[RepositoryPaths]:
    """Walk up from start until a .git directory or gitdir file is found."""
    for candidate in [start, *start.parents]:
        dot_git = candidate / ".git"
        if dot_git.is_dir():
            return RepositoryPaths(dot_git.resolve(), candidate.resolve())
        if dot_git.is_file():
            target = _read_gitdir_file(dot_git)
            if target is not None and target.is_dir():
                return RepositoryPaths(target, candidate.resolve())
    return None


def resolve_repository_paths(
    dot_git_dir: Optional[str] = None,
    working_directory: Optional[str] = None,
) -> RepositoryPaths:
    """
    Resolve the (dot_git_directory, working_directory) pair.

    Args:
        dot_git_dir: Explicit .git directory; its parent is the working tree.
        working_directory: Directory inside the repository.

    Returns:
        Resolved repository paths.

    Raises:
        PathResolutionError: If either path cannot be found.
    """
    if dot_git_dir:
        dot_git = Path(dot_git_dir).resolve()
        if not dot_git.is_dir():
            raise PathResolutionError(
                f"Failed to find the .git directory '{dot_git_dir}'.",
                details={"dot_git_dir": str(dot_git_dir)},
            )
        work_tree = (
            Path(working_directory).resolve() if working_directory else dot_git.parent
        )
        if not work_tree.is_dir():
            raise PathResolutionError(
                f"Working directory does not exist: {work_tree}",
                details={"working_directory": str(work_tree)},
            )
        return RepositoryPaths(dot_git, work_tree)

    start = Path(working_directory or ".").resolve()
    if not start.is_dir():
        raise PathResolutionError(
            f"Working directory does not exist: {start}",
            details={"working_directory": str(start)},
        )

    paths = find_dot_git(start)
    if paths is None:
        raise PathResolutionError(
            f"Failed to prepare or find the .git directory in path '{start}'.",
            details={"working_directory": str(start)},
        )
    return paths
