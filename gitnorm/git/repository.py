"""
Scoped access to a git repository through the git executable.

A GitRepository is bound to one .git directory (and optionally a
working tree) and exposes the handful of high-level operations the
normalization engine needs: remote management, ref enumeration, fetch,
ls-remote and checkout.
"""

import base64
import logging
import os
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from gitnorm.core.exceptions import (
    GitCommandError,
    PathResolutionError,
    TransportError,
)
from gitnorm.git.models import (
    AuthenticationInfo,
    BranchRef,
    HEADS_PREFIX,
    HeadState,
    Remote,
    RemoteTip,
)

logger = logging.getLogger(__name__)

DETACHED_HEAD_NAME = "(no branch)"


def credential_environment(
    auth: Optional[AuthenticationInfo],
    base_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build environment variables that hand explicit credentials to git.

    The credential is injected as an HTTP Authorization header through
    GIT_CONFIG_* variables so it never shows up on the command line.
    Existing GIT_CONFIG_* entries in the base environment are preserved.

    Args:
        auth: Credentials; None or a missing username means anonymous.
        base_env: Environment the variables will be merged into.

    Returns:
        Variables to add to the git process environment.
    """
    if auth is None or auth.is_anonymous:
        return {}

    base_env = os.environ if base_env is None else base_env
    index = int(base_env.get("GIT_CONFIG_COUNT", "0") or "0")

    token = base64.b64encode(
        f"{auth.username}:{auth.password or ''}".encode("utf-8")
    ).decode("ascii")

    return {
        "GIT_CONFIG_COUNT": str(index + 1),
        f"GIT_CONFIG_KEY_{index}": "http.extraHeader",
        f"GIT_CONFIG_VALUE_{index}": f"Authorization: Basic {token}",
    }


def run_git(
    args: List[str],
    executable: str = "git",
    cwd: Optional[Path] = None,
    timeout: int = 300,
    extra_env: Optional[Dict[str, str]] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run a git command and capture its output.

    Raises:
        GitCommandError: If git is missing, times out, or exits non-zero
            while check is set.
    """
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if extra_env:
        env.update(extra_env)

    cmd = [executable, *args]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd else None,
            env=env,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise GitCommandError(
            args, None, message="Git is not available on this system"
        )
    except subprocess.TimeoutExpired:
        raise GitCommandError(
            args,
            None,
            message=f"git {' '.join(args)} timed out after {timeout} seconds",
        )

    if check and result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr)

    return result


class GitRepository:
    """
    Handle to a repository rooted at a .git directory.

    The handle is a context manager and must not be used after it has
    been closed. It holds no cached repository state: every query reads
    the live repository.
    """

    def __init__(
        self,
        dot_git_directory: Path,
        working_directory: Optional[Path] = None,
        executable: str = "git",
        timeout: int = 300,
    ):
        self.dot_git_directory = Path(dot_git_directory).resolve()
        self.working_directory = (
            Path(working_directory).resolve() if working_directory else None
        )
        self.executable = executable
        self.timeout = timeout
        self._closed = False

    def __enter__(self) -> "GitRepository":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the handle."""
        if not self._closed:
            logger.debug(f"Closing repository handle: {self.dot_git_directory}")
        self._closed = True

    def run(
        self,
        *args: str,
        check: bool = True,
        extra_env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command against this repository."""
        if self._closed:
            raise GitCommandError(
                list(args),
                None,
                message=f"Repository handle for '{self.dot_git_directory}' is closed",
            )

        git_args = [f"--git-dir={self.dot_git_directory}"]
        if self.working_directory:
            git_args.append(f"--work-tree={self.working_directory}")
        git_args.extend(args)

        return run_git(
            git_args,
            executable=self.executable,
            cwd=self.working_directory or self.dot_git_directory,
            timeout=self.timeout,
            extra_env=extra_env,
            check=check,
        )

    # Remotes

    def remotes(self) -> List[Remote]:
        """List configured remotes in configuration order."""
        result = self.run(
            "config", "--null", "--get-regexp", r"^remote\..*\.url$", check=False
        )
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise GitCommandError(
                ["config", "--get-regexp"], result.returncode, result.stderr
            )

        remotes = []
        for entry in result.stdout.split("\0"):
            if not entry:
                continue
            key, _, url = entry.partition("\n")
            name = key[len("remote."):-len(".url")]
            remotes.append(
                Remote(name=name, url=url, fetch_refspecs=self._fetch_refspecs(name))
            )
        return remotes

    def _fetch_refspecs(self, remote_name: str) -> List[str]:
        result = self.run(
            "config", "--get-all", f"remote.{remote_name}.fetch", check=False
        )
        if result.returncode != 0:
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    def get_remote(self, name: str) -> Optional[Remote]:
        for remote in self.remotes():
            if remote.name == name:
                return remote
        return None

    def add_remote(self, name: str, url: str) -> Remote:
        self.run("remote", "add", name, url)
        return self.get_remote(name)

    def remove_remote(self, name: str) -> None:
        self.run("remote", "remove", name)

    def add_fetch_refspec(self, remote_name: str, refspec: str) -> None:
        self.run("config", "--add", f"remote.{remote_name}.fetch", refspec)

    def fetch(
        self, remote_name: str, auth: Optional[AuthenticationInfo] = None
    ) -> None:
        """
        Fetch from a remote using its configured refspecs.

        Raises:
            TransportError: If the fetch fails.
        """
        try:
            self.run("fetch", remote_name, extra_env=credential_environment(auth))
        except GitCommandError as e:
            raise TransportError(
                f"Failed to fetch from remote '{remote_name}'",
                cause=e,
                details={"remote": remote_name, "stderr": e.stderr},
            ) from e

    def ls_remote(
        self, remote_name: str, auth: Optional[AuthenticationInfo] = None
    ) -> List[RemoteTip]:
        """
        List the references advertised by a remote.

        Raises:
            TransportError: If the remote cannot be queried.
        """
        try:
            result = self.run(
                "ls-remote", remote_name, extra_env=credential_environment(auth)
            )
        except GitCommandError as e:
            raise TransportError(
                f"Failed to list references of remote '{remote_name}'",
                cause=e,
                details={"remote": remote_name, "stderr": e.stderr},
            ) from e

        tips = []
        for line in result.stdout.splitlines():
            sha, _, name = line.partition("\t")
            if not name:
                continue
            if name.endswith("^{}"):
                name = name[:-3]
            tips.append(RemoteTip(canonical_name=name, sha=sha))
        return tips

    # Refs

    def branches(self) -> List[BranchRef]:
        """List local and remote-tracking branches, skipping symbolic refs."""
        result = self.run(
            "for-each-ref",
            "--format=%(refname)%09%(objectname)%09%(symref)",
            "refs/heads",
            "refs/remotes",
        )
        branches = []
        for line in result.stdout.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            if len(parts) > 2 and parts[2]:
                continue
            branches.append(BranchRef.from_canonical(parts[0], parts[1]))
        return branches

    def local_branches(self) -> List[BranchRef]:
        return [b for b in self.branches() if not b.is_remote_tracking]

    def find_branch(self, canonical_name: str) -> Optional[BranchRef]:
        for branch in self.branches():
            if branch.canonical_name == canonical_name:
                return branch
        return None

    def head(self) -> HeadState:
        """Take a snapshot of HEAD."""
        result = self.run("symbolic-ref", "-q", "HEAD", check=False)
        if result.returncode == 0:
            canonical_name = result.stdout.strip()
            is_detached = False
        elif result.returncode == 1:
            canonical_name = DETACHED_HEAD_NAME
            is_detached = True
        else:
            raise GitCommandError(
                ["symbolic-ref", "-q", "HEAD"], result.returncode, result.stderr
            )

        sha_result = self.run(
            "rev-parse", "--verify", "-q", "HEAD^{commit}", check=False
        )
        tip_sha = sha_result.stdout.strip() if sha_result.returncode == 0 else None

        return HeadState(
            tip_sha=tip_sha, canonical_name=canonical_name, is_detached=is_detached
        )

    def create_branch(self, name: str, sha: str) -> BranchRef:
        """Create refs/heads/<name> at sha; fails if it already exists."""
        canonical_name = HEADS_PREFIX + name
        self.run("update-ref", canonical_name, sha, "0" * 40)
        return BranchRef.from_canonical(canonical_name, sha)

    def update_branch(self, name: str, sha: str) -> BranchRef:
        canonical_name = HEADS_PREFIX + name
        self.run("update-ref", canonical_name, sha)
        return BranchRef.from_canonical(canonical_name, sha)

    def is_valid_branch_name(self, name: str) -> bool:
        result = self.run("check-ref-format", "--branch", name, check=False)
        return result.returncode == 0

    def set_upstream(self, branch_name: str, remote_name: str, merge_ref: str) -> None:
        self.run("config", f"branch.{branch_name}.remote", remote_name)
        self.run("config", f"branch.{branch_name}.merge", merge_ref)

    def checkout(self, branch: BranchRef) -> None:
        """
        Check out a local branch.

        With a working tree this is a regular checkout; without one only
        HEAD is repointed at the branch.
        """
        if self.working_directory:
            self.run("checkout", "-q", branch.friendly_name, "--")
        else:
            self.run("symbolic-ref", "HEAD", branch.canonical_name)

    def describe_refs(self) -> str:
        """Render all refs with their targets, one per line."""
        result = self.run("for-each-ref", "--format=%(refname) (%(objectname))")
        return result.stdout.rstrip()


@contextmanager
def open_repository(
    dot_git_directory,
    working_directory=None,
    executable: str = "git",
    timeout: int = 300,
) -> Iterator[GitRepository]:
    """
    Open a repository for the duration of a with-block.

    Raises:
        PathResolutionError: If the path is not a git directory.
    """
    path = Path(dot_git_directory)
    if not path.exists():
        raise PathResolutionError(
            f"Git directory does not exist: {path}", details={"path": str(path)}
        )

    repository = GitRepository(path, working_directory, executable, timeout)
    try:
        result = repository.run("rev-parse", "--git-dir", check=False)
        if result.returncode != 0:
            raise PathResolutionError(
                f"Not a git repository: {path}",
                details={"path": str(path), "stderr": result.stderr.strip()},
            )
        yield repository
    finally:
        repository.close()
