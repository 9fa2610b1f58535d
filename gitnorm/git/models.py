"""
Repository data structures.

Snapshots of remotes, refs and HEAD read from a live repository at the
start of an operation. None of them hold a handle to the repository.
"""

from dataclasses import dataclass, field
from typing import List, Optional

HEADS_PREFIX = "refs/heads/"
REMOTES_PREFIX = "refs/remotes/"
PULL_REQUEST_PREFIXES = ("refs/pull/", "refs/pull-requests/")


@dataclass
class AuthenticationInfo:
    """Credentials used for clone, fetch and ls-remote."""

    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return not self.username or not self.username.strip()


@dataclass
class Remote:
    """A configured remote and its fetch refspecs."""

    name: str
    url: Optional[str] = None
    fetch_refspecs: List[str] = field(default_factory=list)

    def has_refspec_source(self, source: str) -> bool:
        """Check whether a fetch refspec maps from the given source pattern."""
        for spec in self.fetch_refspecs:
            if spec.lstrip("+").split(":", 1)[0] == source:
                return True
        return False


@dataclass
class BranchRef:
    """A local or remote-tracking branch."""

    canonical_name: str
    friendly_name: str
    tip_sha: str
    is_remote_tracking: bool = False

    @classmethod
    def from_canonical(cls, canonical_name: str, tip_sha: str) -> "BranchRef":
        """Create a BranchRef from a full ref name such as refs/heads/main."""
        if canonical_name.startswith(HEADS_PREFIX):
            return cls(
                canonical_name=canonical_name,
                friendly_name=canonical_name[len(HEADS_PREFIX):],
                tip_sha=tip_sha,
            )
        if canonical_name.startswith(REMOTES_PREFIX):
            return cls(
                canonical_name=canonical_name,
                friendly_name=canonical_name[len(REMOTES_PREFIX):],
                tip_sha=tip_sha,
                is_remote_tracking=True,
            )
        raise ValueError(f"Not a branch reference: {canonical_name}")


@dataclass(frozen=True)
class RemoteTip:
    """A reference advertised by a remote."""

    canonical_name: str
    sha: str

    @property
    def is_pull_request(self) -> bool:
        return self.canonical_name.startswith(PULL_REQUEST_PREFIXES)


@dataclass(frozen=True)
class HeadState:
    """Snapshot of HEAD."""

    tip_sha: Optional[str]
    canonical_name: str
    is_detached: bool

    @property
    def friendly_name(self) -> str:
        if self.canonical_name.startswith(HEADS_PREFIX):
            return self.canonical_name[len(HEADS_PREFIX):]
        return self.canonical_name

    def describe(self) -> str:
        return f"{self.canonical_name} | {self.tip_sha}"


@dataclass
class NormalizationOutcome:
    """The branch left checked out by a normalization run."""

    branch: str
    head_sha: Optional[str]
    state: str
