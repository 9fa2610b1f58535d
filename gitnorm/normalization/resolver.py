"""
Branch resolution for a detached HEAD.

Build agents often check out a bare commit. Downstream version
calculation needs a branch name, so the commit is mapped back to a
local branch, or a synthetic branch is created for it.

Resolution states:

    ATTACHED             HEAD already on a branch, nothing to do
    DETACHED_UNRESOLVED  HEAD detached, no branch chosen yet
    DETACHED_RESOLVED    a branch was chosen and checked out

A ConfigurationError leaves the repository detached.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from gitnorm.core.exceptions import ConfigurationError
from gitnorm.git.models import (
    AuthenticationInfo,
    BranchRef,
    HEADS_PREFIX,
    NormalizationOutcome,
)
from gitnorm.git.repository import GitRepository
from gitnorm.normalization.refs import local_name_for_branch

logger = logging.getLogger(__name__)

MOVE_BRANCH_MESSAGE = "Move one of the branches along a commit to remove warning"


class ResolutionState(Enum):
    """State of HEAD during branch resolution."""
    ATTACHED = "attached"
    DETACHED_UNRESOLVED = "detached_unresolved"
    DETACHED_RESOLVED = "detached_resolved"


def prefer_master(candidates: Sequence[BranchRef]) -> Optional[BranchRef]:
    """Pick the candidate named master, if any."""
    for branch in candidates:
        if branch.friendly_name == "master":
            return branch
    return None


def prefer_single_unseparated(candidates: Sequence[BranchRef]) -> Optional[BranchRef]:
    """Pick the only candidate whose name has neither '/' nor '-'."""
    plain = [
        b for b in candidates
        if "/" not in b.friendly_name and "-" not in b.friendly_name
    ]
    if len(plain) == 1:
        return plain[0]
    return None


# Applied in order; the first rule that picks a branch wins.
DISAMBIGUATION_RULES: List[Tuple[str, Callable[[Sequence[BranchRef]], Optional[BranchRef]]]] = [
    ("Because one of the branches is 'master', will build master.", prefer_master),
    ("Choosing {branch} as it is the only branch without / or - in it.", prefer_single_unseparated),
]


def disambiguate(candidates: Sequence[BranchRef]) -> Tuple[BranchRef, str]:
    """
    Choose one branch among several pointing at the same commit.

    Args:
        candidates: Local branches sharing HEAD's commit.

    Returns:
        Tuple of (chosen branch, explanation).

    Raises:
        ConfigurationError: If no rule picks a branch.
    """
    for explanation, rule in DISAMBIGUATION_RULES:
        chosen = rule(candidates)
        if chosen is not None:
            return chosen, explanation.format(branch=chosen.canonical_name)

    names = [b.canonical_name for b in candidates]
    raise ConfigurationError(
        "Failed to try and guess branch to use, cannot guess branch among "
        f"{', '.join(names)}. Move one of the candidate branches forward by a "
        "commit to disambiguate.",
        details={"candidates": names},
    )


def normalize_branch_name(name: str) -> str:
    """Drop a leading heads/ segment so refs/heads/x, refs/x and x compare equal."""
    if not name.startswith("refs/"):
        name = "refs/" + name
    if name.startswith(HEADS_PREFIX):
        name = "refs/" + name[len(HEADS_PREFIX):]
    return name


class BranchResolver:
    """
    Decides which local branch to check out for a detached HEAD.
    """

    def __init__(self, detached_branch_prefix: str = "detached/"):
        self.detached_branch_prefix = detached_branch_prefix

    def resolve(
        self,
        repository: GitRepository,
        current_branch: Optional[str] = None,
        auth: Optional[AuthenticationInfo] = None,
    ) -> NormalizationOutcome:
        """
        Resolve HEAD to a branch and check it out.

        Args:
            repository: Repository already synchronized with its remote.
            current_branch: Branch the build is supposed to be for.
            auth: Credentials for querying the remote.

        Returns:
            The branch left checked out.
        """
        head = repository.head()
        if not head.is_detached:
            logger.info(f"HEAD points at branch '{head.friendly_name}'.")
            return NormalizationOutcome(
                branch=head.canonical_name,
                head_sha=head.tip_sha,
                state=ResolutionState.ATTACHED.value,
            )

        head_sha = head.tip_sha
        logger.info(f"HEAD is detached and points at commit '{head_sha}'.")
        logger.debug(f"Resolution state: {ResolutionState.DETACHED_UNRESOLVED.value}")
        logger.info(f"Local Refs:\n{repository.describe_refs()}")

        candidates = [
            b for b in repository.local_branches() if b.tip_sha == head_sha
        ]
        chosen = self._choose(repository, candidates, head_sha, current_branch, auth)

        repository.checkout(chosen)
        return NormalizationOutcome(
            branch=chosen.canonical_name,
            head_sha=repository.head().tip_sha,
            state=ResolutionState.DETACHED_RESOLVED.value,
        )

    def _choose(
        self,
        repository: GitRepository,
        candidates: List[BranchRef],
        head_sha: str,
        current_branch: Optional[str],
        auth: Optional[AuthenticationInfo],
    ) -> BranchRef:
        if current_branch:
            wanted = normalize_branch_name(current_branch)
            matching = [
                b for b in candidates
                if normalize_branch_name(b.canonical_name) == wanted
            ]
            if len(matching) == 1:
                logger.info(f"Checking out local branch '{current_branch}'.")
                return matching[0]

        if len(candidates) > 1:
            names = ", ".join(b.canonical_name for b in candidates)
            logger.warning(
                f"Found more than one local branch pointing at the commit "
                f"'{head_sha}' ({names})."
            )
            chosen, explanation = disambiguate(candidates)
            logger.warning(f"{explanation} {MOVE_BRANCH_MESSAGE}")
            return chosen

        if not candidates:
            logger.info(
                f"No local branch pointing at the commit '{head_sha}'. "
                "Fake branch needs to be created."
            )
            return self.create_fake_branch(repository, head_sha, current_branch, auth)

        logger.info(f"Checking out local branch '{candidates[0].canonical_name}'.")
        return candidates[0]

    def create_fake_branch(
        self,
        repository: GitRepository,
        head_sha: str,
        current_branch: Optional[str] = None,
        auth: Optional[AuthenticationInfo] = None,
    ) -> BranchRef:
        """Create a local branch at head_sha, named after the pull request when possible."""
        name = self._pull_request_branch_name(repository, head_sha, auth)
        if name is None:
            name = self._fallback_branch_name(repository, head_sha, current_branch)

        logger.info(f"Creating fake local branch 'refs/heads/{name}'.")
        return repository.create_branch(name, head_sha)

    def _pull_request_branch_name(
        self,
        repository: GitRepository,
        head_sha: str,
        auth: Optional[AuthenticationInfo],
    ) -> Optional[str]:
        remotes = repository.remotes()
        if len(remotes) != 1:
            return None
        remote = remotes[0]

        logger.info("Fetching remote refs to see if there is a pull request ref")
        tips = repository.ls_remote(remote.name, auth)
        logger.debug(
            "Remote Refs:\n" + "\n".join(t.canonical_name for t in tips)
        )

        pull_requests = sorted(
            {t.canonical_name for t in tips if t.sha == head_sha and t.is_pull_request}
        )
        if len(pull_requests) > 1:
            raise ConfigurationError(
                f"Found more than one remote tip from remote '{remote.url}' pointing "
                f"at the commit '{head_sha}'. Unable to determine which one to use "
                f"({', '.join(pull_requests)}).",
                details={"remote_tips": pull_requests},
            )
        if not pull_requests:
            return None

        canonical_name = pull_requests[0]
        logger.info(f"Found remote tip '{canonical_name}' pointing at the commit '{head_sha}'.")
        name = canonical_name[len("refs/"):]
        if repository.find_branch("refs/heads/" + name) is not None:
            return None
        return name

    def _fallback_branch_name(
        self,
        repository: GitRepository,
        head_sha: str,
        current_branch: Optional[str],
    ) -> str:
        if current_branch:
            name = local_name_for_branch(current_branch)
            if (
                repository.is_valid_branch_name(name)
                and repository.find_branch("refs/heads/" + name) is None
            ):
                return name

        name = f"{self.detached_branch_prefix}{head_sha[:7]}"
        if repository.find_branch("refs/heads/" + name) is not None:
            name = f"{self.detached_branch_prefix}{head_sha}"
        return name
