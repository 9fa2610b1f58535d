"""
Refspec maintenance, fetching and local branch mirroring.

CI checkouts are frequently shallow or single-branch. Before a branch
can be resolved locally, every remote branch has to be fetched and
exposed as a local branch.
"""

import logging
from typing import List, Optional

from gitnorm.core.exceptions import ConfigurationError
from gitnorm.git.models import (
    AuthenticationInfo,
    BranchRef,
    HEADS_PREFIX,
    REMOTES_PREFIX,
    Remote,
)
from gitnorm.git.repository import GitRepository

logger = logging.getLogger(__name__)

ALL_BRANCHES_SOURCE = "refs/heads/*"


def local_name_for_branch(branch: str) -> str:
    """
    Map a branch name as reported by a build agent to a local branch name.

    refs/heads/x -> x, refs/pull/1/merge -> pull/1/merge, x -> x.
    """
    if branch.startswith(HEADS_PREFIX):
        return branch[len(HEADS_PREFIX):]
    if branch.startswith("refs/"):
        return branch[len("refs/"):]
    return branch


class RefSynchronizer:
    """
    Ensures refspecs, fetches and mirrors remote-tracking branches locally.
    """

    def __init__(self, extra_refspecs: Optional[List[str]] = None):
        self.extra_refspecs = list(extra_refspecs or [])

    def ensure_single_remote(self, repository: GitRepository) -> Remote:
        """
        Return the only configured remote.

        Raises:
            ConfigurationError: If zero or several remotes are configured.
        """
        remotes = repository.remotes()
        if len(remotes) != 1:
            names = ", ".join(r.name for r in remotes) or "none"
            raise ConfigurationError(
                f"{len(remotes)} remote(s) have been detected ({names}). "
                "When being run on a build server, the Git repository is expected "
                "to bear one (and no more than one) remote: ambiguous or missing remote.",
                details={"remotes": [r.name for r in remotes]},
            )
        return remotes[0]

    def required_refspecs(self, remote: Remote) -> List[str]:
        """Refspecs the remote must carry, in the order they are added."""
        required = []
        if not remote.has_refspec_source(ALL_BRANCHES_SOURCE):
            required.append(f"+refs/heads/*:refs/remotes/{remote.name}/*")
        for spec in self.extra_refspecs:
            required.append(spec.replace("{remote}", remote.name))
        return required

    def add_missing_refspecs(self, repository: GitRepository, remote: Remote) -> Remote:
        """Add required refspecs that the remote does not have yet."""
        for spec in self.required_refspecs(remote):
            if spec in remote.fetch_refspecs:
                continue
            logger.info(f"Adding refspec: {spec}")
            repository.add_fetch_refspec(remote.name, spec)
            remote.fetch_refspecs.append(spec)
        return remote

    def fetch(
        self,
        repository: GitRepository,
        remote: Remote,
        no_fetch: bool,
        auth: Optional[AuthenticationInfo] = None,
    ) -> None:
        if no_fetch:
            logger.info(
                "Skipping fetching, the repository is assumed to be already "
                "normalized. If the version is not calculated as expected you "
                "might need to allow fetching."
            )
            return

        logger.info(
            f"Fetching from remote '{remote.name}' using the following refspecs: "
            f"{', '.join(remote.fetch_refspecs)}."
        )
        repository.fetch(remote.name, auth)

    def ensure_local_branch_for_current_branch(
        self,
        repository: GitRepository,
        remote: Remote,
        current_branch: Optional[str],
        checkout: bool = False,
    ) -> Optional[BranchRef]:
        """
        Create a local branch for the intended branch when only the remote has it.

        Args:
            repository: Open repository.
            remote: The single remote.
            current_branch: Branch the build is for, if known.
            checkout: Also check the branch out (dynamic repositories),
                moving it to the remote tip first if it is behind.

        Returns:
            The local branch, or None when nothing matches on the remote.
        """
        if not current_branch:
            return None

        name = local_name_for_branch(current_branch)
        local = repository.find_branch(HEADS_PREFIX + name)
        remote_tracking = repository.find_branch(f"{REMOTES_PREFIX}{remote.name}/{name}")

        if local is None and remote_tracking is not None:
            logger.info(
                f"Creating local branch {HEADS_PREFIX}{name} pointing at "
                f"{remote_tracking.tip_sha}"
            )
            local = repository.create_branch(name, remote_tracking.tip_sha)
            repository.set_upstream(name, remote.name, HEADS_PREFIX + name)

        if checkout and local is not None:
            head = repository.head()
            if head.canonical_name != local.canonical_name:
                if (
                    remote_tracking is not None
                    and local.tip_sha != remote_tracking.tip_sha
                ):
                    logger.info(
                        f"Updating local ref '{local.canonical_name}' to point at "
                        f"{remote_tracking.tip_sha} before checking it out."
                    )
                    local = repository.update_branch(name, remote_tracking.tip_sha)
                logger.info(f"Checking out local branch '{local.canonical_name}'.")
                repository.checkout(local)

        return local

    def mirror_remote_tracking_branches(
        self, repository: GitRepository, remote_name: str
    ) -> List[BranchRef]:
        """
        Create or update a local branch for every remote-tracking branch.

        The branch HEAD is attached to is left alone.

        Returns:
            Local branches that were created or moved.
        """
        prefix = f"{REMOTES_PREFIX}{remote_name}/"
        head = repository.head()
        branches = repository.branches()
        local_tips = {
            b.canonical_name: b.tip_sha for b in branches if not b.is_remote_tracking
        }

        changed = []
        for tracking in branches:
            if not tracking.canonical_name.startswith(prefix):
                continue
            name = tracking.canonical_name[len(prefix):]
            if name == "HEAD":
                continue
            local_canonical_name = HEADS_PREFIX + name

            if not head.is_detached and head.canonical_name == local_canonical_name:
                continue

            if local_canonical_name in local_tips:
                if local_tips[local_canonical_name] == tracking.tip_sha:
                    logger.debug(
                        f"Skipping update of '{tracking.canonical_name}' as it "
                        "already matches the remote ref."
                    )
                    continue
                logger.info(
                    f"Updating local ref '{local_canonical_name}' to point at "
                    f"{tracking.tip_sha}."
                )
                changed.append(repository.update_branch(name, tracking.tip_sha))
                continue

            logger.info(
                f"Creating local branch from remote tracking '{tracking.canonical_name}'."
            )
            changed.append(repository.create_branch(name, tracking.tip_sha))
            repository.set_upstream(name, remote_name, local_canonical_name)

        return changed

    def synchronize(
        self,
        repository: GitRepository,
        current_branch: Optional[str] = None,
        no_fetch: bool = False,
        auth: Optional[AuthenticationInfo] = None,
        dynamic: bool = False,
    ) -> Remote:
        """
        Run the full synchronization sequence.

        Returns:
            The single remote, with its final refspecs.
        """
        remote = self.ensure_single_remote(repository)
        self.add_missing_refspecs(repository, remote)
        self.fetch(repository, remote, no_fetch, auth)
        self.ensure_local_branch_for_current_branch(
            repository, remote, current_branch, checkout=dynamic
        )
        self.mirror_remote_tracking_branches(repository, remote.name)
        return remote
