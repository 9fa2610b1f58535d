"""
Build agent detection.

A build agent reports which branch the build is for and whether it is
known to leave duplicate remotes behind. No agent means the process is
not running on a build server, which disables normalization.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, Type

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class BuildAgent(ABC):
    """Interface to the CI system the process runs under."""

    name: str = "unknown"

    def __init__(self, environ: Mapping[str, str]):
        self.environ = environ

    @classmethod
    @abstractmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        """Check whether this agent's environment is present."""
        pass

    @abstractmethod
    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        """Branch the agent is building, if it reports one."""
        pass

    def should_clean_up_remotes(self) -> bool:
        return False


class GitHubActions(BuildAgent):
    name = "GitHub Actions"

    @classmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        return _clean(environ.get("GITHUB_ACTIONS")) == "true"

    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        # GITHUB_REF is refs/heads/x, refs/pull/n/merge or refs/tags/x
        ref = _clean(self.environ.get("GITHUB_REF"))
        if ref and ref.startswith("refs/tags/"):
            return None
        return ref


class GitLabCi(BuildAgent):
    name = "GitLab CI"

    @classmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        return _clean(environ.get("GITLAB_CI")) == "true"

    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        if _clean(self.environ.get("CI_COMMIT_TAG")):
            return None
        return _clean(self.environ.get("CI_COMMIT_REF_NAME"))


class AzurePipelines(BuildAgent):
    name = "Azure Pipelines"

    @classmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        return _clean(environ.get("TF_BUILD")) is not None

    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        branch = _clean(self.environ.get("BUILD_SOURCEBRANCH"))
        if branch and branch.startswith("refs/tags/"):
            return None
        return branch


class Jenkins(BuildAgent):
    name = "Jenkins"

    @classmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        return _clean(environ.get("JENKINS_URL")) is not None

    def is_pipeline_as_code(self) -> bool:
        return _clean(self.environ.get("BRANCH_NAME")) is not None

    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        if self.is_pipeline_as_code():
            return _clean(self.environ.get("BRANCH_NAME"))
        return (
            _clean(self.environ.get("GIT_LOCAL_BRANCH"))
            or _clean(self.environ.get("GIT_BRANCH"))
        )

    def should_clean_up_remotes(self) -> bool:
        # The pipeline git plugin adds a remote per checkout
        return self.is_pipeline_as_code()


class GenericAgent(BuildAgent):
    """Explicitly requested agent for CI systems without a dedicated class."""

    name = "Generic"

    @classmethod
    def can_apply(cls, environ: Mapping[str, str]) -> bool:
        return _clean(environ.get("GITNORM_BUILD_AGENT")) == "generic"

    def get_current_branch(self, using_dynamic_repos: bool) -> Optional[str]:
        return _clean(self.environ.get("GITNORM_BRANCH"))

    def should_clean_up_remotes(self) -> bool:
        return _clean(self.environ.get("GITNORM_CLEAN_UP_REMOTES")) in ("1", "true")


AGENT_TYPES: List[Type[BuildAgent]] = [
    GenericAgent,
    GitHubActions,
    GitLabCi,
    AzurePipelines,
    Jenkins,
]


def detect_build_agent(environ: Optional[Mapping[str, str]] = None) -> Optional[BuildAgent]:
    """
    Detect the build agent from environment variables.

    Args:
        environ: Environment to inspect, defaults to os.environ.

    Returns:
        The first matching agent, or None when not on a build server.
    """
    environ = os.environ if environ is None else environ
    for agent_type in AGENT_TYPES:
        if agent_type.can_apply(environ):
            logger.info(f"Applicable build agent found: '{agent_type.name}'.")
            return agent_type(environ)
    logger.debug("No applicable build agent found")
    return None
