"""
Repository preparation entry point.

Decides whether normalization runs and sequences remote cleanup,
ref synchronization and branch resolution under the HEAD integrity
check.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Mapping, Optional

from gitnorm.agents import BuildAgent
from gitnorm.core.config import Config, PrepareOptions, Settings
from gitnorm.git.cloner import Cloner
from gitnorm.git.models import NormalizationOutcome
from gitnorm.git.repository import open_repository
from gitnorm.normalization.guard import HeadIntegrityGuard
from gitnorm.normalization.refs import RefSynchronizer
from gitnorm.normalization.remotes import RemoteDeduper
from gitnorm.normalization.resolver import BranchResolver
from gitnorm.paths import RepositoryPaths, resolve_repository_paths

logger = logging.getLogger(__name__)


class Preparer:
    """
    Prepares a CI checkout for version calculation.

    Normalization only runs when it was requested and a build agent
    was detected; it is not meant for developer checkouts.
    """

    def __init__(
        self,
        options: PrepareOptions,
        build_agent: Optional[BuildAgent] = None,
        settings: Settings = None,
        environ: Optional[Mapping[str, str]] = None,
        path_resolver: Callable[..., RepositoryPaths] = resolve_repository_paths,
    ):
        self.options = options
        self.build_agent = build_agent
        self.settings = settings or Config.get()
        self.environ = os.environ if environ is None else environ
        self.path_resolver = path_resolver

        normalization = self.settings.normalization
        self.deduper = RemoteDeduper(normalization.default_remote_name)
        self.synchronizer = RefSynchronizer(normalization.extra_refspecs)
        self.resolver = BranchResolver(normalization.detached_branch_prefix)

    @property
    def should_normalize(self) -> bool:
        return bool(self.options.normalize) and self.build_agent is not None

    @property
    def should_clean_up_remotes(self) -> bool:
        return self.build_agent is not None and self.build_agent.should_clean_up_remotes()

    def resolve_current_branch(self, using_dynamic_repos: bool = None) -> Optional[str]:
        """Prefer the build agent's branch, fall back to the configured one."""
        if self.build_agent is None:
            return self.options.branch

        if using_dynamic_repos is None:
            using_dynamic_repos = self.options.dynamic
        current_branch = (
            self.build_agent.get_current_branch(using_dynamic_repos)
            or self.options.branch
        )
        logger.info(f"Branch from build environment: {current_branch}")
        return current_branch

    def prepare(self) -> Optional[NormalizationOutcome]:
        """
        Prepare the repository described by the options.

        Returns:
            The normalization outcome, or None when normalization did not run.

        Raises:
            PathResolutionError: If the repository cannot be located.
        """
        current_branch = self.resolve_current_branch()

        paths = self.path_resolver(
            self.options.dot_git_dir, self.options.working_directory
        )
        logger.info(f"DotGit directory is: {paths.dot_git_directory}")
        logger.info(f"Git repository working directory is: {paths.working_directory}")

        if not self.should_normalize:
            logger.debug("Normalization not requested or not on a build server")
            return None

        if self.should_clean_up_remotes:
            self.cleanup_duplicate_remotes(paths.dot_git_directory)

        return self.normalize_git_directory(
            paths.dot_git_directory,
            paths.working_directory,
            current_branch,
            no_fetch=self.options.no_fetch,
            dynamic=self.options.dynamic,
        )

    def cleanup_duplicate_remotes(self, dot_git_directory: Path) -> None:
        with self._open(dot_git_directory) as repository:
            self.deduper.dedupe(repository)

    def normalize_git_directory(
        self,
        dot_git_directory: Path,
        working_directory: Optional[Path],
        current_branch: Optional[str],
        no_fetch: bool = False,
        dynamic: bool = False,
    ) -> NormalizationOutcome:
        """
        Turn remote branches into local ones and resolve HEAD to a branch.

        Raises:
            ConfigurationError: If the remote or the branch is ambiguous.
            TransportError: If fetching fails.
            InvariantViolation: If HEAD moved unexpectedly.
        """
        logger.info(f"Normalizing git directory for branch '{current_branch}'")
        auth = self.options.authentication

        with self._open(dot_git_directory, working_directory) as repository:
            with HeadIntegrityGuard(
                repository,
                dynamic=dynamic,
                environ=self.environ,
                override_variable=self.settings.normalization.ignore_head_move_variable,
            ):
                self.synchronizer.synchronize(
                    repository,
                    current_branch=current_branch,
                    no_fetch=no_fetch,
                    auth=auth,
                    dynamic=dynamic,
                )
                outcome = self.resolver.resolve(repository, current_branch, auth)

        logger.info(f"Normalized repository is on branch '{outcome.branch}'")
        return outcome

    def clone_and_prepare(self, url: str, target_directory) -> NormalizationOutcome:
        """
        Clone a dynamic repository and normalize it for the current branch.

        Returns:
            The normalization outcome for the fresh clone.
        """
        cloner = Cloner(self.settings.git)
        target = cloner.clone(url, target_directory, self.options.authentication)

        current_branch = self.resolve_current_branch(using_dynamic_repos=True)
        return self.normalize_git_directory(
            target / ".git",
            None,
            current_branch,
            no_fetch=self.options.no_fetch,
            dynamic=True,
        )

    def _open(self, dot_git_directory: Path, working_directory: Optional[Path] = None):
        return open_repository(
            dot_git_directory,
            working_directory,
            executable=self.settings.git.executable,
            timeout=self.settings.git.timeout,
        )
