"""
HEAD integrity check around a normalization run.

Normalization may rename how HEAD is reached (detached commit to
branch) but must never move HEAD to another commit unless it switched
branches on purpose in a dynamic repository.
"""

import logging
import os
from typing import Mapping, Optional

from gitnorm.core.exceptions import InvariantViolation
from gitnorm.git.models import HeadState
from gitnorm.git.repository import GitRepository

logger = logging.getLogger(__name__)

DEFAULT_OVERRIDE_VARIABLE = "IGNORE_NORMALIZATION_GIT_HEAD_MOVE"


class HeadIntegrityGuard:
    """
    Context manager that captures HEAD on entry and validates it on exit.

    Example:

        with HeadIntegrityGuard(repository, dynamic=False):
            synchronizer.synchronize(repository, ...)
            resolver.resolve(repository, ...)
    """

    def __init__(
        self,
        repository: GitRepository,
        dynamic: bool = False,
        environ: Optional[Mapping[str, str]] = None,
        override_variable: str = DEFAULT_OVERRIDE_VARIABLE,
    ):
        self.repository = repository
        self.dynamic = dynamic
        self.environ = os.environ if environ is None else environ
        self.override_variable = override_variable
        self.expected: Optional[HeadState] = None

    @property
    def expected_sha(self) -> Optional[str]:
        return self.expected.tip_sha if self.expected else None

    @property
    def expected_branch_name(self) -> Optional[str]:
        return self.expected.canonical_name if self.expected else None

    def __enter__(self) -> "HeadIntegrityGuard":
        self.expected = self.repository.head()
        logger.debug(f"HEAD before normalization: {self.expected.describe()}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            current = self.repository.head()
            if current.tip_sha != self.expected_sha:
                logger.warning(
                    f"HEAD moved from '{self.expected.describe()}' to "
                    f"'{current.describe()}' before normalization failed"
                )
            return False

        self.validate()
        return False

    def validate(self) -> HeadState:
        """
        Check HEAD against the captured state.

        Returns:
            The accepted HEAD state.

        Raises:
            InvariantViolation: If HEAD moved unexpectedly and the override
                variable is not set to 1.
        """
        current = self.repository.head()
        if current.tip_sha == self.expected_sha:
            return current

        branch_switched = current.canonical_name != self.expected_branch_name
        if branch_switched and self.dynamic:
            logger.info(
                f"Head has moved from '{self.expected.describe()}' => "
                f"'{current.describe()}', allowed since this is a dynamic repository"
            )
            self.expected = current
            return current

        message = (
            "HEAD has moved after repository normalization, this is a bug in "
            f"normalization. It moved from '{self.expected.describe()}' to "
            f"'{current.describe()}'."
        )
        if self.environ.get(self.override_variable) == "1":
            logger.warning(f"{message} Ignored because {self.override_variable}=1.")
            return current

        raise InvariantViolation(
            f"{message}\n\nTo disable this error set an environment variable "
            f"called {self.override_variable} to 1.\n\nPlease run "
            "`git log --graph --format=\"format:%h %cs %d\" --decorate --date=local "
            "-n 100` and submit it along with your build log.",
            details={
                "expected_sha": self.expected_sha,
                "expected_branch": self.expected_branch_name,
                "actual_sha": current.tip_sha,
                "actual_branch": current.canonical_name,
            },
        )
