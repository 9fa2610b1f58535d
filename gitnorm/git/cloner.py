"""
Cloning of remote repositories for dynamic normalization.

Clones without checking out a working tree and turns transport
failures into the typed error taxonomy.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from gitnorm.core.exceptions import (
    AuthenticationError,
    GitCommandError,
    NormalizationError,
    NotFoundError,
    TransportError,
)
from gitnorm.git.models import AuthenticationInfo
from gitnorm.git.repository import credential_environment, run_git

if TYPE_CHECKING:
    from gitnorm.core.config import GitSettings

logger = logging.getLogger(__name__)


def classify_transport_error(
    message: str, cause: Optional[BaseException] = None
) -> NormalizationError:
    """
    Map an opaque transport error message to a typed error.

    The status code is sniffed from the message text, checked in the
    order 401, 403, 404. Anything else becomes a TransportError that
    keeps the original cause.

    Args:
        message: Error text reported by the transport layer.
        cause: Original exception, preserved on TransportError.

    Returns:
        The error to raise.
    """
    message = message or ""
    if "401" in message:
        return AuthenticationError(
            "Unauthorized: Incorrect username/password", details={"error": message}
        )
    if "403" in message:
        return AuthenticationError(
            "Forbidden: possibly incorrect username/password",
            details={"error": message},
        )
    if "404" in message:
        return NotFoundError(
            "Not found: repository not found", details={"error": message}
        )
    return TransportError(
        "There was an unknown problem with the git repository you provided",
        cause=cause,
        details={"error": message},
    )


class Cloner:
    """
    Performs authenticated, no-checkout clones.
    """

    def __init__(self, settings: "GitSettings" = None):
        if settings is None:
            from gitnorm.core.config import GitSettings

            settings = GitSettings()
        self.settings = settings

    def clone(
        self,
        url: str,
        target_directory,
        auth: Optional[AuthenticationInfo] = None,
    ) -> Path:
        """
        Clone a repository into target_directory without a checkout.

        Args:
            url: Repository URL or path.
            target_directory: Directory to clone into.
            auth: Optional credentials; anonymous when no username is set.

        Returns:
            The target directory.

        Raises:
            AuthenticationError: If the remote answered 401 or 403.
            NotFoundError: If the remote answered 404.
            TransportError: For any other failure.
        """
        target_directory = Path(target_directory)

        extra_env = {}
        if auth is not None and not auth.is_anonymous:
            logger.info(f"Setting up credentials using name '{auth.username}'")
            extra_env = credential_environment(auth)

        logger.info(f"Cloning repository from url '{url}'")
        try:
            run_git(
                ["clone", "--no-checkout", url, str(target_directory)],
                executable=self.settings.executable,
                timeout=self.settings.timeout,
                extra_env=extra_env,
            )
        except GitCommandError as e:
            raise classify_transport_error(e.stderr or e.message, e) from e

        logger.info(f"Returned path after repository clone: {target_directory}")
        return target_directory
