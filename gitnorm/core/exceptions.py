"""
Custom exceptions for the git normalization engine.

Provides a hierarchy of exceptions for the different preparation
stages. Messages are shown directly in CI logs, so they are kept
stable and human-readable.
"""

from typing import Optional, Sequence


class NormalizationError(Exception):
    """Base exception for all normalization-related errors."""

    def __init__(self, message: str, stage: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class PathResolutionError(NormalizationError):
    """Raised when the .git directory or working directory cannot be found."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="PathResolution", details=details)


class ConfigurationError(NormalizationError):
    """Raised when the repository state needs operator action to be resolved."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Configuration", details=details)


class AuthenticationError(NormalizationError):
    """Raised when the remote rejects the supplied credentials."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Authentication", details=details)


class NotFoundError(NormalizationError):
    """Raised when the remote repository does not exist."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="NotFound", details=details)


class TransportError(NormalizationError):
    """Raised when a clone or fetch fails for any other reason."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: dict = None,
    ):
        super().__init__(message, stage="Transport", details=details)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class InvariantViolation(NormalizationError):
    """Raised when HEAD moved during normalization without a branch switch."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Bug", details=details)


class GitCommandError(NormalizationError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: Optional[int],
        stderr: str = "",
        message: str = None,
    ):
        command = " ".join(args)
        if message is None:
            message = f"git {command} failed with exit code {returncode}"
            if stderr:
                message = f"{message}: {stderr.strip()}"
        super().__init__(
            message,
            stage="Git",
            details={"command": command, "returncode": returncode, "stderr": stderr},
        )
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
