"""
Core module containing configuration and the error taxonomy.
"""

from gitnorm.core.config import Config, PrepareOptions, Settings
from gitnorm.core.exceptions import (
    NormalizationError,
    PathResolutionError,
    ConfigurationError,
    AuthenticationError,
    NotFoundError,
    TransportError,
    InvariantViolation,
    GitCommandError,
)

__all__ = [
    "Config",
    "PrepareOptions",
    "Settings",
    "NormalizationError",
    "PathResolutionError",
    "ConfigurationError",
    "AuthenticationError",
    "NotFoundError",
    "TransportError",
    "InvariantViolation",
    "GitCommandError",
]
