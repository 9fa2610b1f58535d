"""
Utility functions and helpers.

Provides common utilities used across the codebase.
"""

from gitnorm.utils.logging_config import setup_logging
from gitnorm.utils.validation import validate_clone_target, validate_url

__all__ = [
    "setup_logging",
    "validate_clone_target",
    "validate_url",
]
