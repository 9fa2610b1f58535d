"""
Input validation utilities.

Provides validation functions for clone URLs and clone targets.
"""

import re
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

SCP_LIKE_URL = re.compile(r"^[\w.-]+@[\w.-]+:.+$")


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a repository URL.

    Accepts http(s), ssh, git and file URLs, scp-like ssh addresses
    and existing local paths.

    Args:
        url: URL to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not url:
        return False, "URL cannot be empty"

    if SCP_LIKE_URL.match(url):
        return True, None

    parsed = urlparse(url)
    if parsed.scheme in ("http", "https", "ssh", "git"):
        if parsed.netloc and parsed.path:
            return True, None
        return False, f"Invalid repository URL: {url}"

    if parsed.scheme == "file":
        return True, None

    if Path(url).exists():
        return True, None

    return False, f"Invalid repository URL: {url}"


def validate_clone_target(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a clone target directory.

    The directory must either not exist yet or be empty.

    Args:
        path: Target directory.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not path:
        return False, "Target directory cannot be empty"

    target = Path(path)
    if not target.exists():
        return True, None

    if not target.is_dir():
        return False, f"Target is not a directory: {path}"

    if any(target.iterdir()):
        return False, f"Target directory is not empty: {path}"

    return True, None
