"""
Git access layer: repository handles, data model and cloning.
"""

from gitnorm.git.models import (
    AuthenticationInfo,
    BranchRef,
    HeadState,
    NormalizationOutcome,
    Remote,
    RemoteTip,
)
from gitnorm.git.repository import GitRepository, open_repository
from gitnorm.git.cloner import Cloner, classify_transport_error

__all__ = [
    "AuthenticationInfo",
    "BranchRef",
    "HeadState",
    "NormalizationOutcome",
    "Remote",
    "RemoteTip",
    "GitRepository",
    "open_repository",
    "Cloner",
    "classify_transport_error",
]
