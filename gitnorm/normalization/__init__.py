"""
Repository normalization: remote cleanup, ref synchronization,
branch resolution and the HEAD integrity check.
"""

from gitnorm.normalization.remotes import RemoteDeduper
from gitnorm.normalization.refs import RefSynchronizer
from gitnorm.normalization.resolver import (
    BranchResolver,
    DISAMBIGUATION_RULES,
    ResolutionState,
    disambiguate,
)
from gitnorm.normalization.guard import HeadIntegrityGuard

__all__ = [
    "RemoteDeduper",
    "RefSynchronizer",
    "BranchResolver",
    "DISAMBIGUATION_RULES",
    "ResolutionState",
    "disambiguate",
    "HeadIntegrityGuard",
]
