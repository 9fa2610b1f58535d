"""
Duplicate remote cleanup.

Some build agents leave several remotes behind (for instance one per
pipeline run). Normalization needs exactly one.
"""

import logging
from typing import List, Optional

from gitnorm.git.models import Remote
from gitnorm.git.repository import GitRepository

logger = logging.getLogger(__name__)


class RemoteDeduper:
    """Collapses the configured remotes down to a single one."""

    def __init__(self, default_remote_name: str = "origin"):
        self.default_remote_name = default_remote_name

    def remote_to_keep(self, remotes: List[Remote]) -> Optional[Remote]:
        """Pick the default remote (case-insensitive), else the first one."""
        if not remotes:
            return None
        for remote in remotes:
            if remote.name.lower() == self.default_remote_name.lower():
                return remote
        return remotes[0]

    def dedupe(self, repository: GitRepository) -> List[str]:
        """
        Remove every remote except the one to keep.

        Returns:
            Names of the removed remotes.
        """
        remotes = repository.remotes()
        keep = self.remote_to_keep(remotes)
        if keep is None or len(remotes) == 1:
            return []

        removed = []
        for remote in remotes:
            if remote.name == keep.name:
                continue
            logger.info(f"Removing duplicate remote '{remote.name}' ({remote.url})")
            repository.remove_remote(remote.name)
            removed.append(remote.name)

        logger.info(f"Kept remote '{keep.name}'")
        return removed
