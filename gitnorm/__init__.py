"""
Git repository normalization for CI builds.

Turns a build agent's checkout (detached HEAD, shallow or single-branch
fetch, pull request refs, duplicate remotes) into a normalized state
from which a version can be calculated reliably.
"""

__version__ = "1.0.0"
__author__ = "gitnorm contributors"
