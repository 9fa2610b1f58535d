#!/usr/bin/env python3
"""
gitnorm - Main Entry Point

Normalizes CI checkouts of git repositories so a version can be
calculated from them reliably.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from gitnorm.cli import main

if __name__ == "__main__":
    main()
