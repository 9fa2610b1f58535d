"""
Logging configuration for gitnorm.

Log records go to stderr so command results printed on stdout stay
machine readable. A log file, when given, always receives the full
debug trail including every git command that was run.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        verbose: Show debug records (git commands included) on the console.
        log_file: Optional file that receives debug records regardless of
            verbosity.
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers = [console]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    root_level = logging.DEBUG if verbose or log_file else logging.INFO
    logging.basicConfig(level=root_level, handlers=handlers, force=True)
