"""
Log grouping for CI output.

On GitHub Actions, long command output is folded between `::group::` and
`::endgroup::` workflow commands. Elsewhere the group title is just logged.
"""

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


def in_github_actions() -> bool:
    """Check whether we are running inside a GitHub Actions job."""
    return os.environ.get("GITHUB_ACTIONS") == "true"


@contextmanager
def log_group(title: str) -> Iterator[None]:
    """
    Fold everything logged or printed inside the block under title.

    The group is always closed, even if the block raises.
    """
    if in_github_actions():
        sys.stdout.write(f"::group::{title}\n")
        sys.stdout.flush()
    else:
        logger.info(title)

    try:
        yield
    finally:
        if in_github_actions():
            sys.stdout.write("::endgroup::\n")
            sys.stdout.flush()
