"""
Removal of local .terraform and .tflint state directories.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from tfproj.project.topology import ProjectTopology
from tfproj.session.state import CancellationToken

logger = logging.getLogger(__name__)

DOT_DIRS = {
    "terraform": (".terraform",),
    "tflint": (".tflint",),
    "all": (".terraform", ".tflint"),
}


def find_dot_dirs(topology: ProjectTopology, kind: str = "all") -> list[Path]:
    """Dot directories in the root, environment, main and module directories."""
    if kind not in DOT_DIRS:
        raise ValueError(f"unknown directory kind: {kind}")

    search = [topology.root_dir, *topology.environments.values(), topology.main_dir, *topology.modules.values()]
    found = []
    for name in DOT_DIRS[kind]:
        for directory in search:
            candidate = directory / name
            if candidate.is_dir():
                found.append(candidate)
    return found


def remove_dirs(directories: list[Path], cancel: Optional[CancellationToken] = None) -> int:
    """Delete directories, returning the number that could not be removed.

    Raises:
        OperationCancelledError: The token was cancelled between deletions
    """
    failures = 0
    for directory in directories:
        if cancel is not None:
            cancel.check()
        try:
            shutil.rmtree(directory)
        except OSError as e:
            logger.error(f"Failed to delete: {directory}: {e}")
            failures += 1
    return failures
