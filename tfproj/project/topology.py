"""
Project topology discovery.

Computes the main module, local modules and environments of a Terraform
project from the filesystem. The topology is recomputed on every call and
never cached.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tfproj.config.schema import LayoutConfig

logger = logging.getLogger(__name__)


@dataclass
class ProjectTopology:
    """Directory layout of a Terraform project."""
    root_dir: Path
    main_dir: Path
    modules_dir: Path
    envs_dir: Path
    modules: dict[str, Path] = field(default_factory=dict)
    environments: dict[str, Path] = field(default_factory=dict)

    @property
    def has_main(self) -> bool:
        return self.main_dir.is_dir()

    @property
    def has_envs(self) -> bool:
        return self.envs_dir.is_dir()

    @property
    def is_project(self) -> bool:
        """A directory is a project when both main/ and envs/ exist."""
        return self.has_main and self.has_envs

    @property
    def environment_names(self) -> list[str]:
        return list(self.environments)

    def environment_dir(self, name: str) -> Optional[Path]:
        return self.environments.get(name)


def _subdirectories(directory: Path, excluded_prefix: Optional[str] = None) -> dict[str, Path]:
    if not directory.is_dir():
        return {}
    found = {}
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        if not child.is_dir():
            continue
        if excluded_prefix and child.name.startswith(excluded_prefix):
            continue
        found[child.name] = child
    return found


def discover(root_dir: Path, layout: Optional[LayoutConfig] = None) -> ProjectTopology:
    """Scan root_dir without touching any session state.

    Missing directories yield empty mappings; this never raises.
    """
    layout = layout or LayoutConfig()
    root_dir = Path(root_dir)
    modules_dir = root_dir / layout.modules_dir
    envs_dir = root_dir / layout.envs_dir

    return ProjectTopology(
        root_dir=root_dir,
        main_dir=root_dir / layout.main_dir,
        modules_dir=modules_dir,
        envs_dir=envs_dir,
        modules=_subdirectories(modules_dir),
        environments=_subdirectories(envs_dir, layout.excluded_env_prefix),
    )


def scan(session) -> ProjectTopology:
    """Scan the session's project root and reconcile the selection.

    If the selected environment no longer exists it is cleared; otherwise
    its directory is refreshed from the new topology.
    """
    topology = discover(session.root_dir, session.config.layout)

    selected = session.selected
    if selected is not None:
        directory = topology.environment_dir(selected.name)
        if directory is None:
            logger.info(
                f"Selected environment '{selected.name}' no longer exists, clearing selection"
            )
            session.clear_selection()
        else:
            selected.directory = directory

    return topology
