"""
Environment validation.

An environment is valid when its directory exists in the topology and it
contains both the dependency lock file and the subscription hint file.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tfproj.config.schema import LayoutConfig
from tfproj.errors import EnvironmentNotFoundError, NothingToCheckError
from tfproj.project.topology import ProjectTopology, scan

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentCheck:
    """Result of validating one environment.

    The lock-file and hint-file sub-checks are independent; both are always
    evaluated for a found environment.
    """
    name: str
    found: bool
    directory: Optional[Path] = None
    lock_file: Optional[Path] = None
    hint_file: Optional[Path] = None
    lock_ok: bool = False
    hint_ok: bool = False
    hint: Optional[str] = None
    choices: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.found and self.lock_ok and self.hint_ok

    @property
    def failure_count(self) -> int:
        if not self.found:
            return 1
        return int(not self.lock_ok) + int(not self.hint_ok)


def read_hint(hint_file: Path) -> Optional[str]:
    """Return the stripped first line of a hint file, or None if missing or empty."""
    if not hint_file.is_file():
        return None
    content = hint_file.read_text().strip()
    if not content:
        return None
    return content.splitlines()[0].strip()


def validate_environment(
    name: str,
    topology: ProjectTopology,
    layout: Optional[LayoutConfig] = None,
) -> EnvironmentCheck:
    """Validate a named environment against the topology.

    Args:
        name: Environment name
        topology: Freshly scanned project topology
        layout: Layout configuration naming the marker files

    Returns:
        EnvironmentCheck with independent lock/hint results
    """
    layout = layout or LayoutConfig()
    directory = topology.environment_dir(name)
    if directory is None:
        return EnvironmentCheck(
            name=name,
            found=False,
            choices=topology.environment_names,
            errors=[f"Environment '{name}' not found"],
        )

    check = EnvironmentCheck(
        name=name,
        found=True,
        directory=directory,
        lock_file=directory / layout.lock_file,
        hint_file=directory / layout.hint_file,
    )

    if check.lock_file.is_file():
        check.lock_ok = True
    else:
        check.errors.append(f"Lock file not found: {check.lock_file}")

    hint = read_hint(check.hint_file)
    if hint is not None:
        check.hint_ok = True
        check.hint = hint
    elif check.hint_file.exists():
        check.errors.append(f"Subscription hint file is empty: {check.hint_file}")
    else:
        check.errors.append(f"Subscription hint file not found: {check.hint_file}")

    return check


def require_environment(
    name: str,
    topology: ProjectTopology,
    layout: Optional[LayoutConfig] = None,
) -> EnvironmentCheck:
    """Like validate_environment, but raise if the environment does not exist."""
    check = validate_environment(name, topology, layout)
    if not check.found:
        raise EnvironmentNotFoundError(name, check.choices)
    return check


def check_environment(session, name: Optional[str] = None) -> EnvironmentCheck:
    """Validate name, or the selected environment when name is None.

    Raises:
        NothingToCheckError: No name given and nothing selected
    """
    topology = scan(session)
    if not name:
        if session.selected is None:
            raise NothingToCheckError()
        name = session.selected.name

    check = validate_environment(name, topology, session.config.layout)
    for error in check.errors:
        logger.error(error)
    if not check.found and check.choices:
        logger.info(f"Available environments: {', '.join(check.choices)}")
    return check
