"""
Environment selection.

Selecting an environment binds it in the session and then runs every
sub-check (hint lookup, account binding, lock lookup) without stopping at
the first failure, so the caller gets the complete picture.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tfproj.errors import EnvironmentNotFoundError, ProjectLayoutError, UserError
from tfproj.project.environment import validate_environment
from tfproj.project.topology import scan
from tfproj.session.state import AccountIdentity, SelectedEnvironment, SessionContext

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """Outcome of selecting an environment."""
    name: str
    directory: Path
    hint_ok: bool = False
    binding_ok: bool = False
    lock_ok: bool = False
    identity: Optional[AccountIdentity] = None
    failures: list[str] = field(default_factory=list)
    binding_error: Optional[UserError] = None

    @property
    def success(self) -> bool:
        return self.hint_ok and self.binding_ok and self.lock_ok

    @property
    def failure_count(self) -> int:
        return len(self.failures)


def select_environment(session: SessionContext, name: str, binder) -> SelectionResult:
    """Select name as the session's environment and validate it.

    Args:
        session: Session to update
        name: Environment name
        binder: AccountBinder used when the hint file is present

    Returns:
        SelectionResult listing every failed sub-check

    Raises:
        ProjectLayoutError: Working directory is not a project root
        EnvironmentNotFoundError: name is not an environment of the project
    """
    topology = scan(session)
    if not topology.is_project:
        raise ProjectLayoutError(str(session.root_dir))

    directory = topology.environment_dir(name)
    if directory is None:
        raise EnvironmentNotFoundError(name, topology.environment_names)

    layout = session.config.layout
    session.selected = SelectedEnvironment(name=name, directory=directory)
    result = SelectionResult(name=name, directory=directory)
    logger.info(f"Selected environment: {name}")

    check = validate_environment(name, topology, layout)
    session.selected.lock_file = check.lock_file
    session.selected.hint_file = check.hint_file

    if check.hint_ok:
        result.hint_ok = True
        session.selected.hint = check.hint
        try:
            result.identity = binder.ensure_bound(session)
            result.binding_ok = True
        except UserError as e:
            result.binding_error = e
            result.failures.append(f"account binding: {e.message}")
            logger.error(e.message)
    else:
        result.failures.append(f"subscription hint: {layout.hint_file} not found or empty")
        logger.error(f"Subscription hint file not found in {directory}")

    if check.lock_ok:
        result.lock_ok = True
    else:
        result.failures.append(f"lock file: {layout.lock_file} not found")
        logger.error(f"Lock file not found in {directory}")

    return result


def clear_environment(session: SessionContext) -> Optional[str]:
    """Unset the selected environment, returning the name that was selected."""
    previous = session.selected.name if session.selected else None
    session.clear_selection()
    return previous
