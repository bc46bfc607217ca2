"""
Preflight gate for privileged Terraform operations.

Stops at the first blocking problem and raises one error naming the
command that fixes it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tfproj.core.selection import select_environment
from tfproj.errors import (
    EnvironmentSetupError,
    InternalInvariantError,
    NoEnvironmentSelectedError,
    ToolNotFoundError,
)
from tfproj.session.state import AccountIdentity, SessionContext

logger = logging.getLogger(__name__)

SUBSCRIPTION_ENV_VAR = "ARM_SUBSCRIPTION_ID"


@dataclass
class BoundContext:
    """An environment that passed preflight, bound to its subscription."""
    env_name: str
    env_dir: Path
    identity: AccountIdentity
    lock_file: Optional[Path] = None

    def environ(self) -> dict[str, str]:
        """Environment variables for a single terraform invocation."""
        return {SUBSCRIPTION_ENV_VAR: self.identity.subscription_id}


class Preflight:
    """Runs the preflight sequence for one environment."""

    def __init__(self, terraform, binder):
        self.terraform = terraform
        self.binder = binder

    def run(self, session: SessionContext, env_name: Optional[str] = None) -> BoundContext:
        """Check, select and bind env_name (or the selected environment).

        Raises:
            NoEnvironmentSelectedError: No name given and nothing selected
            ToolNotFoundError: terraform is not callable
            EnvironmentNotFoundError: Unknown environment
            EnvironmentSetupError: Selection reported failed sub-checks
            InternalInvariantError: Binding succeeded without a subscription id
        """
        name = env_name or (session.selected.name if session.selected else None)
        if not name:
            raise NoEnvironmentSelectedError()

        if not self.terraform.available():
            raise ToolNotFoundError(session.config.tools.terraform)

        result = select_environment(session, name, self.binder)
        if not result.success:
            raise EnvironmentSetupError(name, result.failures)

        identity = result.identity
        if identity is None or not identity.subscription_id:
            raise InternalInvariantError(
                f"environment '{name}' passed selection without a subscription id"
            )

        logger.debug(f"Preflight passed for '{name}', subscription {identity.subscription_id}")
        return BoundContext(
            env_name=name,
            env_dir=result.directory,
            identity=identity,
            lock_file=session.selected.lock_file if session.selected else None,
        )
