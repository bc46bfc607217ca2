"""
tflint through the shared wrapper script.

The wrapper is downloaded once into the project root and run from inside
the environment directory.
"""

import logging
from pathlib import Path
from typing import Optional

from tfproj.core.selection import select_environment
from tfproj.errors import (
    EnvironmentSetupError,
    InternalInvariantError,
    NoEnvironmentSelectedError,
    NotAuthenticatedError,
)
from tfproj.providers.base import RepoProvider, run_command
from tfproj.session.state import SessionContext

logger = logging.getLogger(__name__)


def wrapper_path(session: SessionContext) -> Path:
    lint = session.config.lint
    return session.root_dir / lint.wrapper_dir / lint.wrapper_script


def install_wrapper(session: SessionContext, repo_provider: RepoProvider) -> Path:
    """Download the tflint wrapper unless it is already present."""
    path = wrapper_path(session)
    if path.is_file():
        logger.debug(f"tflint wrapper already exists at: {path}")
        return path

    lint = session.config.lint
    logger.debug(f"Downloading tflint wrapper from {lint.wrapper_repo}/{lint.wrapper_path}")
    content = repo_provider.get_raw_file(lint.wrapper_repo, lint.wrapper_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def run_lint(
    session: SessionContext,
    env_name: Optional[str],
    repo_provider: RepoProvider,
    binder,
) -> int:
    """Lint an environment with tflint.

    Returns:
        0 on success, 1 if tflint reported problems

    Raises:
        NoEnvironmentSelectedError: No name given and nothing selected
        NotAuthenticatedError: Not logged in to GitHub
        EnvironmentSetupError: Selecting the environment failed
    """
    name = env_name or (session.selected.name if session.selected else None)
    if not name:
        raise NoEnvironmentSelectedError()

    status = repo_provider.auth_status()
    if not status.authenticated:
        raise NotAuthenticatedError("GitHub", "gh auth login")

    result = select_environment(session, name, binder)
    if not result.success:
        raise EnvironmentSetupError(name, result.failures)

    env_dir = session.selected.directory if session.selected else None
    if env_dir is None:
        raise InternalInvariantError("selected environment directory missing after selection")

    script = install_wrapper(session, repo_provider)

    logger.info(f"Running tflint in {env_dir.relative_to(session.root_dir)}")
    outcome = run_command(
        [session.config.tools.bash, str(script)],
        "tflint",
        cancel=session.cancel,
        cwd=env_dir,
    )
    if not outcome.success:
        logger.warning("tflint operation resulted in non-zero exit code.")
        return 1
    return 0
