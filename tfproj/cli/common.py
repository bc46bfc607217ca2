"""
Shared plumbing for tfproj commands.

session_command loads the session, wires up providers, maps errors to exit
codes and always saves the session on the way out.
"""

import functools
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from tfproj.errors import (
    EnvironmentNotFoundError,
    EnvironmentSetupError,
    ExternalToolFailure,
    InternalInvariantError,
    OperationCancelledError,
    UserError,
)
from tfproj.log import LOGGER_NAME, internal_error, setup_logging
from tfproj.providers.base import AccountProvider, RepoProvider
from tfproj.session.state import SessionContext

logger = logging.getLogger(LOGGER_NAME)

EXIT_CANCELLED = 130


@dataclass
class Services:
    """Providers and orchestrators bound to one session."""
    terraform: object
    azure: AccountProvider
    github: RepoProvider
    registry: object
    binder: object
    preflight: object
    orchestrator: object


def build_services(session: SessionContext) -> Services:
    """Create the real providers for a session."""
    from tfproj.core.binding import AccountBinder
    from tfproj.core.init import InitOrchestrator
    from tfproj.core.preflight import Preflight
    from tfproj.providers.azure import AzureCliProvider
    from tfproj.providers.github import GitHubProvider
    from tfproj.providers.registry import RegistryClient
    from tfproj.providers.terraform import TerraformRunner

    config = session.config
    terraform = TerraformRunner(config.tools.terraform, cancel=session.cancel)
    azure = AzureCliProvider(config.tools.az, cancel=session.cancel)
    github = GitHubProvider(
        token_env=config.github.token_env,
        gh_binary=config.tools.gh,
        cancel=session.cancel,
    )
    registry = RegistryClient(
        config.registry.url,
        timeout=config.registry.timeout,
        cancel=session.cancel,
    )
    binder = AccountBinder(azure)
    preflight = Preflight(terraform, binder)
    return Services(
        terraform=terraform,
        azure=azure,
        github=github,
        registry=registry,
        binder=binder,
        preflight=preflight,
        orchestrator=InitOrchestrator(terraform, preflight),
    )


def _open_session(ctx: click.Context) -> SessionContext:
    from tfproj.config.loader import load_default_config
    from tfproj.session.store import load_session

    obj = ctx.ensure_object(dict)
    config = obj.get("config") or load_default_config()
    root_dir = Path(obj.get("root_dir") or Path.cwd())
    return load_session(root_dir, config)


def report_user_error(error: UserError) -> None:
    logger.error(error.message)
    if isinstance(error, EnvironmentNotFoundError) and error.choices:
        logger.info(f"Available environments: {', '.join(error.choices)}")
    if isinstance(error, EnvironmentSetupError):
        for failure in error.failures:
            logger.error(f"  - {failure}")
    if error.hint:
        logger.error(f"  please run '{error.hint}'")


def session_command(func):
    """Run a command as ``func(session, services, *args, **kwargs)``.

    The wrapped function returns its failure count, which becomes the exit
    code.
    """
    @click.pass_context
    @functools.wraps(func)
    def wrapper(ctx: click.Context, *args, **kwargs):
        obj = ctx.ensure_object(dict)
        session = _open_session(ctx)

        log_level = "DEBUG" if obj.get("verbose") else session.config.logging.level
        setup_logging(log_level, session.config.logging.log_file, session.verbosity)

        exit_code = 0
        with session.verbosity.override(
            debug=bool(obj.get("verbose")),
            log_info=not obj.get("quiet"),
        ), session.cancel.handle_sigint():
            try:
                services = obj.get("services") or build_services(session)
                exit_code = func(session, services, *args, **kwargs) or 0
                # SIGINT after the last external call still aborts the command
                session.cancel.check()
            except UserError as e:
                report_user_error(e)
                exit_code = 1
            except ExternalToolFailure as e:
                logger.error(f"{e}: {e.output}" if e.output else str(e))
                exit_code = 1
            except InternalInvariantError as e:
                internal_error(logger, str(e), e)
                exit_code = 1
            except (OperationCancelledError, KeyboardInterrupt, click.Abort):
                logger.error("Operation aborted")
                logger.debug("Interrupted at:", exc_info=True)
                exit_code = EXIT_CANCELLED
            finally:
                _save(session)

        if exit_code:
            sys.exit(min(exit_code, 255))

    return wrapper


def _save(session: SessionContext) -> None:
    from tfproj.session.store import save_session

    try:
        save_session(session)
    except OSError as e:
        logger.warning(f"Could not save session state: {e}")


def mark(ok: Optional[bool]) -> str:
    """Status marker for summaries."""
    if ok is None:
        return click.style("[ ]", fg="bright_black")
    return click.style("[ok]", fg="green") if ok else click.style("[x]", fg="red")


def banner(title: str) -> None:
    click.echo("\n" + "=" * 60)
    click.echo(f"  {title}")
    click.echo("=" * 60 + "\n")


def require_project(session: SessionContext):
    """Scan and raise ProjectLayoutError unless main/ and envs/ exist."""
    from tfproj.errors import ProjectLayoutError
    from tfproj.project.topology import scan

    topology = scan(session)
    if not topology.is_project:
        raise ProjectLayoutError(str(session.root_dir))
    return topology
