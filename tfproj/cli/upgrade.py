"""
Dependency bump commands and provider upgrade reporting.
"""

import logging

import click

from tfproj.cli.common import banner, report_user_error, require_project, session_command
from tfproj.log import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def _target_environments(session, name, all_envs: bool) -> list[str]:
    """Environment names to act on: all, the named one, or the selected one."""
    from tfproj.errors import NoEnvironmentSelectedError
    from tfproj.project.environment import require_environment

    topology = require_project(session)
    if all_envs:
        return topology.environment_names
    name = name or (session.selected.name if session.selected else None)
    if not name:
        raise NoEnvironmentSelectedError(hint="tfproj env select")
    require_environment(name, topology, session.config.layout)
    return [name]


def _print_bump_summary(result, what: str) -> None:
    updated = len(result.updated)
    click.echo(f"\n{what}: {len(result.changes)} checked, {updated} updated, {result.failures} failed")


def _bump_modules(session, services) -> int:
    from tfproj.core.bump import bump_modules

    require_project(session)
    click.echo("Bumping registry module versions")
    result = bump_modules(session.root_dir, services.registry, cancel=session.cancel)
    _print_bump_summary(result, "Modules")
    return result.failures


def _bump_plugins(session, services, name, all_envs: bool) -> int:
    from tfproj.core.bump import bump_plugins

    failures = 0
    topology = require_project(session)
    for env_name in _target_environments(session, name, all_envs):
        session.cancel.check()
        click.echo(f"Bumping tflint plugins in environment: {env_name}")
        result = bump_plugins(
            topology.environment_dir(env_name),
            session.config.lint.config_file,
            services.github,
            root_dir=session.root_dir,
            cancel=session.cancel,
        )
        _print_bump_summary(result, "Plugins")
        failures += result.failures
    return failures


def _bump_cicd(session, services) -> int:
    from tfproj.core.checks import check_github_auth
    from tfproj.core.workflows import bump_workflows, workflow_files
    from tfproj.errors import NotAuthenticatedError

    status = check_github_auth(session, services.github)
    if not status.authenticated:
        raise NotAuthenticatedError("GitHub", "gh auth login")
    require_project(session)

    workflows_dir = session.config.layout.workflows_dir
    files = workflow_files(session.root_dir, workflows_dir)
    if not files:
        click.echo(f"No workflow files found in: {session.root_dir / workflows_dir}")
        return 0

    terraform_latest = services.github.get_latest_release(session.config.github.terraform_repo)
    if terraform_latest.startswith("v"):
        terraform_latest = terraform_latest[1:]
    tflint_latest = services.github.get_latest_release(session.config.github.tflint_repo)
    click.echo(f"Latest terraform version : {terraform_latest}")
    click.echo(f"Latest tflint version    : {tflint_latest}")

    result = bump_workflows(
        session.root_dir,
        terraform_latest,
        tflint_latest,
        workflows_dir=workflows_dir,
        files=files,
        cancel=session.cancel,
    )
    click.echo(f"\nWorkflows: {len(result.changes)} checked, {len(result.updated)} updated, {result.failures} failed")
    for warning in result.warnings:
        click.secho(f"  warning: {warning}", fg="yellow")
    return result.failures


def _run_step(step) -> int:
    """Run one bump step, counting a raised error as a single failure."""
    from tfproj.errors import ExternalToolFailure, UserError

    try:
        return step()
    except UserError as e:
        report_user_error(e)
    except ExternalToolFailure as e:
        logger.error(f"{e}: {e.output}" if e.output else str(e))
    return 1


@click.group(name="bump")
def bump():
    """Bump module, plugin and CI/CD tool versions."""
    pass


@bump.command(name="modules")
@session_command
def bump_modules_cmd(session, services) -> int:
    """Set every registry module to its latest published version."""
    return _bump_modules(session, services)


@bump.command(name="plugins")
@click.argument("name", required=False)
@click.option("--all-envs", is_flag=True, help="Bump plugins in every environment")
@session_command
def bump_plugins_cmd(session, services, name: str | None, all_envs: bool) -> int:
    """Set every GitHub hosted tflint plugin to its latest release.

    Example:
        tfproj bump plugins dev
        tfproj bump plugins --all-envs
    """
    return _bump_plugins(session, services, name, all_envs)


@bump.command(name="cicd")
@session_command
def bump_cicd_cmd(session, services) -> int:
    """Bump terraform and tflint versions in GitHub workflow files."""
    return _bump_cicd(session, services)


@bump.command(name="all")
@click.option("--skip-upgrade", is_flag=True, help="Do not upgrade environments afterwards")
@session_command
def bump_all_cmd(session, services, skip_upgrade: bool) -> int:
    """Bump modules, plugins and workflows, then upgrade all environments."""
    from tfproj.cli.terraform import print_batch

    steps = (
        ("BUMP MODULES", lambda: _bump_modules(session, services)),
        ("BUMP PLUGINS", lambda: _bump_plugins(session, services, None, all_envs=True)),
        ("BUMP CICD", lambda: _bump_cicd(session, services)),
    )
    failures = 0
    for title, step in steps:
        banner(title)
        failures += _run_step(step)

    if skip_upgrade:
        return failures

    batch = services.orchestrator.init_project(session, upgrade=True)
    return failures + print_batch(batch, "UPGRADE ALL ENVIRONMENTS")


@click.command(name="show-provider-upgrades")
@click.argument("name", required=False)
@click.option("--all-envs", is_flag=True, help="Report on every environment")
@session_command
def show_provider_upgrades(session, services, name: str | None, all_envs: bool) -> int:
    """Compare locked provider versions with the registry's latest.

    Example:
        tfproj show-provider-upgrades dev
    """
    from tfproj.core.bump import provider_upgrades

    failures = 0
    topology = require_project(session)
    for env_name in _target_environments(session, name, all_envs):
        session.cancel.check()
        lock_file = topology.environment_dir(env_name) / session.config.layout.lock_file
        click.echo(f"\nEnvironment: {env_name}")
        if not lock_file.is_file():
            click.secho(f"  lock file not found: {lock_file}", fg="red")
            failures += 1
            continue

        try:
            upgrades = provider_upgrades(lock_file, services.registry, cancel=session.cancel)
        except ValueError as e:
            click.secho(f"  {e}", fg="red")
            failures += 1
            continue

        for upgrade in upgrades:
            constraints = upgrade.constraints or "<none>"
            if upgrade.error:
                click.secho(f"  {upgrade.address}: locked {upgrade.locked}, {upgrade.error}", fg="yellow")
                failures += 1
                continue
            marker = click.style(" (upgrade available)", fg="green") if upgrade.upgradable else ""
            click.echo(
                f"  {upgrade.address}: locked {upgrade.locked}, "
                f"constraints {constraints}, latest {upgrade.latest}{marker}"
            )
    return failures
