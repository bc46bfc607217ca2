"""
Terraform commands: init, upgrade, fmt, validate, plan, apply, destroy,
lint and clean.
"""

import click

from tfproj.cli.common import banner, mark, require_project, session_command


def _print_outcome(outcome) -> None:
    click.echo(f"\n  Environment '{outcome.name or '<none>'}':")
    click.echo(f"    {mark(outcome.preflight_ok)}  Preflight")
    if outcome.error:
        click.echo(f"        {outcome.error}")
    click.echo(f"    {mark(outcome.env_init_ok)}  Environment init")
    click.echo(f"    {mark(outcome.modules_ok)}  Modules init")
    click.echo(f"    {mark(outcome.main_ok)}  Main init")


def print_batch(batch, title: str) -> int:
    banner(title)
    for outcome in batch.outcomes:
        _print_outcome(outcome)
    click.echo("\nSummary:")
    click.echo(f"  Preflight failures        : {batch.preflight_failures}")
    click.echo(f"  Environment init failures : {batch.env_init_failures}")
    click.echo(f"  Module init failures      : {batch.module_init_failures}")
    click.echo(f"  Main init failures        : {batch.main_init_failures}")
    if batch.success:
        click.secho("\nDone.", fg="green")
    else:
        click.secho("\nSome operations failed, please review the output above.", fg="red")
    return batch.failure_count


def _run_single(session, services, env_name, upgrade: bool, phases, title: str) -> int:
    from tfproj.core.init import BatchResult

    outcome = services.orchestrator.init_environment(session, env_name, upgrade, phases)
    return print_batch(BatchResult(outcomes=[outcome]), title)


@click.group(name="init")
def init():
    """Initialize environments, modules and the main module."""
    pass


@init.command(name="env")
@click.argument("name", required=False)
@session_command
def init_env(session, services, name: str | None) -> int:
    """Run 'terraform init' in an environment.

    Example:
        tfproj init env dev
    """
    from tfproj.core.init import PHASE_ENV

    return _run_single(session, services, name, False, (PHASE_ENV,), "INIT ENVIRONMENT")


@init.command(name="modules")
@session_command
def init_modules(session, services) -> int:
    """Initialize local modules using the selected environment's providers.

    Requires 'tfproj init env' to have been run for the selected environment.
    """
    from tfproj.core.init import PHASE_MODULES

    return _run_single(session, services, None, False, (PHASE_MODULES,), "INIT MODULES")


@init.command(name="main")
@session_command
def init_main(session, services) -> int:
    """Initialize the main module using the selected environment's providers."""
    from tfproj.core.init import PHASE_MAIN

    return _run_single(session, services, None, False, (PHASE_MAIN,), "INIT MAIN")


@init.command(name="all")
@click.argument("name", required=False)
@click.option("--all-envs", is_flag=True, help="Initialize every environment")
@session_command
def init_all(session, services, name: str | None, all_envs: bool) -> int:
    """Initialize an environment, its modules and main.

    With --all-envs every environment is processed and the selection is
    cleared afterwards.

    Example:
        tfproj init all dev
        tfproj init all --all-envs
    """
    from tfproj.core.init import ALL_PHASES

    if all_envs:
        batch = services.orchestrator.init_project(session, upgrade=False)
        return print_batch(batch, "INIT ALL ENVIRONMENTS")
    return _run_single(session, services, name, False, ALL_PHASES, "INIT")


@click.command(name="upgrade")
@click.argument("name", required=False)
@click.option("--env-only", is_flag=True, help="Only upgrade the environment directory")
@click.option("--all-envs", is_flag=True, help="Upgrade every environment")
@session_command
def upgrade(session, services, name: str | None, env_only: bool, all_envs: bool) -> int:
    """Run 'terraform init -upgrade' and re-initialize modules and main.

    Example:
        tfproj upgrade dev
        tfproj upgrade --all-envs
    """
    from tfproj.core.init import ALL_PHASES, PHASE_ENV

    phases = (PHASE_ENV,) if env_only else ALL_PHASES
    if all_envs:
        batch = services.orchestrator.init_project(session, upgrade=True, phases=phases)
        return print_batch(batch, "UPGRADE ALL ENVIRONMENTS")
    return _run_single(session, services, name, True, phases, "UPGRADE")


@click.command(name="fmt")
@click.option("--fix", is_flag=True, help="Rewrite files instead of only checking")
@session_command
def fmt(session, services, fix: bool) -> int:
    """Run 'terraform fmt -recursive' over the project.

    Only checks formatting unless --fix is given.
    """
    from tfproj.errors import ToolNotFoundError

    if not services.terraform.available():
        raise ToolNotFoundError(session.config.tools.terraform)
    require_project(session)

    click.echo("Running terraform fmt recursively")
    click.echo(f"  directory {session.root_dir}")
    result = services.terraform.fmt(session.root_dir, check=not fix)
    if result.success:
        click.secho("Done.", fg="green")
        return 0
    if fix:
        click.secho("Terraform fmt operation failed.", fg="red", err=True)
    else:
        click.secho("Terraform fmt check failed, please review the output above.", fg="red", err=True)
    return 1


def _run_in_env(session, services, name, operation: str) -> int:
    ctx = services.preflight.run(session, name)
    click.echo(f"Running terraform {operation} in: {ctx.env_dir.relative_to(session.root_dir)}")
    result = getattr(services.terraform, operation)(ctx.env_dir, env=ctx.environ())
    if not result.success:
        click.secho(f"terraform {operation} failed.", fg="red", err=True)
        return 1
    return 0


@click.command(name="validate")
@click.argument("name", required=False)
@session_command
def validate(session, services, name: str | None) -> int:
    """Run 'terraform validate' in an environment."""
    return _run_in_env(session, services, name, "validate")


@click.command(name="plan")
@click.argument("name", required=False)
@session_command
def plan(session, services, name: str | None) -> int:
    """Run 'terraform plan' in an environment."""
    return _run_in_env(session, services, name, "plan")


@click.command(name="apply")
@click.argument("name", required=False)
@session_command
def apply(session, services, name: str | None) -> int:
    """Run 'terraform apply' in an environment."""
    return _run_in_env(session, services, name, "apply")


@click.command(name="destroy")
@click.argument("name", required=False)
@session_command
def destroy(session, services, name: str | None) -> int:
    """Print the command for destroying an environment.

    Destroy is never run automatically.
    """
    ctx = services.preflight.run(session, name)
    click.echo("To destroy the environment, run:")
    click.echo(f"  {services.terraform.destroy_command(ctx.env_dir)}")
    return 0


@click.command(name="lint")
@click.argument("name", required=False)
@session_command
def lint(session, services, name: str | None) -> int:
    """Run tflint in an environment using the shared wrapper script."""
    from tfproj.core.lint import run_lint

    return run_lint(session, name, services.github, services.binder)


@click.command(name="clean")
@click.argument(
    "kind",
    type=click.Choice(["terraform", "tflint", "all"]),
    default="all",
    required=False,
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@session_command
def clean(session, services, kind: str, yes: bool) -> int:
    """Delete .terraform and/or .tflint directories in the project."""
    from tfproj.core.clean import find_dot_dirs, remove_dirs

    topology = require_project(session)
    directories = find_dot_dirs(topology, kind)
    if not directories:
        click.echo("Nothing to clean.")
        return 0

    click.echo("Ready to delete the following directories:")
    for directory in directories:
        click.echo(f"  - {directory.relative_to(session.root_dir)}")

    if not yes:
        with session.cancel.interactive():
            confirmed = click.confirm("Proceed with deletion?", default=False)
        if not confirmed:
            click.echo("Operation cancelled.")
            return 0

    failures = remove_dirs(directories, cancel=session.cancel)
    if failures:
        click.secho("Some delete operation(s) failed, please review the output above.", fg="red", err=True)
    else:
        click.secho("Done.", fg="green")
    return failures
