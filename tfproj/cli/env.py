"""
Environment commands: list, select, set, clear and check.
"""

import click

from tfproj.cli.common import mark, require_project, session_command


@click.group(name="env")
def env():
    """List, select and check environments."""
    pass


def _print_environments(session, topology) -> None:
    selected = session.selected.name if session.selected else None
    click.echo("Available environments:")
    for index, name in enumerate(topology.environment_names, start=1):
        prefix = "->" if name == selected else "  "
        click.echo(f"  {prefix} {index}) {name}")
    if selected:
        click.echo("\n  -> indicates the currently selected")


def _select(session, services, name: str) -> int:
    from tfproj.core.selection import select_environment

    result = select_environment(session, name, services.binder)
    if result.identity is not None:
        click.echo(f"  subscription ID   : {result.identity.subscription_id}")
        click.echo(f"  subscription Name : {result.identity.subscription_name}")
    if not result.success:
        click.secho(f"Environment '{name}' selected with {result.failure_count} failed check(s):", fg="red", err=True)
        for failure in result.failures:
            click.echo(f"  - {failure}", err=True)
        click.echo(f"  please run 'tfproj env check {name}'", err=True)
    return result.failure_count


@env.command(name="list")
@session_command
def list_envs(session, services) -> int:
    """List the project's environments.

    The selected environment is marked with '->'.

    Example:
        tfproj env list
    """
    topology = require_project(session)
    if not topology.environments:
        click.secho(f"No environments found in: {topology.envs_dir}", fg="yellow")
        click.echo("  either create an environment or run the command from a different root directory.")
        return 1
    _print_environments(session, topology)
    return 0


@env.command(name="select")
@click.argument("name", required=False)
@session_command
def select_env(session, services, name: str | None) -> int:
    """Select an environment, interactively if NAME is omitted.

    Example:
        tfproj env select
        tfproj env select dev
    """
    if name:
        return _select(session, services, name)

    topology = require_project(session)
    names = topology.environment_names
    if not names:
        click.secho(f"No environments found in: {topology.envs_dir}", fg="yellow")
        return 1

    _print_environments(session, topology)
    with session.cancel.interactive():
        index = click.prompt(
            "Enter index of environment to set",
            type=click.IntRange(1, len(names)),
        )
    click.echo()
    return _select(session, services, names[index - 1])


@env.command(name="set")
@click.argument("name")
@session_command
def set_env(session, services, name: str) -> int:
    """Select environment NAME and bind its subscription.

    Example:
        tfproj env set dev
    """
    return _select(session, services, name)


@env.command(name="clear")
@session_command
def clear_env(session, services) -> int:
    """Clear the selected environment."""
    from tfproj.core.selection import clear_environment

    previous = clear_environment(session)
    if previous:
        click.echo(f"Cleared selected environment: {previous}")
    else:
        click.echo("No environment was selected.")
    return 0


env.add_command(clear_env, name="unset")


@env.command(name="check")
@click.argument("name", required=False)
@session_command
def check_env(session, services, name: str | None) -> int:
    """Check an environment's lock file and subscription hint.

    Checks NAME, or the selected environment if NAME is omitted.

    Example:
        tfproj env check dev
    """
    return print_environment_check(session, name)


def print_environment_check(session, name: str | None) -> int:
    from tfproj.project.environment import check_environment

    check = check_environment(session, name)
    click.echo(f"\nEnvironment check summary for '{check.name}':")
    click.echo(f"  {mark(check.found)}  Environment exists       : {check.directory or 'not found'}")
    if check.found:
        click.echo(f"  {mark(check.lock_ok)}  Lock file                : {check.lock_file if check.lock_ok else 'not found'}")
        hint_text = check.hint if check.hint_ok else "not found"
        click.echo(f"  {mark(check.hint_ok)}  Subscription hint        : {hint_text}")
    elif check.choices:
        click.echo(f"\nAvailable environments: {', '.join(check.choices)}")
        click.echo("  please run 'tfproj env list'")

    if check.valid:
        click.secho("\nEnvironment check passed.", fg="green")
    return check.failure_count
