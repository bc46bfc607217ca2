"""
Diagnostic commands: check tools/dir/prereqs/auth/env and status.
"""

import click

from tfproj.cli.common import banner, mark, session_command


def _print_tools(tools) -> None:
    for tool in tools:
        click.echo(f"  {mark(tool.available)}  {tool.name:<10}: {tool.executable}")
        if tool.install_hint:
            click.echo(f"        install: {tool.install_hint}")


def _print_directory(directory) -> None:
    click.echo(f"  {mark(directory.main_ok)}  main directory")
    click.echo(f"  {mark(directory.envs_ok)}  envs directory")
    if directory.failure_count:
        click.echo(f"        {directory.root_dir} does not look like a project root")


def _print_github(status) -> None:
    if status.authenticated:
        user = f" as {status.username}" if status.username else ""
        click.echo(f"  {mark(True)}  GitHub authenticated{user}")
    else:
        click.echo(f"  {mark(False)}  GitHub not authenticated: {status.error or 'unknown error'}")
        click.echo("        please run 'gh auth login'")


@click.group(name="check")
def check():
    """Check tools, project layout and authentication."""
    pass


@check.command(name="tools")
@session_command
def check_tools_cmd(session, services) -> int:
    """Check that az, gh and terraform are installed."""
    from tfproj.core.checks import check_tools

    tools = check_tools(session)
    _print_tools(tools)
    return sum(not t.available for t in tools)


@check.command(name="dir")
@session_command
def check_dir_cmd(session, services) -> int:
    """Check that the current directory is a project root."""
    from tfproj.core.checks import check_directory

    directory = check_directory(session)
    _print_directory(directory)
    return directory.failure_count


@check.command(name="auth")
@session_command
def check_auth_cmd(session, services) -> int:
    """Check GitHub authentication."""
    from tfproj.core.checks import check_github_auth

    status = check_github_auth(session, services.github)
    _print_github(status)
    return int(not status.authenticated)


@check.command(name="prereqs")
@session_command
def check_prereqs_cmd(session, services) -> int:
    """Check tools, GitHub authentication and project layout."""
    from tfproj.core.checks import check_prereqs

    report = check_prereqs(session, services.github)
    click.echo("Tools:")
    _print_tools(report.tools)
    click.echo("\nAuthentication:")
    _print_github(report.github)
    click.echo("\nProject directory:")
    _print_directory(report.directory)
    if report.failure_count:
        click.secho(f"\n{report.failure_count} prerequisite check(s) failed.", fg="red")
    else:
        click.secho("\nAll prerequisites met.", fg="green")
    return report.failure_count


@check.command(name="env")
@click.argument("name", required=False)
@session_command
def check_env_cmd(session, services, name: str | None) -> int:
    """Check an environment's lock file and subscription hint.

    Same as 'tfproj env check'.
    """
    from tfproj.cli.env import print_environment_check

    return print_environment_check(session, name)


@click.command(name="status")
@session_command
def status(session, services) -> int:
    """Show a dashboard of tools, accounts, project and environment.

    Example:
        tfproj status
    """
    from tfproj.core.checks import build_status

    report = build_status(session, services.github, services.azure)

    banner("TFPROJ STATUS")
    click.echo("Tools:")
    _print_tools(report.prereqs.tools)

    click.echo("\nGitHub:")
    _print_github(report.prereqs.github)

    click.echo("\nAzure:")
    if not report.azure_available:
        click.echo(f"  {mark(False)}  Azure CLI not available")
    elif report.identity is None:
        click.echo(f"  {mark(False)}  Not logged in, please run 'tfproj az login'")
    else:
        click.echo(f"  {mark(True)}  {report.identity.user}")
        click.echo(f"        subscription : {report.identity.subscription_name} ({report.identity.subscription_id})")

    click.echo("\nProject:")
    click.echo(f"  root directory : {report.topology.root_dir}")
    _print_directory(report.prereqs.directory)
    if report.topology.environment_names:
        click.echo(f"  environments   : {', '.join(report.topology.environment_names)}")
    if report.topology.modules:
        click.echo(f"  modules        : {', '.join(sorted(report.topology.modules))}")

    click.echo("\nSelected environment:")
    env = report.environment
    if report.selected_name is None:
        click.echo("  none, please run 'tfproj env select'")
    elif env is None or not env.found:
        click.echo(f"  {mark(False)}  {report.selected_name} (not found)")
    else:
        click.echo(f"  {mark(env.found)}  {env.name}")
        click.echo(f"  {mark(env.lock_ok)}  lock file")
        click.echo(f"  {mark(env.hint_ok)}  subscription hint : {env.hint or 'not found'}")
        if report.identity is not None and env.hint:
            bound = report.identity.matches(env.hint)
            click.echo(f"  {mark(bound)}  subscription bound")

    for note in report.notes:
        click.echo(f"\nNote: {note}")

    if report.failure_count:
        click.secho(f"\n{report.failure_count} check(s) failed.", fg="red")
    return report.failure_count
