"""
Azure CLI account commands.
"""

import click

from tfproj.cli.common import session_command


def _print_identity(identity) -> None:
    click.echo(f"  user              : {identity.user}")
    if identity.tenant_name:
        click.echo(f"  tenant            : {identity.tenant_name}")
    click.echo(f"  subscription ID   : {identity.subscription_id}")
    click.echo(f"  subscription Name : {identity.subscription_name}")


def _require_az(session, services) -> None:
    from tfproj.errors import ToolNotFoundError

    if not services.azure.available():
        raise ToolNotFoundError(session.config.tools.az)


@click.group(name="az")
def az():
    """Azure CLI login and subscription management."""
    pass


def _login(session, services) -> int:
    _require_az(session, services)

    identity = services.azure.whoami()
    if identity is not None:
        click.echo("Already logged in to Azure CLI.")
        session.identity = identity
        _print_identity(identity)
        return 0

    click.echo("Logging in to Azure CLI with a device code.")
    if not services.azure.login():
        click.secho("Azure CLI login failed.", fg="red", err=True)
        session.clear_identity()
        return 1

    identity = services.azure.whoami()
    session.identity = identity
    if identity is None:
        click.secho("Azure CLI login did not produce an account.", fg="red", err=True)
        return 1
    _print_identity(identity)
    return 0


def _logout(session, services) -> int:
    _require_az(session, services)

    session.clear_identity()
    if not services.azure.logout():
        click.secho("Azure CLI logout failed.", fg="red", err=True)
        return 1
    click.echo("Logged out of Azure CLI.")
    return 0


@az.command(name="login")
@session_command
def login(session, services) -> int:
    """Log in to Azure CLI unless already logged in."""
    return _login(session, services)


@az.command(name="logout")
@session_command
def logout(session, services) -> int:
    """Clear all Azure CLI accounts and the cached identity."""
    return _logout(session, services)


@az.command(name="relogin")
@session_command
def relogin(session, services) -> int:
    """Log out and log in again."""
    return _logout(session, services) + _login(session, services)


@az.command(name="whoami")
@click.option("--refresh", is_flag=True, help="Query Azure CLI instead of using the cached identity")
@session_command
def whoami(session, services, refresh: bool) -> int:
    """Show the logged in account and active subscription.

    Example:
        tfproj az whoami
        tfproj az whoami --refresh
    """
    identity = session.identity
    if refresh or identity is None:
        _require_az(session, services)
        identity = services.binder.refresh(session)

    if identity is None:
        click.secho("Not logged in to Azure CLI.", fg="yellow")
        click.echo("  please run 'tfproj az login'")
        return 1
    _print_identity(identity)
    return 0


@az.command(name="set-sub")
@session_command
def set_sub(session, services) -> int:
    """Activate the selected environment's subscription."""
    identity = services.binder.ensure_bound(session)
    _print_identity(identity)
    return 0
