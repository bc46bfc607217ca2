"""
Main CLI entry point for tfproj.

Provides the root command group and imports all subcommands.
"""

import click
from tfproj import __version__


@click.group()
@click.version_option(version=__version__, prog_name="tfproj")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to tfproj.yaml",
    envvar="TFPROJ_CONFIG",
)
@click.option(
    "--root",
    "-C",
    type=click.Path(exists=True, file_okay=False),
    help="Project root directory (default: current directory)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only show warnings and errors",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None, root: str | None, verbose: bool, quiet: bool) -> None:
    """tfproj - Terraform multi-environment project helper.

    Select environments, bind Azure subscriptions, initialize, lint and
    bump dependency versions across a main/modules/envs project.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config
    if root:
        ctx.obj["root_dir"] = root

    # Load configuration if specified
    if config:
        from tfproj.config.loader import load_config
        ctx.obj["config"] = load_config(config)
    elif ctx.obj.get("config") is None:
        from tfproj.config.loader import load_default_config
        ctx.obj["config"] = load_default_config()


# Import and register subcommands
from tfproj.cli.az import az
from tfproj.cli.check import check, status
from tfproj.cli.config_cmd import config_cmd
from tfproj.cli.env import env
from tfproj.cli.terraform import apply, clean, destroy, fmt, init, lint, plan, upgrade, validate
from tfproj.cli.upgrade import bump, show_provider_upgrades

cli.add_command(env)
cli.add_command(init)
cli.add_command(upgrade)
cli.add_command(fmt)
cli.add_command(validate)
cli.add_command(plan)
cli.add_command(apply)
cli.add_command(destroy)
cli.add_command(lint)
cli.add_command(clean)
cli.add_command(bump)
cli.add_command(show_provider_upgrades)
cli.add_command(check)
cli.add_command(status)
cli.add_command(az)
cli.add_command(config_cmd)
