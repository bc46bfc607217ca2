"""
Configuration commands for viewing and creating tfproj.yaml.
"""

import sys
from pathlib import Path

import click


@click.group(name="config")
def config_cmd():
    """Manage tfproj configuration."""
    pass


def _print_dict(d: dict, indent: int = 0) -> None:
    for key, value in d.items():
        if isinstance(value, dict):
            click.echo("  " * indent + f"{key}:")
            _print_dict(value, indent + 1)
        else:
            click.echo("  " * indent + f"{key}: {value}")


@config_cmd.command(name="show")
@click.option(
    "--format",
    "-f",
    type=click.Choice(["yaml", "json", "table"]),
    default="yaml",
    help="Output format",
)
@click.pass_context
def show_config(ctx: click.Context, format: str) -> None:
    """Show the effective configuration.

    Example:
        tfproj config show --format table
    """
    from tfproj.config.loader import load_default_config

    config = ctx.obj.get("config") or load_default_config()
    data = config.model_dump()

    if format == "yaml":
        import yaml
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
    elif format == "json":
        import json
        click.echo(json.dumps(data, indent=2))
    else:
        _print_dict(data)


@config_cmd.command(name="init")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="tfproj.yaml",
    help="Output file for configuration",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration",
)
def init_config(output: str, force: bool) -> None:
    """Write a tfproj.yaml with default values.

    Example:
        tfproj config init --output tfproj.yaml
    """
    from tfproj.config.loader import save_config
    from tfproj.config.schema import TfProjConfig

    output_path = Path(output)

    if output_path.exists() and not force:
        click.echo(f"Configuration file already exists: {output}", err=True)
        click.echo("Use --force to overwrite")
        sys.exit(1)

    save_config(TfProjConfig(), output_path)

    click.echo(f"Configuration initialized: {output}")
    click.echo("\nNext steps:")
    click.echo("  1. Adjust layout.* if your project does not use main/, modules/ and envs/")
    click.echo("  2. Set github.token_env if your token lives in another variable")


@config_cmd.command(name="validate")
@click.option(
    "--config-file",
    "-c",
    type=click.Path(exists=True),
    default="tfproj.yaml",
    help="Configuration file to validate",
)
def validate_config(config_file: str) -> None:
    """Validate a configuration file.

    Example:
        tfproj config validate --config-file tfproj.yaml
    """
    import os

    from pydantic import ValidationError
    from yaml import YAMLError

    from tfproj.config.loader import load_config

    try:
        config = load_config(config_file)
    except (ValidationError, YAMLError) as e:
        click.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration file is valid: {config_file}")

    warnings = []
    if not (os.environ.get(config.github.token_env) or os.environ.get("GH_TOKEN")):
        warnings.append(f"{config.github.token_env} not set, falling back to 'gh auth token'")
    if config.model_extra:
        warnings.append(f"unknown keys ignored: {', '.join(sorted(config.model_extra))}")

    if warnings:
        click.echo("\nWarnings:")
        for warning in warnings:
            click.echo(f"  - {warning}")
