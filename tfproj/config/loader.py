"""
Configuration loading utilities.

Loads tfproj.yaml and environment variables.
"""

import os
from pathlib import Path
from typing import Optional

import yaml

from tfproj.config.schema import TfProjConfig

CONFIG_FILE_NAME = "tfproj.yaml"


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Find tfproj.yaml in standard locations.

    Search order:
    1. Start directory (default: current directory)
    2. Parent directories (up to 5 levels)
    3. ~/.config/tfproj/

    Returns:
        Path to config file if found, None otherwise.
    """
    current = (start or Path.cwd()).resolve()
    for _ in range(6):
        config_path = current / CONFIG_FILE_NAME
        if config_path.exists():
            return config_path
        if current.parent == current:
            break
        current = current.parent

    user_config = Path.home() / ".config" / "tfproj" / CONFIG_FILE_NAME
    if user_config.exists():
        return user_config

    return None


def load_config(config_path: str | Path) -> TfProjConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to tfproj.yaml

    Returns:
        Validated TfProjConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        raw_config = yaml.safe_load(f) or {}

    raw_config = _apply_env_overrides(raw_config)

    return TfProjConfig(**raw_config)


def load_default_config() -> TfProjConfig:
    """Load configuration from default location or return defaults."""
    config_path = find_config_file()

    if config_path:
        return load_config(config_path)

    raw_config = _apply_env_overrides({})
    return TfProjConfig(**raw_config)


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Environment variables are mapped as:
    - TFPROJ_STATE_DIR -> session.state_dir
    - TFPROJ_TERRAFORM -> tools.terraform
    - TFPROJ_LOG_LEVEL -> logging.level
    - etc.
    """
    env_mappings = [
        ("TFPROJ_STATE_DIR", ["session", "state_dir"]),
        ("TFPROJ_TERRAFORM", ["tools", "terraform"]),
        ("TFPROJ_AZ", ["tools", "az"]),
        ("TFPROJ_GH", ["tools", "gh"]),
        ("TFPROJ_REGISTRY_URL", ["registry", "url"]),
        ("TFPROJ_LOG_LEVEL", ["logging", "level"]),
        ("TFPROJ_GITHUB_TOKEN_ENV", ["github", "token_env"]),
    ]

    for env_var, path in env_mappings:
        value = os.environ.get(env_var)
        if value:
            _set_nested(config, path, value)

    return config


def _set_nested(d: dict, path: list[str], value: str) -> None:
    """Set a nested dictionary value."""
    for key in path[:-1]:
        if not isinstance(d.get(key), dict):
            d[key] = {}
        d = d[key]
    d[path[-1]] = value


def save_config(config: TfProjConfig, config_path: str | Path) -> None:
    """Save configuration to a YAML file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        f.write("# tfproj configuration\n")
        f.write("# See 'tfproj config show' for all available options\n\n")
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
