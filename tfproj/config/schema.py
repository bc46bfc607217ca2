"""
Pydantic models for tfproj configuration.

Provides type-safe configuration with validation.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class LayoutConfig(BaseModel):
    """Project directory layout and marker file names."""

    main_dir: str = Field(
        default="main",
        description="Directory holding the main module",
    )
    modules_dir: str = Field(
        default="modules",
        description="Directory holding local sub-modules",
    )
    envs_dir: str = Field(
        default="envs",
        description="Directory holding one subdirectory per environment",
    )
    excluded_env_prefix: str = Field(
        default="_",
        min_length=1,
        description="Environment directories starting with this prefix are ignored",
    )
    lock_file: str = Field(
        default=".terraform.lock.hcl",
        description="Dependency lock file required in every environment",
    )
    hint_file: str = Field(
        default=".az-subscription",
        description="Subscription hint file required in every environment",
    )
    workflows_dir: str = Field(
        default=".github/workflows",
        description="Directory with GitHub workflow files",
    )

    @field_validator("main_dir", "modules_dir", "envs_dir", "lock_file", "hint_file")
    @classmethod
    def _not_nested(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("must be a single path component")
        return value


class ToolsConfig(BaseModel):
    """External tool executables."""

    terraform: str = Field(default="terraform", description="Terraform executable")
    az: str = Field(default="az", description="Azure CLI executable")
    gh: str = Field(default="gh", description="GitHub CLI executable")
    bash: str = Field(default="bash", description="Shell used to run the tflint wrapper")


class GitHubConfig(BaseModel):
    """GitHub access used for release lookups and raw file downloads."""

    token_env: str = Field(
        default="GITHUB_TOKEN",
        description="Environment variable containing a GitHub token",
    )
    terraform_repo: str = Field(
        default="hashicorp/terraform",
        description="Repository whose latest release is the latest Terraform",
    )
    tflint_repo: str = Field(
        default="terraform-linters/tflint",
        description="Repository whose latest release is the latest tflint",
    )


class LintConfig(BaseModel):
    """tflint wrapper configuration."""

    wrapper_repo: str = Field(
        default="dsb-norge/terraform-tflint-wrappers",
        description="Repository hosting the tflint wrapper script",
    )
    wrapper_path: str = Field(
        default="tflint_linux.sh",
        description="Path of the wrapper script within the repository",
    )
    wrapper_dir: str = Field(
        default=".tflint",
        description="Directory under the project root for the downloaded wrapper",
    )
    wrapper_script: str = Field(
        default="tflint.sh",
        description="File name of the downloaded wrapper",
    )
    config_file: str = Field(
        default=".tflint.hcl",
        description="tflint configuration file holding plugin declarations",
    )


class RegistryConfig(BaseModel):
    """Terraform registry API configuration."""

    url: str = Field(
        default="https://registry.terraform.io",
        description="Registry base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds",
    )


class SessionConfig(BaseModel):
    """Where the per-project session state is persisted."""

    state_dir: str = Field(
        default="~/.cache/tfproj",
        description="Directory for session state files",
    )

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_file: bool = Field(
        default=False,
        description="Also write a debug log file",
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value):
        return value.upper() if isinstance(value, str) else value


class TfProjConfig(BaseModel):
    """Root tfproj configuration."""

    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    lint: LintConfig = Field(default_factory=LintConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "extra": "allow",  # Allow extra fields for forward compatibility
    }
