"""
Terraform command execution.

Every command runs as ``terraform -chdir=<dir> <operation>`` with output
going to the terminal, so plan/apply prompts stay interactive.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

from tfproj.providers.base import CommandResult, run_command, tool_available

logger = logging.getLogger(__name__)

PLUGIN_CACHE_LOCK_ENV = {"TF_PLUGIN_CACHE_MAY_BREAK_DEPENDENCY_LOCK_FILE": "true"}


class TerraformRunner:
    """Runs terraform in a given directory with a scoped environment."""

    def __init__(self, terraform_binary: str = "terraform", cancel=None):
        self.terraform_binary = terraform_binary
        self.cancel = cancel

    def available(self) -> bool:
        return tool_available(self.terraform_binary)

    def init(
        self,
        directory: Path,
        upgrade: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """Run terraform init -reconfigure in an environment directory."""
        cmd = self._build_base_command(directory, "init")
        cmd.append("-reconfigure")
        if upgrade:
            cmd.append("-upgrade")
        return self._execute(cmd, "init", env)

    def init_offline(
        self,
        directory: Path,
        plugin_dir: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """Initialise a module directory from an environment's provider cache.

        No backend is configured and providers come only from plugin_dir.
        """
        cmd = self._build_base_command(directory, "init")
        cmd.extend([
            "-input=false",
            f"-plugin-dir={plugin_dir}",
            "-backend=false",
            "-reconfigure",
        ])
        merged = dict(env or {})
        merged.update(PLUGIN_CACHE_LOCK_ENV)
        return self._execute(cmd, "init", merged)

    def validate(self, directory: Path, env: Optional[Mapping[str, str]] = None) -> CommandResult:
        """Run terraform validate."""
        return self._execute(self._build_base_command(directory, "validate"), "validate", env)

    def plan(self, directory: Path, env: Optional[Mapping[str, str]] = None) -> CommandResult:
        """Run terraform plan."""
        return self._execute(self._build_base_command(directory, "plan"), "plan", env)

    def apply(self, directory: Path, env: Optional[Mapping[str, str]] = None) -> CommandResult:
        """Run terraform apply."""
        return self._execute(self._build_base_command(directory, "apply"), "apply", env)

    def fmt(self, root_dir: Path, check: bool = True) -> CommandResult:
        """Run terraform fmt -recursive over the whole project."""
        cmd = [self.terraform_binary, "fmt", "-recursive"]
        if check:
            cmd.append("-check")
        cmd.append(str(root_dir))
        return self._execute(cmd, "fmt")

    def destroy_command(self, directory: Path) -> str:
        """The destroy command the user has to run by hand."""
        return f"{self.terraform_binary} -chdir='{directory}' destroy"

    def _build_base_command(self, directory: Path, operation: str) -> list[str]:
        """Construct the base command list [binary, -chdir=path, operation]."""
        return [self.terraform_binary, f"-chdir={directory}", operation]

    def _execute(
        self,
        cmd: list[str],
        operation: str,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        result = run_command(cmd, operation, cancel=self.cancel, env=env)
        if not result.success:
            logger.debug(f"terraform {operation} exited with code {result.exit_code}")
        return result
