"""
Azure CLI account provider.

Wraps ``az account`` and ``az login`` through subprocess.
"""

import json
import logging
from typing import Optional

from tfproj.errors import InternalInvariantError
from tfproj.providers.base import run_command, tool_available
from tfproj.session.state import AccountIdentity

logger = logging.getLogger(__name__)


class AzureCliProvider:
    """AccountProvider backed by the az command line tool."""

    def __init__(self, az_binary: str = "az", cancel=None):
        self.az_binary = az_binary
        self.cancel = cancel

    def available(self) -> bool:
        return tool_available(self.az_binary)

    def whoami(self) -> Optional[AccountIdentity]:
        """Return the logged in identity, or None if not logged in."""
        result = run_command(
            [self.az_binary, "account", "show", "--output", "json"],
            "account show",
            cancel=self.cancel,
            capture=True,
        )
        if not result.success:
            logger.debug(f"az account show failed: {result.stderr.strip()}")
            return None

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise InternalInvariantError(f"unexpected output from az account show: {e}") from e

        return AccountIdentity(
            user=(data.get("user") or {}).get("name", ""),
            subscription_id=data.get("id", ""),
            subscription_name=data.get("name", ""),
            tenant_name=data.get("tenantDisplayName"),
        )

    def set_subscription(self, hint: str) -> bool:
        """Make the subscription named or identified by hint the active one."""
        result = run_command(
            [self.az_binary, "account", "set", "--subscription", hint],
            "account set",
            cancel=self.cancel,
            capture=True,
        )
        if not result.success:
            logger.debug(f"az account set failed: {result.stderr.strip()}")
        return result.success

    def login(self) -> bool:
        """Clear cached accounts and log in with a device code."""
        run_command(
            [self.az_binary, "account", "clear"],
            "account clear",
            cancel=self.cancel,
            capture=True,
        )
        result = run_command(
            [self.az_binary, "login", "--use-device-code", "--output", "none"],
            "login",
            cancel=self.cancel,
        )
        return result.success

    def logout(self) -> bool:
        """Clear all subscriptions from the local az cache."""
        result = run_command(
            [self.az_binary, "account", "clear"],
            "account clear",
            cancel=self.cancel,
            capture=True,
        )
        if not result.success:
            logger.debug(f"az account clear failed: {result.stderr.strip()}")
        return result.success
