"""
Terraform registry client.

Looks up the latest published versions of modules and providers.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from tfproj.errors import ExternalToolFailure

logger = logging.getLogger(__name__)

_SEGMENT = r"[0-9A-Za-z][0-9A-Za-z_-]*"
_MODULE_SOURCE = re.compile(
    rf"^(?:(?P<host>[0-9A-Za-z.-]+\.[A-Za-z]{{2,}})/)?"
    rf"(?P<namespace>{_SEGMENT})/(?P<name>{_SEGMENT})/(?P<provider>{_SEGMENT})$"
)
_PROVIDER_ADDRESS = re.compile(
    rf"^(?:(?P<host>[0-9A-Za-z.-]+\.[A-Za-z]{{2,}})/)?"
    rf"(?P<namespace>{_SEGMENT})/(?P<type>{_SEGMENT})$"
)


@dataclass
class ModuleAddress:
    namespace: str
    name: str
    provider: str
    host: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}/{self.provider}"


@dataclass
class ProviderAddress:
    namespace: str
    type: str
    host: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.namespace}/{self.type}"


def parse_module_source(source: str) -> Optional[ModuleAddress]:
    """Parse a public registry module source, e.g. ``Azure/naming/azurerm``.

    Returns None for local paths, git URLs and other non-registry sources.
    """
    source = (source or "").strip()
    if not source or source.startswith((".", "/")) or "::" in source or "://" in source:
        return None
    # Drop a //subdirectory suffix
    match = _MODULE_SOURCE.match(source.split("//", 1)[0])
    if not match:
        return None
    return ModuleAddress(
        namespace=match["namespace"],
        name=match["name"],
        provider=match["provider"],
        host=match["host"],
    )


def parse_provider_address(address: str) -> Optional[ProviderAddress]:
    """Parse a lock-file provider address, e.g. ``registry.terraform.io/hashicorp/azurerm``."""
    match = _PROVIDER_ADDRESS.match(address.strip())
    if not match:
        return None
    return ProviderAddress(namespace=match["namespace"], type=match["type"], host=match["host"])


class RegistryClient:
    """Client for the Terraform registry HTTP API."""

    def __init__(
        self,
        url: str = "https://registry.terraform.io",
        timeout: float = 30.0,
        session: requests.Session | None = None,
        cancel=None,
    ) -> None:
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.cancel = cancel
        self._session = session or requests.Session()

    def latest_module_version(self, address: ModuleAddress) -> str:
        """Return the latest version of a registry module."""
        data = self._get(f"/v1/modules/{address.namespace}/{address.name}/{address.provider}")
        return self._version(data, str(address))

    def latest_provider_version(self, address: ProviderAddress) -> str:
        """Return the latest version of a registry provider."""
        data = self._get(f"/v1/providers/{address.namespace}/{address.type}")
        return self._version(data, str(address))

    def _get(self, path: str) -> dict:
        if self.cancel is not None:
            self.cancel.check()

        url = f"{self.url}{path}"
        logger.debug(f"GET {url}")
        try:
            response = self._session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExternalToolFailure("registry", 1, f"request to {url} failed: {e}") from e

        if response.status_code >= 400:
            raise ExternalToolFailure(
                "registry",
                response.status_code,
                f"registry request failed: {response.status_code} {response.text}",
            )
        try:
            return response.json()
        except ValueError as e:
            raise ExternalToolFailure("registry", 1, f"invalid JSON from {url}") from e

    @staticmethod
    def _version(data: dict, what: str) -> str:
        version = data.get("version") if isinstance(data, dict) else None
        if not version:
            raise ExternalToolFailure("registry", 1, f"no version returned for {what}")
        return str(version)
