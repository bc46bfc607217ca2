"""
Bumping module and tflint plugin versions, and reporting provider upgrades.

Module and plugin versions are overwritten with the latest published
version regardless of the declared constraint.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tfproj.core.hcl import (
    RegistryDependencyRecord,
    locked_providers,
    module_records,
    plugin_records,
    set_attribute,
)
from tfproj.errors import ExternalToolFailure, InternalInvariantError
from tfproj.providers.base import RepoProvider
from tfproj.providers.registry import parse_module_source, parse_provider_address
from tfproj.session.state import CancellationToken

logger = logging.getLogger(__name__)

_GITHUB_PLUGIN_SOURCE = re.compile(r"^github\.com/(?P<repo>[\w.-]+/[\w.-]+)$")

SKIPPED_DIRS = {".terraform", ".tflint", ".git"}


@dataclass
class DependencyChange:
    record: RegistryDependencyRecord
    new: str

    @property
    def changed(self) -> bool:
        return self.record.version != self.new


@dataclass
class BumpResult:
    changes: list[DependencyChange] = field(default_factory=list)
    failures: int = 0

    @property
    def updated(self) -> list[DependencyChange]:
        return [c for c in self.changes if c.changed]

    def merge(self, other: "BumpResult") -> "BumpResult":
        self.changes.extend(other.changes)
        self.failures += other.failures
        return self


@dataclass
class ProviderUpgrade:
    """A locked provider and the newest version published for it."""
    address: str
    locked: str
    constraints: Optional[str]
    latest: Optional[str] = None
    error: Optional[str] = None

    @property
    def upgradable(self) -> bool:
        return bool(self.latest) and self.latest != self.locked


def terraform_files(root_dir: Path) -> list[Path]:
    """All *.tf files under root_dir, outside .terraform and similar dirs."""
    files = []
    for path in sorted(Path(root_dir).rglob("*.tf")):
        relative = path.relative_to(root_dir)
        if any(part in SKIPPED_DIRS for part in relative.parts[:-1]):
            continue
        if path.is_file():
            files.append(path)
    return files


def _apply_changes(path: Path, changes: list[DependencyChange], result: BumpResult) -> None:
    pending = [c for c in changes if c.changed]
    if not pending:
        return
    text = path.read_text()
    for change in pending:
        text = set_attribute(text, change.record.address, change.new)
    try:
        path.write_text(text)
    except OSError as e:
        logger.error(f"  failed to write {path}: {e}")
        result.failures += 1


def bump_modules(root_dir: Path, registry, cancel: Optional[CancellationToken] = None) -> BumpResult:
    """Set every registry module's version to the latest published one.

    Raises:
        InternalInvariantError: A registry module has no version attribute
    """
    result = BumpResult()
    latest_cache: dict[str, str] = {}

    for path in terraform_files(root_dir):
        if cancel is not None:
            cancel.check()
        try:
            records = module_records(path)
        except ValueError as e:
            logger.error(f"  {e}")
            result.failures += 1
            continue

        file_changes = []
        for record in records:
            address = parse_module_source(record.source)
            if address is None:
                logger.debug(f"  skipping non-registry module '{record.label}' ({record.source})")
                continue
            if not record.version:
                raise InternalInvariantError(
                    f"registry module '{record.label}' in {path} has no version "
                    f"(source {record.source})"
                )

            key = str(address)
            if key not in latest_cache:
                try:
                    latest_cache[key] = registry.latest_module_version(address)
                except ExternalToolFailure as e:
                    logger.error(f"  {record.label}: failed to look up latest version: {e.output}")
                    result.failures += 1
                    continue
            change = DependencyChange(record=record, new=latest_cache[key])
            file_changes.append(change)
            _log_change(root_dir, change)

        result.changes.extend(file_changes)
        _apply_changes(path, file_changes, result)

    return result


def bump_plugins(
    env_dir: Path,
    config_file: str,
    repo_provider: RepoProvider,
    root_dir: Optional[Path] = None,
    cancel: Optional[CancellationToken] = None,
) -> BumpResult:
    """Set each GitHub-hosted tflint plugin's version to its latest release."""
    result = BumpResult()
    path = Path(env_dir) / config_file
    if not path.is_file():
        logger.info(f"  no {config_file} found in {env_dir.name}, nothing to update")
        return result

    try:
        records = plugin_records(path)
    except ValueError as e:
        logger.error(f"  {e}")
        result.failures += 1
        return result

    changes = []
    for record in records:
        if cancel is not None:
            cancel.check()
        match = _GITHUB_PLUGIN_SOURCE.match(record.source)
        if match is None:
            logger.debug(f"  skipping plugin '{record.label}' with source {record.source}")
            continue
        try:
            tag = repo_provider.get_latest_release(match["repo"])
        except ExternalToolFailure as e:
            logger.error(f"  {record.label}: failed to look up latest release: {e.output}")
            result.failures += 1
            continue
        change = DependencyChange(record=record, new=tag[1:] if tag.startswith("v") else tag)
        changes.append(change)
        _log_change(root_dir or env_dir, change)

    result.changes.extend(changes)
    _apply_changes(path, changes, result)
    return result


def provider_upgrades(
    lock_file: Path,
    registry,
    cancel: Optional[CancellationToken] = None,
) -> list[ProviderUpgrade]:
    """Compare each locked provider with the registry's latest version."""
    upgrades = []
    for locked in locked_providers(lock_file):
        if cancel is not None:
            cancel.check()
        upgrade = ProviderUpgrade(
            address=locked.address,
            locked=locked.version,
            constraints=locked.constraints,
        )
        address = parse_provider_address(locked.address)
        if address is None:
            upgrade.error = "not a registry provider"
        else:
            try:
                upgrade.latest = registry.latest_provider_version(address)
            except ExternalToolFailure as e:
                upgrade.error = e.output
        upgrades.append(upgrade)
    return upgrades


def _log_change(root_dir: Path, change: DependencyChange) -> None:
    record = change.record
    try:
        where = record.file.relative_to(root_dir)
    except ValueError:
        where = record.file
    kind = record.address.split(".")[0]
    if change.changed:
        logger.info(f"  {where}: {kind} '{record.label}' from {record.version or '<none>'} to {change.new}")
    else:
        logger.info(f"  {where}: {kind} '{record.label}' already at {change.new}")
