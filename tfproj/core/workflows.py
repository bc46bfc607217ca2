"""
Bumping tool versions in GitHub workflow files.

Every ``terraform-version`` and ``tflint-version`` value in the project's
workflow files is bumped towards the latest release, keeping the declared
precision. Values set to ``latest`` are left alone.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

import yaml

from tfproj.core.versions import (
    is_semver_allow_v_as_first_character,
    is_semver_allow_x_as_wildcard_in_last,
    resolve_bump,
    resolve_prefixed_bump,
)
from tfproj.errors import VersionParseError
from tfproj.session.state import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowTool:
    """A tool whose version is pinned in workflow files."""
    name: str
    field_name: str
    is_valid: Callable[[str], bool]
    resolve: Callable[[str, str], str]


TERRAFORM = WorkflowTool(
    name="terraform",
    field_name="terraform-version",
    is_valid=is_semver_allow_x_as_wildcard_in_last,
    resolve=resolve_bump,
)

TFLINT = WorkflowTool(
    name="tflint",
    field_name="tflint-version",
    is_valid=is_semver_allow_v_as_first_character,
    resolve=resolve_prefixed_bump,
)


@dataclass
class VersionChange:
    file: Path
    line: int
    field_name: str
    old: str
    new: str

    @property
    def changed(self) -> bool:
        return self.old != self.new


@dataclass
class WorkflowBumpResult:
    changes: list[VersionChange] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failures: int = 0

    @property
    def updated(self) -> list[VersionChange]:
        return [c for c in self.changes if c.changed]


def workflow_files(root_dir: Path, workflows_dir: str = ".github/workflows") -> list[Path]:
    """All *.yml files under the workflows directory, sorted."""
    directory = Path(root_dir) / workflows_dir
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob("*.yml") if p.is_file())


def _field_pattern(field_name: str) -> re.Pattern:
    return re.compile(
        rf"^(?P<lead>[ \t]*(?:-[ \t]+)?{re.escape(field_name)}[ \t]*:[ \t]*)"
        rf"(?P<quote>['\"]?)(?P<value>[^'\"\s#]+)(?P=quote)",
        re.MULTILINE,
    )


def _iter_keys(node, key: str) -> Iterator:
    if isinstance(node, dict):
        for k, v in node.items():
            if k == key:
                yield v
            yield from _iter_keys(v, key)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_keys(item, key)


def bump_tool_in_text(
    text: str,
    path: Path,
    tool: WorkflowTool,
    latest: str,
    result: WorkflowBumpResult,
) -> str:
    """Bump every tool.field_name value in text, recording changes in result."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.error(f"    {path.name}: invalid YAML, skipping: {e}")
        result.failures += 1
        return text

    if not any(True for _ in _iter_keys(document, tool.field_name)):
        logger.info(f"    {tool.field_name} version string not found")
        return text

    pieces = []
    position = 0
    for match in _field_pattern(tool.field_name).finditer(text):
        current = match.group("value")
        line = text.count("\n", 0, match.start()) + 1

        if current == "latest":
            logger.info(f"    {tool.field_name} : set to 'latest', not changing")
            continue
        if not tool.is_valid(current):
            message = f"{path.name}:{line}: {tool.field_name} '{current}' is not a valid semver"
            logger.warning(f"    {tool.field_name} : '{current}' is not a valid semver, line {line}")
            result.warnings.append(message)
            continue

        try:
            new = tool.resolve(current, latest)
        except VersionParseError as e:
            logger.error(f"    {tool.field_name} : '{current}' at line {line}, unable to resolve new version: {e}")
            result.failures += 1
            continue

        change = VersionChange(file=path, line=line, field_name=tool.field_name, old=current, new=new)
        result.changes.append(change)
        if not change.changed:
            logger.info(f"    {tool.field_name} : already at {new}")
            continue

        logger.info(f"    {tool.field_name} : from {current} to {new}")
        start, end = match.span("value")
        pieces.append(text[position:start])
        pieces.append(new)
        position = end

    pieces.append(text[position:])
    return "".join(pieces)


def bump_workflows(
    root_dir: Path,
    terraform_latest: str,
    tflint_latest: str,
    workflows_dir: str = ".github/workflows",
    files: Optional[list[Path]] = None,
    cancel: Optional[CancellationToken] = None,
) -> WorkflowBumpResult:
    """Bump terraform and tflint versions in all workflow files.

    Args:
        root_dir: Project root
        terraform_latest: Latest terraform version without ``v``
        tflint_latest: Latest tflint version, with or without ``v``
        workflows_dir: Workflow directory relative to root_dir
        files: Explicit file list (defaults to all workflow files)
        cancel: Checked before each file

    Returns:
        WorkflowBumpResult
    """
    result = WorkflowBumpResult()
    for path in files if files is not None else workflow_files(root_dir, workflows_dir):
        if cancel is not None:
            cancel.check()
        logger.info(f"  checking file: {path.relative_to(root_dir)}")
        original = path.read_text()
        text = bump_tool_in_text(original, path, TERRAFORM, terraform_latest, result)
        text = bump_tool_in_text(text, path, TFLINT, tflint_latest, result)
        if text != original:
            try:
                path.write_text(text)
            except OSError as e:
                logger.error(f"      failed to update version in file: {e}")
                result.failures += 1
    return result
