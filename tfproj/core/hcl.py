"""
Reading and editing HCL declaration files.

Files are parsed with python-hcl2 to enumerate module, plugin and provider
declarations. Edits are made on the original text so that formatting and
comments are preserved; a value is addressed as ``<block>.<label>.<attr>``,
e.g. ``module.naming.version``.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import hcl2

from tfproj.errors import InternalInvariantError

logger = logging.getLogger(__name__)


@dataclass
class RegistryDependencyRecord:
    """A versioned dependency declared in a file."""
    file: Path
    address: str
    source: str
    version: str

    @property
    def key(self) -> tuple[Path, str]:
        return (self.file, self.address)

    @property
    def label(self) -> str:
        return self.address.split(".")[1]


@dataclass
class LockedProvider:
    """A provider entry in a dependency lock file."""
    address: str
    version: str
    constraints: Optional[str] = None


def _unquote(value: Any) -> Any:
    """Strip the quotes newer hcl2 releases keep around strings and labels."""
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _unwrap(value: Any) -> Any:
    """Unwrap a value that may be wrapped in a single-element list by hcl2."""
    if isinstance(value, list) and len(value) == 1:
        return _unwrap(value[0])
    return _unquote(value)


def load_hcl(path: Path) -> dict:
    """Parse an HCL file.

    Raises:
        ValueError: If the file cannot be parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return hcl2.load(f)
    except Exception as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e


def iter_blocks(parsed: dict, block_type: str) -> Iterator[tuple[str, dict]]:
    """Yield (label, attributes) for every single-label block of block_type."""
    for block in parsed.get(block_type, []) or []:
        if not isinstance(block, dict):
            continue
        for label, body in block.items():
            if label.startswith("__"):
                continue
            if isinstance(body, list):
                body = body[0] if body else {}
            if not isinstance(body, dict):
                continue
            attributes = {
                k: _unwrap(v) for k, v in body.items() if not k.startswith("__")
            }
            yield _unquote(label), attributes


def _records(path: Path, block_type: str) -> list[RegistryDependencyRecord]:
    records = []
    for label, attrs in iter_blocks(load_hcl(path), block_type):
        source = attrs.get("source")
        if not isinstance(source, str):
            continue
        version = attrs.get("version")
        records.append(RegistryDependencyRecord(
            file=path,
            address=f"{block_type}.{label}.version",
            source=source,
            version=version if isinstance(version, str) else "",
        ))
    return records


def module_records(path: Path) -> list[RegistryDependencyRecord]:
    """All module blocks with a source in a .tf file."""
    return _records(path, "module")


def plugin_records(path: Path) -> list[RegistryDependencyRecord]:
    """All plugin blocks with a source in a tflint config file."""
    return _records(path, "plugin")


def locked_providers(lock_file: Path) -> list[LockedProvider]:
    """Provider entries of a .terraform.lock.hcl file."""
    providers = []
    for address, attrs in iter_blocks(load_hcl(lock_file), "provider"):
        providers.append(LockedProvider(
            address=address,
            version=str(attrs.get("version", "")),
            constraints=attrs.get("constraints"),
        ))
    return providers


def _skip_string(text: str, i: int) -> int:
    """Return the index just past the string literal starting at text[i]."""
    i += 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return i + 1
        i += 1
    return i


def _block_body(text: str, open_brace: int) -> int:
    """Return the index of the brace closing the block opened at open_brace."""
    depth = 0
    i = open_brace
    while i < len(text):
        ch = text[i]
        if ch == '"':
            i = _skip_string(text, i)
            continue
        if ch == "#" or text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end == -1 else end + 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise InternalInvariantError(f"unbalanced braces after offset {open_brace}")


def split_address(address: str) -> tuple[str, str, str]:
    parts = address.split(".")
    if len(parts) != 3 or not all(parts):
        raise InternalInvariantError(f"invalid block address: {address}")
    return parts[0], parts[1], parts[2]


def set_attribute(text: str, address: str, value: str) -> str:
    """Set a string attribute of a labelled block in HCL text.

    The attribute is replaced in place, or appended to the block if absent.

    Args:
        text: File content
        address: ``<block>.<label>.<attr>``
        value: New string value

    Returns:
        The updated text

    Raises:
        InternalInvariantError: If the addressed block is not in text
    """
    block_type, label, attr = split_address(address)
    header = re.compile(
        rf'^[ \t]*{re.escape(block_type)}[ \t]+"{re.escape(label)}"[ \t]*\{{',
        re.MULTILINE,
    )
    match = header.search(text)
    if match is None:
        raise InternalInvariantError(f"block {block_type} \"{label}\" not found")

    open_brace = match.end() - 1
    close_brace = _block_body(text, open_brace)
    body = text[open_brace + 1:close_brace]

    attribute = re.compile(
        rf'^([ \t]*{re.escape(attr)}[ \t]*=[ \t]*)"[^"\n]*"',
        re.MULTILINE,
    )
    for found in attribute.finditer(body):
        # Only attributes directly inside the block, not in nested blocks
        if _depth_at(body, found.start()) != 0:
            continue
        new_body = body[:found.start()] + f'{found.group(1)}"{value}"' + body[found.end():]
        return text[:open_brace + 1] + new_body + text[close_brace:]

    line = f'{_body_indent(body)}{attr} = "{value}"\n'
    line_start = text.rfind("\n", 0, close_brace) + 1
    if line_start > open_brace and text[line_start:close_brace].strip() == "":
        return text[:line_start] + line + text[line_start:]
    # Single-line block
    return text[:close_brace].rstrip(" \t") + "\n" + line + text[close_brace:]


def _depth_at(body: str, index: int) -> int:
    depth = 0
    i = 0
    while i < index:
        ch = body[i]
        if ch == '"':
            i = _skip_string(body, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        i += 1
    return depth


def _body_indent(body: str) -> str:
    for line in body.splitlines():
        if line.strip():
            return line[: len(line) - len(line.lstrip())]
    return "  "


def get_attribute(text: str, address: str) -> Optional[str]:
    """Return the current string value at address, or None."""
    block_type, label, attr = split_address(address)
    header = re.compile(
        rf'^[ \t]*{re.escape(block_type)}[ \t]+"{re.escape(label)}"[ \t]*\{{',
        re.MULTILINE,
    )
    match = header.search(text)
    if match is None:
        return None
    open_brace = match.end() - 1
    body = text[open_brace + 1:_block_body(text, open_brace)]
    for found in re.finditer(
        rf'^[ \t]*{re.escape(attr)}[ \t]*=[ \t]*"([^"\n]*)"', body, re.MULTILINE
    ):
        if _depth_at(body, found.start()) == 0:
            return found.group(1)
    return None
