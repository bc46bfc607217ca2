"""
Version resolution for dependency bumping.

resolve_bump() computes the bumped form of a declared version string from a
fully resolved latest version while keeping the declared precision and any
``x`` wildcards: ``1.12`` becomes ``1.13``, never ``1.13.2``.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from tfproj.errors import VersionParseError

WILDCARD = "x"

Component = Optional[Union[int, str]]

_STRICT = {
    (False, False): re.compile(r"^\d+(\.\d+(\.\d+)?)?$"),
    (True, False): re.compile(r"^\d+(\.\d+(\.(\d+|[xX]))?|\.[xX])?$"),
    (False, True): re.compile(r"^v?\d+(\.\d+(\.\d+)?)?$"),
    (True, True): re.compile(r"^v?\d+(\.\d+(\.(\d+|[xX]))?|\.[xX])?$"),
}


def is_semver(version: str, allow_x_last: bool = False, allow_v: bool = False) -> bool:
    """Check for a 1, 2 or 3 component numeric version.

    Args:
        version: Version string
        allow_x_last: Accept ``x``/``X`` as the last component
        allow_v: Accept a leading ``v``
    """
    return bool(_STRICT[(allow_x_last, allow_v)].match(version or ""))


def is_semver_allow_x_as_wildcard_in_last(version: str) -> bool:
    return is_semver(version, allow_x_last=True)


def is_semver_allow_v_as_first_character(version: str) -> bool:
    return is_semver(version, allow_v=True)


@dataclass(frozen=True)
class VersionTriple:
    """Parsed version; minor and patch may be absent or the wildcard."""
    major: int
    minor: Component = None
    patch: Component = None

    def __post_init__(self):
        if self.minor is None and self.patch is not None:
            raise VersionParseError(str(self), "patch given without minor")

    @property
    def precision(self) -> int:
        if self.minor is None:
            return 1
        if self.patch is None:
            return 2
        return 3

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.patch]
        return ".".join(str(p) for p in parts if p is not None)


def _component(value: str, version: str) -> Union[int, str]:
    if value in ("x", "X"):
        return WILDCARD
    if not value.isdigit():
        raise VersionParseError(version, f"'{value}' is not a number or wildcard")
    return int(value)


def parse_version(version: str) -> VersionTriple:
    """Parse ``MAJOR[.MINOR[.PATCH]]`` where MINOR/PATCH may be ``x``.

    Raises:
        VersionParseError: On three or more dots or non-numeric components
    """
    if version is None:
        raise VersionParseError("None", "empty version")
    text = version.strip()
    parts = text.split(".")
    if len(parts) > 3:
        raise VersionParseError(version, "too many components")
    if not parts[0].isdigit():
        raise VersionParseError(version, "major version must be a number")

    major = int(parts[0])
    minor = _component(parts[1], version) if len(parts) > 1 else None
    patch = _component(parts[2], version) if len(parts) > 2 else None
    return VersionTriple(major, minor, patch)


def _latest_component(value: Component) -> int:
    return 0 if value is None else value


def resolve_bump(declared: str, latest: str) -> str:
    """Bump declared towards latest at declared's precision.

    Never downgrades. Wildcard components stay wildcards.

    Args:
        declared: Declared version, e.g. ``1``, ``1.2``, ``1.2.x``, ``1.2.3``
        latest: Latest available version, e.g. ``1.3.7``

    Returns:
        The resolved version string

    Raises:
        VersionParseError: If either version cannot be parsed
    """
    current = parse_version(declared)
    newest = parse_version(latest)
    if WILDCARD in (newest.minor, newest.patch):
        raise VersionParseError(latest, "latest version cannot contain wildcards")

    latest_minor = _latest_component(newest.minor)
    latest_patch = _latest_component(newest.patch)

    if newest.major < current.major:
        return declared.strip()

    if newest.major > current.major:
        minor = current.minor if current.minor in (None, WILDCARD) else latest_minor
        patch = current.patch if current.patch in (None, WILDCARD) else latest_patch
        if minor == WILDCARD and patch is not None and patch != WILDCARD:
            patch = current.patch
        return str(VersionTriple(newest.major, minor, patch))

    # Same major
    if current.minor in (None, WILDCARD):
        return declared.strip()

    if latest_minor > current.minor:
        patch = current.patch if current.patch in (None, WILDCARD) else latest_patch
        return str(VersionTriple(current.major, latest_minor, patch))

    if latest_minor < current.minor:
        return declared.strip()

    # Same minor
    if current.patch in (None, WILDCARD) or latest_patch <= current.patch:
        return declared.strip()
    return str(VersionTriple(current.major, current.minor, latest_patch))


def resolve_prefixed_bump(declared: str, latest: str, prefix: str = "v") -> str:
    """resolve_bump for versions that may carry a leading ``v``.

    The result carries the prefix only if declared did.
    """
    declared = declared.strip()
    has_prefix = declared.startswith(prefix)
    bare_declared = declared[len(prefix):] if has_prefix else declared
    bare_latest = latest.strip()
    if bare_latest.startswith(prefix):
        bare_latest = bare_latest[len(prefix):]

    resolved = resolve_bump(bare_declared, bare_latest)
    return f"{prefix}{resolved}" if has_prefix else resolved
