"""
Tests for version parsing and bump resolution.
"""

import pytest

from tfproj.core.versions import (
    VersionTriple,
    is_semver,
    is_semver_allow_v_as_first_character,
    is_semver_allow_x_as_wildcard_in_last,
    parse_version,
    resolve_bump,
    resolve_prefixed_bump,
)
from tfproj.errors import VersionParseError


class TestSemverChecks:
    """Tests for the semver predicates."""

    @pytest.mark.parametrize("version", ["1", "1.2", "1.2.3", "10.20.30"])
    def test_plain_versions_accepted(self, version):
        """Test one to three numeric components."""
        assert is_semver(version)

    @pytest.mark.parametrize("version", ["", "v1.2", "1.2.x", "1.2.3.4", "latest", "1..2"])
    def test_plain_rejects_extras(self, version):
        """Test that prefixes, wildcards and extra components are rejected."""
        assert not is_semver(version)

    def test_wildcard_only_in_last_position(self):
        """Test x is accepted only as the last component."""
        assert is_semver_allow_x_as_wildcard_in_last("1.2.x")
        assert is_semver_allow_x_as_wildcard_in_last("1.X")
        assert not is_semver_allow_x_as_wildcard_in_last("1.x.2")
        assert not is_semver_allow_x_as_wildcard_in_last("x")

    def test_leading_v(self):
        """Test the v-prefix variant."""
        assert is_semver_allow_v_as_first_character("v0.50.3")
        assert is_semver_allow_v_as_first_character("0.50.3")
        assert not is_semver_allow_v_as_first_character("vv0.50")


class TestParseVersion:
    """Tests for parse_version."""

    def test_precision(self):
        """Test precision follows the number of components."""
        assert parse_version("1").precision == 1
        assert parse_version("1.2").precision == 2
        assert parse_version("1.2.x").precision == 3

    def test_wildcard_component(self):
        """Test wildcards are kept as x."""
        assert parse_version("1.X") == VersionTriple(1, "x")

    def test_too_many_dots(self):
        """Test four components raise."""
        with pytest.raises(VersionParseError):
            parse_version("1.2.3.4")

    def test_non_numeric(self):
        """Test non-numeric components raise a ValueError subclass."""
        with pytest.raises(ValueError):
            parse_version("1.beta")


class TestResolveBump:
    """Tests for resolve_bump."""

    @pytest.mark.parametrize(
        "declared,latest,expected",
        [
            ("1.2", "1.3.7", "1.3"),
            ("1.2.x", "1.3.7", "1.3.x"),
            ("1", "2.0.1", "2"),
            ("1.2.3", "1.2.9", "1.2.9"),
            ("1.2.3", "1.4.0", "1.4.0"),
            ("1.2.3", "2.1.5", "2.1.5"),
            ("1.x", "2.4.0", "2.x"),
        ],
    )
    def test_bumps_keep_precision(self, declared, latest, expected):
        """Test the declared precision and wildcards are preserved."""
        assert resolve_bump(declared, latest) == expected

    @pytest.mark.parametrize(
        "declared,latest",
        [
            ("2.0.0", "1.9.9"),
            ("1.5", "1.4.2"),
            ("1.2.3", "1.2.3"),
            ("1.2.5", "1.2.3"),
        ],
    )
    def test_never_downgrades(self, declared, latest):
        """Test the declared value is kept when latest is not newer."""
        assert resolve_bump(declared, latest) == declared

    def test_latest_with_wildcard_rejected(self):
        """Test that latest must be fully resolved."""
        with pytest.raises(VersionParseError):
            resolve_bump("1.2", "1.x")


class TestResolvePrefixedBump:
    """Tests for resolve_prefixed_bump."""

    def test_prefix_kept(self):
        """Test a declared v prefix is carried over."""
        assert resolve_prefixed_bump("v0.50.0", "v0.53.0") == "v0.53.0"
        assert resolve_prefixed_bump("v0", "v1.0.0") == "v1"

    def test_no_prefix_when_declared_without(self):
        """Test no prefix is added when the declared value had none."""
        assert resolve_prefixed_bump("0.50.0", "v0.53.0") == "0.53.0"
