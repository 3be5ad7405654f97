"""
Tests for chartsync.versions module.

Tests cover:
- Lenient version parsing
- Semver precedence and descending sort
- Range constraint checks against platform versions
"""

import pytest
from semver import Version

from chartsync.versions import (
    compare_versions,
    is_compatible_range,
    parse_constraint,
    parse_version,
    sort_descending,
)


class TestParseVersion:
    """Tests for parse_version."""

    def test_full_version(self):
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease is None

    def test_leading_v_and_build_metadata(self):
        v = parse_version("v1.19.4+k3s1")
        assert (v.major, v.minor, v.patch) == (1, 19, 4)
        assert v.build == "k3s1"

    def test_missing_minor_and_patch(self):
        assert parse_version("1.2") == Version(1, 2, 0)
        assert parse_version("7") == Version(7, 0, 0)

    def test_prerelease(self):
        v = parse_version("1.0.0-rc.1")
        assert v.prerelease == "rc.1"
        assert str(v) == "1.0.0-rc.1"

    @pytest.mark.parametrize("text", ["", "latest", "1.2.3.4", "1..2", "a.b.c"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_version(text)


class TestPrecedence:
    """Tests for version precedence."""

    def test_numeric_not_lexical(self):
        assert compare_versions("1.10.0", "1.9.0") > 0

    def test_release_outranks_prerelease(self):
        assert compare_versions("1.0.0", "1.0.0-rc.1") > 0

    def test_prerelease_identifiers(self):
        assert compare_versions("1.0.0-alpha", "1.0.0-alpha.1") < 0
        assert compare_versions("1.0.0-alpha.1", "1.0.0-alpha.beta") < 0
        assert compare_versions("1.0.0-beta.2", "1.0.0-beta.11") < 0

    def test_build_metadata_ignored(self):
        assert compare_versions("1.0.0+a", "1.0.0+b") == 0
        assert parse_version("1.0.0+a") == parse_version("1.0.0")

    def test_sort_descending(self):
        versions = ["2.0.0", "1.9.0", "1.10.0"]
        assert sort_descending(versions, lambda v: v) == ["2.0.0", "1.10.0", "1.9.0"]

    def test_sort_puts_unparseable_last_in_input_order(self):
        versions = ["latest", "1.0.0", "nightly", "2.0.0"]
        assert sort_descending(versions, lambda v: v) == ["2.0.0", "1.0.0", "latest", "nightly"]

    def test_sort_is_stable_for_equal_precedence(self):
        items = [("a", "1.0.0+one"), ("b", "1.0.0+two")]
        assert sort_descending(items, lambda i: i[1]) == items


class TestCompatibleRange:
    """Tests for is_compatible_range."""

    @pytest.mark.parametrize("constraint,version,expected", [
        (">=1.20.0", "1.21.0", True),
        (">=1.20.0", "1.19.4", False),
        (">=1.20.0", "v1.19.4+k3s1", False),
        (">=1.20.0-0", "1.25.0", True),
        (">=1.19 <1.27", "1.25.0", True),
        (">=1.19 <1.27", "1.27.0", False),
        (">=1.19, <1.27", "1.26.9", True),
        (">= 1.19", "1.20.0", True),
        ("<1.20.0 || >=1.25.0", "1.26.0", True),
        ("<1.20.0 || >=1.25.0", "1.22.0", False),
        ("1.x", "1.30.2", True),
        ("1.x", "2.0.0", False),
        ("*", "0.1.0", True),
        ("~1.2.3", "1.2.9", True),
        ("~1.2.3", "1.3.0", False),
        ("^1.2", "1.9.0", True),
        ("^1.2", "2.0.0", False),
        ("^0.2.3", "0.2.5", True),
        ("^0.2.3", "0.3.0", False),
        ("1.20 - 1.24", "1.24.0", True),
        ("1.20 - 1.24", "1.25.0", False),
        ("!=1.22.0", "1.22.0", False),
        ("=1.22.0", "1.22.0", True),
        (">99.0.0", "1.25.0", False),
    ])
    def test_ranges(self, constraint, version, expected):
        assert is_compatible_range(constraint, version) is expected

    def test_prerelease_only_matches_prerelease_comparators(self):
        assert is_compatible_range(">=1.20.0", "1.25.0-gke.100") is False
        assert is_compatible_range(">=1.20.0-0", "1.25.0-gke.100") is True

    def test_malformed_input_is_incompatible(self):
        assert is_compatible_range(">=banana", "1.25.0") is False
        assert is_compatible_range(">=1.20.0", "not-a-version") is False
        assert is_compatible_range("", "1.25.0") is False

    def test_parse_constraint_groups(self):
        groups = parse_constraint(">=1.19 <1.27 || 2.x")
        assert len(groups) == 2
        assert [c.op for c in groups[0]] == [">=", "<"]
        assert groups[1][0].minor_dirty is True
