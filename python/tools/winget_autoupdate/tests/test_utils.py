#!/usr/bin/env python3
"""
Tests for version parsing and comparison.
"""

import pytest

from winget_autoupdate.models import VersionInfo
from winget_autoupdate.utils import compare_versions, parse_version


@pytest.mark.parametrize(
    "version, expected",
    [
        ("1.2.3", (1, 2, 3, 1)),
        ("v1.2.3", (1, 2, 3, 1)),
        ("1.2", (1, 2, 0, 1)),
        ("1.2.3-beta", (1, 2, 3, 0)),
        ("1.2.3+build.5", (1, 2, 3, 1)),
        ("2.0.1rc", (2, 0, 1, 1)),
    ],
)
def test_parse_version(version, expected):
    assert parse_version(version) == expected


@pytest.mark.parametrize(
    "current, latest, expected",
    [
        ("3.2.1", "v3.3.0", -1),
        ("3.2.1", "v3.2.1", 0),
        ("3.2.1", "v3.2.0", 1),
        ("1.2.0-beta", "1.2.0", -1),
        ("1.2.0-alpha", "1.2.0-beta", 0),
        ("1.10.0", "1.9.9", 1),
    ],
)
def test_compare_versions(current, latest, expected):
    assert compare_versions(current, latest) == expected


def test_update_available_only_when_strictly_newer():
    assert VersionInfo("3.2.1", "3.3.0").update_available
    assert not VersionInfo("3.2.1", "3.2.1").update_available
    assert not VersionInfo("3.2.1", "3.2.0").update_available
