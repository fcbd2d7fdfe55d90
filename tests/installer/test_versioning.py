# tests/installer/test_versioning.py
import pytest

from installer.versioning import (
    build_package_set,
    compare,
    map_debian_numeric,
    version_gte,
)

VERSIONS = ["17.06", "18.09", "19.03", "20.10", "21.10", "23.0", "24.0", "27.5"]


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("20.10", "18.09", True),
        ("18.06", "18.09", False),
        ("18.09", "18.09", True),
        ("23.0", "20.10", True),
        ("19.03.15", "19.03", True),
        ("23", "23.0", True),
        ("20.10.0-rc1", "20.10", True),
        ("18.9", "18.09", True),
    ],
)
def test_compare(a, b, expected):
    assert compare(a, b) is expected


def test_compare_is_reflexive():
    for version in VERSIONS:
        assert compare(version, version)


def test_compare_is_antisymmetric():
    for a in VERSIONS:
        for b in VERSIONS:
            if a == b:
                continue
            assert compare(a, b) != compare(b, a)


def test_month_with_leading_zero_is_not_octal():
    assert compare("18.09", "18.08")
    assert not compare("18.08", "18.09")


@pytest.mark.parametrize("want", ["18.09", "20.10", "23.0", "99.99"])
def test_version_gte_without_request_is_always_true(want):
    assert version_gte(None, want)
    assert version_gte("", want)


def test_version_gte_with_request():
    assert version_gte("20.10", "18.09")
    assert not version_gte("17.06", "18.09")


@pytest.mark.parametrize(
    "major,codename",
    [
        ("12", "bookworm"),
        ("11", "bullseye"),
        ("10", "buster"),
        ("9", "stretch"),
        ("8", "jessie"),
        (12, "bookworm"),
        ("13", "13"),
        ("", ""),
    ],
)
def test_map_debian_numeric(major, codename):
    assert map_debian_numeric(major) == codename


@pytest.mark.parametrize(
    "requested,expected",
    [
        ("17.06", ["docker-ce"]),
        ("19.03", ["docker-ce", "docker-ce-cli", "containerd.io"]),
        (
            "21.10",
            [
                "docker-ce",
                "docker-ce-cli",
                "containerd.io",
                "docker-compose-plugin",
                "docker-ce-rootless-extras",
            ],
        ),
        (
            "24.0",
            [
                "docker-ce",
                "docker-ce-cli",
                "containerd.io",
                "docker-compose-plugin",
                "docker-ce-rootless-extras",
                "docker-buildx-plugin",
            ],
        ),
        (
            None,
            [
                "docker-ce",
                "docker-ce-cli",
                "containerd.io",
                "docker-compose-plugin",
                "docker-ce-rootless-extras",
                "docker-buildx-plugin",
            ],
        ),
    ],
)
def test_build_package_set_gates(requested, expected):
    assert build_package_set(requested).names() == expected


def test_build_package_set_pins_engine_cli_and_rootless_extras():
    packages = {
        pkg.name: pkg.version
        for pkg in build_package_set(
            "24.0", "5:24.0.7-1~ubuntu.22.04~jammy", "5:24.0.7-1~ubuntu.22.04~jammy"
        )
    }
    assert packages["docker-ce"] == "5:24.0.7-1~ubuntu.22.04~jammy"
    assert packages["docker-ce-cli"] == "5:24.0.7-1~ubuntu.22.04~jammy"
    assert packages["docker-ce-rootless-extras"] == "5:24.0.7-1~ubuntu.22.04~jammy"
    assert packages["containerd.io"] is None
    assert packages["docker-buildx-plugin"] is None


def test_package_set_is_add_only():
    packages = build_package_set("19.03")
    packages.add("docker-ce", "other")
    assert packages.names() == ["docker-ce", "docker-ce-cli", "containerd.io"]
    assert [pkg.version for pkg in packages] == [None, None, None]
    assert len(packages) == 3
    assert "containerd.io" in packages
