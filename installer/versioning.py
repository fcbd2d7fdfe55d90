# installer/versioning.py
# -*- coding: utf-8 -*-
"""
Version comparison and feature gates.

Engine releases are numbered either YY.MM (CalVer, e.g. 20.10) or
Major.Minor (SemVer, e.g. 23.0). Only the first two dot-separated fields are
compared; patch levels and pre-release suffixes are ignored.
"""

from typing import Optional

from installer.models import PackageSet
from setup.config import (
    BUILDX_GATE,
    BUILDX_PLUGIN_PACKAGE,
    CLI_PACKAGE,
    COMPOSE_PLUGIN_PACKAGE,
    COMPOSE_ROOTLESS_GATE,
    CONTAINERD_PACKAGE,
    DEBIAN_CODENAMES,
    ENGINE_PACKAGE,
    ROOTLESS_EXTRAS_PACKAGE,
    SPLIT_CLI_GATE,
)


def _field_as_int(version: str, index: int) -> int:
    fields = version.split(".")
    if index >= len(fields):
        return 0
    value = fields[index]
    if index == 1 and value.startswith("0"):
        # "09" is September, not an octal literal
        value = value[1:]
    digits = ""
    for char in value:
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else 0


def compare(a: str, b: str) -> bool:
    """
    Return True when version ``a`` is newer than or equal to ``b``.

    >>> compare("20.10", "18.09")
    True
    >>> compare("18.06", "18.09")
    False
    >>> compare("23.0", "23")
    True
    """
    year_a, year_b = _field_as_int(a, 0), _field_as_int(b, 0)
    if year_a != year_b:
        return year_a > year_b
    return _field_as_int(a, 1) >= _field_as_int(b, 1)


def version_gte(requested: Optional[str], want: str) -> bool:
    """True when no version was requested (latest), else compare(requested, want)."""
    if not requested:
        return True
    return compare(requested, want)


def map_debian_numeric(major: str) -> str:
    """Map a Debian major release number to its codename; unknown values pass through."""
    return DEBIAN_CODENAMES.get(str(major), str(major))


def build_package_set(
    requested_version: Optional[str],
    engine_version: Optional[str] = None,
    cli_version: Optional[str] = None,
) -> PackageSet:
    """
    Build the install set, applying the version gates in order.

    The gates are evaluated against ``requested_version``; ``engine_version``
    and ``cli_version`` are the repository versions to pin, if any. The
    rootless-extras package shares the engine pin.
    """
    packages = PackageSet()
    packages.add(ENGINE_PACKAGE, engine_version)
    if version_gte(requested_version, SPLIT_CLI_GATE):
        # older releases shipped the cli and containerd inside docker-ce
        packages.add(CLI_PACKAGE, cli_version)
        packages.add(CONTAINERD_PACKAGE)
    if version_gte(requested_version, COMPOSE_ROOTLESS_GATE):
        packages.add(COMPOSE_PLUGIN_PACKAGE)
        packages.add(ROOTLESS_EXTRAS_PACKAGE, engine_version)
    if version_gte(requested_version, BUILDX_GATE):
        packages.add(BUILDX_PLUGIN_PACKAGE)
    return packages
