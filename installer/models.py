# installer/models.py
# -*- coding: utf-8 -*-
"""
Immutable descriptors passed down the installer pipeline.

The orchestrator hands these to the detector, resolver and package-manager
adapters; none of them is modified after construction. PackageSet is the one
builder type and it only ever grows.
"""

from enum import Enum
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class DistroFamily(Enum):
    """Closed set of distribution families the installer dispatches on."""

    DEBIAN = "debian"
    RPM = "rpm"
    SLES = "sles"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_id(cls, distro_id: str) -> "DistroFamily":
        if distro_id in ("ubuntu", "debian", "raspbian"):
            return cls.DEBIAN
        if distro_id in ("centos", "fedora", "rhel"):
            return cls.RPM
        if distro_id == "sles":
            return cls.SLES
        return cls.UNSUPPORTED


class PackageManagerKind(str, Enum):
    APT = "apt"
    DNF5 = "dnf5"
    DNF = "dnf"
    YUM = "yum"


class Distribution(BaseModel):
    """Host distribution: lower-cased id plus codename or numeric release."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    version: str = ""

    @property
    def family(self) -> DistroFamily:
        return DistroFamily.from_id(self.id)

    def __str__(self) -> str:
        return f"{self.id} {self.version}".strip()


class PackageSpec(BaseModel):
    """A package name with an optional pinned repository version."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: Optional[str] = None


class PackageSet:
    """
    Ordered, add-only collection of packages.

    Adding a name that is already present is a no-op; packages are never
    removed once added.
    """

    def __init__(self) -> None:
        self._packages: List[PackageSpec] = []

    def add(self, name: str, version: Optional[str] = None) -> None:
        if name in self:
            return
        self._packages.append(PackageSpec(name=name, version=version or None))

    def names(self) -> List[str]:
        return [pkg.name for pkg in self._packages]

    def freeze(self) -> Tuple[PackageSpec, ...]:
        return tuple(self._packages)

    def __contains__(self, name: object) -> bool:
        return any(pkg.name == name for pkg in self._packages)

    def __iter__(self) -> Iterator[PackageSpec]:
        return iter(list(self._packages))

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"PackageSet({self.names()!r})"


class ResolvedPackageSet(BaseModel):
    """Outcome of version resolution: what will be handed to install()."""

    model_config = ConfigDict(frozen=True)

    requested_version: Optional[str] = None
    engine_version: Optional[str] = None
    cli_version: Optional[str] = None
    packages: Tuple[PackageSpec, ...] = ()

    def names(self) -> List[str]:
        return [pkg.name for pkg in self.packages]


class PreflightRequirement(BaseModel):
    """One missing host capability and the commands that remedy it."""

    model_config = ConfigDict(frozen=True)

    capability: str
    commands: Tuple[str, ...] = ()
    hint: Optional[str] = None


class InstallOutcome(BaseModel):
    """Summary of a completed run, used for the exit status and reporting."""

    model_config = ConfigDict(frozen=True)

    distribution: Optional[Distribution] = None
    package_manager: Optional[PackageManagerKind] = None
    packages: Tuple[PackageSpec, ...] = ()
    repository_only: bool = False
    already_installed: bool = False
    dry_run: bool = False
    messages: Tuple[str, ...] = Field(default_factory=tuple)
