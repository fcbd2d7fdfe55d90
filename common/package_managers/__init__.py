"""
Package-manager adapters.

Importing this package registers the apt and RPM-family adapters with the
PackageManagerRegistry.
"""

from common.package_managers.apt_manager import AptManager
from common.package_managers.base import PackageManagerAdapter, VersionSearch
from common.package_managers.registry import (
    PackageManagerRegistry,
    select_package_manager,
)
from common.package_managers.rpm_manager import (
    Dnf5Manager,
    DnfManager,
    RpmManager,
    YumManager,
)

__all__ = [
    "AptManager",
    "Dnf5Manager",
    "DnfManager",
    "PackageManagerAdapter",
    "PackageManagerRegistry",
    "RpmManager",
    "VersionSearch",
    "YumManager",
    "select_package_manager",
]
