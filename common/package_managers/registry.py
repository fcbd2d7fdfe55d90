# common/package_managers/registry.py
# -*- coding: utf-8 -*-
"""
Registry for package-manager adapters.

Adapters register themselves with a decorator. Selection probes the host for
the adapters serving the distribution's family, in registration priority
order, rather than trusting the distribution name alone.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from common.command_utils import CommandRunner, ShellExecutor
from common.package_managers.base import PackageManagerAdapter
from installer.errors import UnsupportedPlatform
from installer.models import Distribution, DistroFamily, PackageManagerKind
from setup.config_models import InstallerSettings

module_logger = logging.getLogger(__name__)


class PackageManagerRegistry:
    """
    Registry for package-manager adapters.

    This class provides a decorator for adapters to register themselves and
    methods for looking them up by kind or family.
    """

    _registry: Dict[PackageManagerKind, Type[PackageManagerAdapter]] = {}

    @classmethod
    def register(
        cls,
        kind: PackageManagerKind,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """
        Decorator for registering adapter classes.

        Args:
            kind: The package-manager kind implemented by the class.
            metadata: Family, probe order, probe command and description.

        Returns:
            A decorator function that registers the adapter class.
        """

        def decorator(
            adapter_class: Type[PackageManagerAdapter],
        ) -> Type[PackageManagerAdapter]:
            if kind in cls._registry:
                raise ValueError(
                    f"Package manager '{kind.value}' already registered"
                )
            adapter_class.kind = kind
            if metadata:
                adapter_class.metadata = metadata
            cls._registry[kind] = adapter_class
            return adapter_class

        return decorator

    @classmethod
    def get_adapter(cls, kind: PackageManagerKind) -> Type[PackageManagerAdapter]:
        """
        Get an adapter class by kind.

        Raises:
            KeyError: If no adapter is registered for the kind.
        """
        if kind not in cls._registry:
            raise KeyError(f"No package manager registered for '{kind.value}'")
        return cls._registry[kind]

    @classmethod
    def get_all_adapters(cls) -> Dict[PackageManagerKind, Type[PackageManagerAdapter]]:
        return cls._registry.copy()

    @classmethod
    def candidates(
        cls, family: DistroFamily
    ) -> List[Type[PackageManagerAdapter]]:
        """Adapters serving ``family``, in probing order."""
        matching = [
            adapter
            for adapter in cls._registry.values()
            if adapter.metadata.get("family") is family
        ]
        return sorted(
            matching, key=lambda adapter: adapter.metadata.get("probe_order", 0)
        )


def select_package_manager(
    distribution: Distribution,
    runner: CommandRunner,
    shell: ShellExecutor,
    app_settings: InstallerSettings,
    logger: Optional[logging.Logger] = None,
) -> PackageManagerAdapter:
    """
    Pick the adapter for this host.

    Raises:
        UnsupportedPlatform: For SLES, unknown distributions, s390x on the RPM
            family, or when no adapter of the family is available.
    """
    logger_to_use = logger or module_logger
    family = distribution.family

    if family is DistroFamily.SLES:
        raise UnsupportedPlatform(
            "Effective v27.5, please consult SLES distro statement for s390x support."
        )
    if family is DistroFamily.UNSUPPORTED:
        raise UnsupportedPlatform(
            f"Unsupported distribution '{distribution.id}'"
        )
    if family is DistroFamily.RPM:
        machine = runner.run(["uname", "-m"]).stdout.strip()
        if machine == "s390x":
            raise UnsupportedPlatform(
                "Effective v27.5, please consult RHEL distro statement for s390x support."
            )

    for adapter_class in PackageManagerRegistry.candidates(family):
        if adapter_class.is_available(runner):
            logger_to_use.info(
                f"Using package manager '{adapter_class.kind.value}' for {distribution}."
            )
            return adapter_class(runner, shell, app_settings, logger_to_use)

    raise UnsupportedPlatform(
        f"No supported package manager found for distribution '{distribution.id}'"
    )
