# installer/version_resolver.py
# -*- coding: utf-8 -*-
"""
Resolves the requested engine version against the package index.

A pinned version is looked up once per run; the resulting package set is
cached on the resolver and returned unchanged on later calls.
"""

import logging
from typing import Optional

from common.command_utils import log_installer
from common.package_managers.base import PackageManagerAdapter
from installer.errors import VersionNotFound
from installer.models import Distribution, ResolvedPackageSet
from installer.versioning import build_package_set, version_gte
from setup.config import CLI_PACKAGE, ENGINE_PACKAGE, SPLIT_CLI_GATE
from setup.config_models import SYMBOLS_DEFAULT, Channel, InstallerSettings

module_logger = logging.getLogger(__name__)


class VersionResolver:
    """Turns an optional version pin into the concrete package set to install."""

    def __init__(
        self,
        app_settings: InstallerSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self._resolved: Optional[ResolvedPackageSet] = None

    @property
    def resolved(self) -> Optional[ResolvedPackageSet]:
        return self._resolved

    def resolve(
        self,
        manager: PackageManagerAdapter,
        distribution: Distribution,
        channel: Channel,
        requested_version: Optional[str],
    ) -> ResolvedPackageSet:
        """
        Resolve the install set for ``requested_version`` (None = latest).

        Raises:
            VersionNotFound: If the pinned engine version is not in the index.
        """
        if self._resolved is not None:
            self.logger.debug("Version already resolved for this run; reusing it.")
            return self._resolved

        symbols = self.app_settings.symbols or SYMBOLS_DEFAULT
        engine_version: Optional[str] = None
        cli_version: Optional[str] = None

        if requested_version and self.app_settings.dry_run:
            log_installer(
                f"{symbols.get('warning', '⚠️')} VERSION pinning is not supported in DRY_RUN",
                "warning",
                self.logger,
                self.app_settings,
            )
        elif requested_version:
            log_installer(
                f"{symbols.get('info', 'ℹ️')} Searching {channel.value} repository for VERSION '{requested_version}'",
                "info",
                self.logger,
                self.app_settings,
            )
            engine_search = manager.resolve_version(
                ENGINE_PACKAGE, requested_version, distribution
            )
            log_installer(
                f"{symbols.get('info', 'ℹ️')} {engine_search.command}",
                "info",
                self.logger,
                self.app_settings,
            )
            if not engine_search.found:
                raise VersionNotFound(
                    requested_version,
                    engine_search.command,
                    manager.search_source,
                )
            engine_version = engine_search.version

            if version_gte(requested_version, SPLIT_CLI_GATE):
                cli_search = manager.search_version(
                    CLI_PACKAGE, engine_search.pattern
                )
                log_installer(
                    f"{symbols.get('info', 'ℹ️')} {cli_search.command}",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                cli_version = cli_search.version or None

        packages = build_package_set(
            requested_version, engine_version, cli_version
        )
        self._resolved = ResolvedPackageSet(
            requested_version=requested_version,
            engine_version=engine_version,
            cli_version=cli_version,
            packages=packages.freeze(),
        )
        self.logger.debug(f"Resolved package set: {packages!r}")
        return self._resolved
