# common/package_managers/base.py
# -*- coding: utf-8 -*-
"""
Base class for all package-manager adapters.

Every backend (apt, dnf5, dnf, yum) exposes the same contract to the
orchestrator: configure the engine repository, refresh the package index,
resolve a pinned version, and install a package set.
"""

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from common.command_utils import CommandRunner, ShellExecutor
from installer.models import Distribution, PackageManagerKind, PackageSpec
from setup.config_models import InstallerSettings


class VersionSearch(BaseModel):
    """Result of a pinned-version lookup and the search that produced it."""

    model_config = ConfigDict(frozen=True)

    package: str
    pattern: str
    command: str
    version: str = ""

    @property
    def found(self) -> bool:
        return bool(self.version)


def line_matches(pattern: str, line: str) -> bool:
    """grep-style match; an invalid expression is treated as literal text."""
    try:
        return re.search(pattern, line) is not None
    except re.error:
        return pattern in line


class PackageManagerAdapter(ABC):
    """
    Base class for package-manager adapters.

    Subclasses are registered with PackageManagerRegistry, which sets
    ``kind`` and the probing metadata.
    """

    kind: PackageManagerKind
    metadata: Dict[str, Any] = {
        "family": None,  # DistroFamily served by this adapter
        "probe_order": 0,  # Lower values are probed first within a family
        "probe_command": None,  # Binary that must exist; None always matches
        "description": "",
    }

    # Used in "not found amongst <search_source> results"
    search_source: str = ""

    def __init__(
        self,
        runner: CommandRunner,
        shell: ShellExecutor,
        app_settings: InstallerSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the adapter.

        Args:
            runner: Runs read-only host probes.
            shell: Runs mutating commands with elevated privileges.
            app_settings: The settings of the current run.
            logger: Optional logger instance.
        """
        self.runner = runner
        self.shell = shell
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def is_available(cls, runner: CommandRunner) -> bool:
        probe = cls.metadata.get("probe_command")
        return probe is None or runner.exists(probe)

    @property
    def download_url(self) -> str:
        return self.app_settings.effective_download_url

    @abstractmethod
    def configure_repository(self, distribution: Distribution) -> None:
        """Write (overwriting) the repository descriptor and signing key."""

    @abstractmethod
    def refresh_index(self) -> None:
        """Refresh the package index after the repository changed."""

    @abstractmethod
    def version_pattern(
        self, requested_version: str, distribution: Distribution
    ) -> str:
        """Search expression derived from the requested version."""

    @abstractmethod
    def search_version(self, package: str, pattern: str) -> VersionSearch:
        """Look up the newest index entry of ``package`` matching ``pattern``."""

    @abstractmethod
    def format_package(self, package: PackageSpec) -> str:
        """Render a package, with its pin, in this manager's syntax."""

    @abstractmethod
    def install(self, packages: Iterable[PackageSpec]) -> None:
        """Install the packages non-interactively."""

    def query_index(self, command: str) -> str:
        """
        Run a read-only index query and return its stdout.

        A non-zero exit (e.g. ``yum list`` with no matching package) yields
        no output, so the caller reports the version as not found.
        """
        try:
            return self.shell(command, capture_output=True).stdout
        except subprocess.CalledProcessError as e:
            self.logger.debug(
                f"Index query '{command}' exited with {e.returncode}; treating as no matches."
            )
            return ""

    def resolve_version(
        self,
        package: str,
        requested_version: str,
        distribution: Distribution,
    ) -> VersionSearch:
        pattern = self.version_pattern(requested_version, distribution)
        return self.search_version(package, pattern)

    def format_packages(self, packages: Iterable[PackageSpec]) -> List[str]:
        return [self.format_package(pkg) for pkg in packages]
