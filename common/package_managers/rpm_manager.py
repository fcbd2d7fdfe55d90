# common/package_managers/rpm_manager.py
# -*- coding: utf-8 -*-
"""
Adapters for the RPM family (CentOS, Fedora, RHEL).

Three generations are supported and probed in order: dnf5, dnf, then yum as
the fallback. They differ in how the repository is added and toggled; version
search and installation go through ``dnf`` whenever it exists, else ``yum``.
"""

from typing import Iterable, List

from common.package_managers.base import (
    PackageManagerAdapter,
    VersionSearch,
    line_matches,
)
from common.package_managers.registry import PackageManagerRegistry
from installer.models import (
    Distribution,
    DistroFamily,
    PackageManagerKind,
    PackageSpec,
)
from setup.config import STALE_REPO_FILES
from setup.config_models import Channel


class RpmManager(PackageManagerAdapter):
    """Behaviour shared by the dnf5, dnf and yum adapters."""

    makecache_command: str = "dnf makecache"

    @property
    def package_tool(self) -> str:
        return "dnf" if self.runner.exists("dnf") else "yum"

    @property
    def install_flags(self) -> str:
        return "-y -q --best" if self.package_tool == "dnf" else "-y -q"

    @property
    def search_source(self) -> str:  # type: ignore[override]
        return f"{self.package_tool} list"

    @property
    def non_stable_channel(self) -> bool:
        return self.app_settings.channel is not Channel.STABLE

    def repo_file_url(self, distribution: Distribution) -> str:
        return (
            f"{self.download_url}/linux/{distribution.id}/"
            f"{self.app_settings.repo_file}"
        )

    def remove_stale_repo_files(self) -> None:
        self.shell(f"rm -f {' '.join(STALE_REPO_FILES)}")

    def refresh_index(self) -> None:
        self.logger.info(f"Rebuilding metadata cache via '{self.makecache_command}'...")
        self.shell(self.makecache_command)

    def version_pattern(
        self, requested_version: str, distribution: Distribution
    ) -> str:
        # The dist tag keeps el* and fc* builds of the same version apart.
        if distribution.id == "fedora":
            suffix = f"fc{distribution.version}"
        else:
            suffix = "el"
        pattern = requested_version.replace("-ce-", r"\.ce.*").replace("-", ".*")
        return f"{pattern}.*{suffix}"

    def search_version(self, package: str, pattern: str) -> VersionSearch:
        list_command = f"{self.package_tool} list --showduplicates {package}"
        command = f"{list_command} | grep '{pattern}' | tail -1"
        output = self.query_index(list_command)
        version = ""
        for line in output.splitlines():
            if not line_matches(pattern, line):
                continue
            fields = line.split()
            if len(fields) >= 2:
                version = fields[1]
        # Drop the epoch
        version = version.split(":", 1)[-1]
        return VersionSearch(
            package=package, pattern=pattern, command=command, version=version
        )

    def format_package(self, package: PackageSpec) -> str:
        if package.version:
            return f"{package.name}-{package.version}"
        return package.name

    def install(self, packages: Iterable[PackageSpec]) -> None:
        package_args = " ".join(self.format_packages(packages))
        self.logger.info(f"Committing installation for: {package_args}")
        self.shell(f"{self.package_tool} {self.install_flags} install {package_args}")


@PackageManagerRegistry.register(
    PackageManagerKind.DNF5,
    metadata={
        "family": DistroFamily.RPM,
        "probe_order": 0,
        "probe_command": "dnf5",
        "description": "dnf5 with the config-manager plugin",
    },
)
class Dnf5Manager(RpmManager):
    def configure_repository(self, distribution: Distribution) -> None:
        self.shell(
            "dnf -y -q --setopt=install_weak_deps=False install dnf-plugins-core"
        )
        self.shell(
            "dnf5 config-manager addrepo --overwrite "
            f"--save-filename={self.app_settings.repo_file} "
            f"--from-repofile='{self.repo_file_url(distribution)}'"
        )
        for command in self.channel_toggle_commands():
            self.shell(command)

    def channel_toggle_commands(self) -> List[str]:
        if not self.non_stable_channel:
            return []
        channel = self.app_settings.channel.value
        return [
            'dnf5 config-manager setopt "docker-ce-*.enabled=0"',
            f'dnf5 config-manager setopt "docker-ce-{channel}.enabled=1"',
        ]


@PackageManagerRegistry.register(
    PackageManagerKind.DNF,
    metadata={
        "family": DistroFamily.RPM,
        "probe_order": 1,
        "probe_command": "dnf",
        "description": "dnf with dnf-plugins-core",
    },
)
class DnfManager(RpmManager):
    def configure_repository(self, distribution: Distribution) -> None:
        self.shell(
            "dnf -y -q --setopt=install_weak_deps=False install dnf-plugins-core"
        )
        self.remove_stale_repo_files()
        self.shell(f"dnf config-manager --add-repo {self.repo_file_url(distribution)}")
        for command in self.channel_toggle_commands():
            self.shell(command)

    def channel_toggle_commands(self) -> List[str]:
        if not self.non_stable_channel:
            return []
        channel = self.app_settings.channel.value
        return [
            'dnf config-manager --set-disabled "docker-ce-*"',
            f'dnf config-manager --set-enabled "docker-ce-{channel}"',
        ]


@PackageManagerRegistry.register(
    PackageManagerKind.YUM,
    metadata={
        "family": DistroFamily.RPM,
        "probe_order": 2,
        "probe_command": None,
        "description": "yum with yum-utils",
    },
)
class YumManager(RpmManager):
    makecache_command = "yum makecache"

    def configure_repository(self, distribution: Distribution) -> None:
        self.shell("yum -y -q install yum-utils")
        self.remove_stale_repo_files()
        self.shell(f"yum-config-manager --add-repo {self.repo_file_url(distribution)}")
        for command in self.channel_toggle_commands():
            self.shell(command)

    def channel_toggle_commands(self) -> List[str]:
        if not self.non_stable_channel:
            return []
        channel = self.app_settings.channel.value
        return [
            'yum-config-manager --disable "docker-ce-*"',
            f'yum-config-manager --enable "docker-ce-{channel}"',
        ]
