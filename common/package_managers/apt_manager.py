# common/package_managers/apt_manager.py
# -*- coding: utf-8 -*-
from typing import Iterable

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
from setup.config import (
    APT_KEYRING_DIR,
    APT_KEYRING_PATH,
    APT_PREREQ_PACKAGES,
    APT_SOURCES_LIST_PATH,
)


@PackageManagerRegistry.register(
    PackageManagerKind.APT,
    metadata={
        "family": DistroFamily.DEBIAN,
        "probe_order": 0,
        "probe_command": None,
        "description": "Debian/Ubuntu/Raspbian apt-get",
    },
)
class AptManager(PackageManagerAdapter):
    """
    Apt adapter for the Debian family.

    The repository is written as a one-line sources list entry signed by the
    downloaded ASCII-armoured key. Both files are overwritten on every run.
    """

    search_source = "apt-cache madison"

    def architecture(self) -> str:
        return self.runner.run(["dpkg", "--print-architecture"]).stdout.strip()

    def repository_line(self, distribution: Distribution) -> str:
        """The sources list entry for this host, mirror and channel."""
        return (
            f"deb [arch={self.architecture()} signed-by={APT_KEYRING_PATH}] "
            f"{self.download_url}/linux/{distribution.id} "
            f"{distribution.version} {self.app_settings.channel.value}"
        )

    def update(self) -> None:
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        self.shell("apt-get -qq update >/dev/null")

    def configure_repository(self, distribution: Distribution) -> None:
        self.update()
        self.shell(
            "DEBIAN_FRONTEND=noninteractive apt-get -y -qq install "
            f"{' '.join(APT_PREREQ_PACKAGES)} >/dev/null"
        )
        self.shell(f"install -m 0755 -d {APT_KEYRING_DIR}")
        key_url = f"{self.download_url}/linux/{distribution.id}/gpg"
        self.logger.info(f"Adding GPG key from {key_url} to {APT_KEYRING_PATH}")
        self.shell(f'curl -fsSL "{key_url}" -o {APT_KEYRING_PATH}')
        self.shell(f"chmod a+r {APT_KEYRING_PATH}")

        repo_line = self.repository_line(distribution)
        self.logger.info(
            f"Writing repository '{repo_line}' to {APT_SOURCES_LIST_PATH}"
        )
        self.shell(f'echo "{repo_line}" > {APT_SOURCES_LIST_PATH}')

    def refresh_index(self) -> None:
        self.update()

    def version_pattern(
        self, requested_version: str, distribution: Distribution
    ) -> str:
        # Works for incomplete versions (17.12), but may not grab the newest
        # build in the test channel.
        return requested_version.replace("-ce-", "~ce~.*").replace("-", ".*")

    def search_version(self, package: str, pattern: str) -> VersionSearch:
        command = f"apt-cache madison {package} | grep '{pattern}' | head -1"
        output = self.query_index(f"apt-cache madison {package}")
        version = ""
        for line in output.splitlines():
            if not line_matches(pattern, line):
                continue
            fields = line.split()
            if len(fields) >= 3:
                version = fields[2]
            break
        return VersionSearch(
            package=package, pattern=pattern, command=command, version=version
        )

    def format_package(self, package: PackageSpec) -> str:
        if package.version:
            return f"{package.name}={package.version}"
        return package.name

    def install(self, packages: Iterable[PackageSpec]) -> None:
        package_args = " ".join(self.format_packages(packages))
        self.logger.info(f"Committing installation for: {package_args}")
        self.shell(
            f"DEBIAN_FRONTEND=noninteractive apt-get -y -qq install {package_args} >/dev/null"
        )
