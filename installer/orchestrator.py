# installer/orchestrator.py
# -*- coding: utf-8 -*-
"""
Top-level install sequence.

privilege resolution -> distribution detection -> deprecation check ->
package-manager selection -> repository setup -> version resolution ->
package installation -> post-install guidance.

Each stage receives the immutable settings and descriptors produced by the
stages before it. Any InstallerError ends the run; nothing is retried and no
partial install is attempted.
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional, Union

from common.command_utils import (
    CommandRunner,
    ShellExecutor,
    log_installer,
    resolve_shell_prefix,
)
from common.package_managers import select_package_manager
from installer.distribution import DistributionDetector
from installer.errors import UnsupportedPlatform
from installer.models import Distribution, InstallOutcome
from installer.rootless import RootlessInstaller
from installer.version_resolver import VersionResolver
from installer.versioning import version_gte
from setup.config import (
    COMPOSE_ROOTLESS_GATE,
    DAEMON_ACCESS_DOCS_URL,
    DAEMON_ATTACK_SURFACE_URL,
    DOCKER_DESKTOP_URL,
    EXISTING_DOCKER_DELAY,
    ROOTFUL_SOCKET_PATH,
    ROOTLESS_DOCS_URL,
    ROOTLESS_SETUP_TOOL,
    SCRIPT_VERSION,
    WSL_DELAY,
)
from setup.config_models import SYMBOLS_DEFAULT, InstallerSettings

module_logger = logging.getLogger(__name__)

SEPARATOR = "=" * 80


class InstallOrchestrator:
    """
    Runs one installation.

    Args:
        app_settings: Frozen settings of this run.
        runner: Host command runner; a real CommandRunner by default.
        logger: Optional logger instance.
        root: Filesystem root for host files read during detection.
        pause: Observation delay before continuing after a warning.
    """

    def __init__(
        self,
        app_settings: InstallerSettings,
        runner: Optional[CommandRunner] = None,
        logger: Optional[logging.Logger] = None,
        root: Union[str, Path] = "/",
        pause: Callable[[float], None] = time.sleep,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.runner = runner or CommandRunner(app_settings, self.logger)
        self.root = Path(root)
        self.pause = pause
        self.symbols = app_settings.symbols or SYMBOLS_DEFAULT
        self.detector = DistributionDetector(
            self.runner, app_settings, self.logger, root=self.root, pause=pause
        )
        self.resolver = VersionResolver(app_settings, self.logger)
        self.shell: Optional[ShellExecutor] = None

    def _log(self, message: str, level: str = "info") -> None:
        log_installer(message, level, self.logger, self.app_settings)

    def warn_existing_docker(self) -> bool:
        if not self.runner.exists("docker"):
            return False
        self._log(
            f"{self.symbols.get('warning', '⚠️')} Warning: the \"docker\" command appears to already exist on this system.\n\n"
            "If you already have Docker installed, this script can cause trouble, which is\n"
            "why we're displaying this warning and provide the opportunity to cancel the\n"
            "installation.\n\n"
            "If you installed the current Docker package using this script and are using it\n"
            "again to update Docker, you can ignore this message, but be aware that the\n"
            "script resets any custom changes in the deb and rpm repo configuration\n"
            "files to match the parameters passed to the script.\n\n"
            "You may press Ctrl+C now to abort this script.",
            "warning",
        )
        self.pause(EXISTING_DOCKER_DELAY)
        return True

    def is_wsl(self) -> bool:
        kernel_release = self.runner.run(["uname", "-r"]).stdout
        return "microsoft" in kernel_release.lower()

    def warn_wsl(self) -> bool:
        if not self.is_wsl():
            return False
        self._log(
            f"{self.symbols.get('warning', '⚠️')} WSL DETECTED: We recommend using Docker Desktop for Windows.\n"
            f"Please get Docker Desktop from {DOCKER_DESKTOP_URL}\n\n"
            "You may press Ctrl+C now to abort this script.",
            "warning",
        )
        self.pause(WSL_DELAY)
        return True

    def reject_undetected(self, distribution: Distribution) -> None:
        """
        Raises:
            UnsupportedPlatform: Always; names macOS when ``uname -s`` says so.
        """
        kernel_name = self.runner.run(["uname", "-s"]).stdout.strip()
        if "darwin" in kernel_name.lower():
            raise UnsupportedPlatform(
                "Unsupported operating system 'macOS'\n"
                f"Please get Docker Desktop from {DOCKER_DESKTOP_URL}"
            )
        raise UnsupportedPlatform(
            f"Unsupported distribution '{distribution.id}'"
        )

    def post_install_guidance(self) -> None:
        if self.app_settings.dry_run:
            return

        socket_path = self.root / ROOTFUL_SOCKET_PATH.lstrip("/")
        if self.runner.exists("docker") and socket_path.exists():
            try:
                self.shell("docker version")
            except subprocess.CalledProcessError as e:
                self.logger.debug(f"'docker version' failed (rc {e.returncode}); ignoring.")

        lines = [SEPARATOR, ""]
        if version_gte(self.app_settings.version, COMPOSE_ROOTLESS_GATE):
            lines += [
                "To run Docker as a non-privileged user, consider setting up the",
                "Docker daemon in rootless mode for your user:",
                "",
                f"    {ROOTLESS_SETUP_TOOL} install",
                "",
                f"Visit {ROOTLESS_DOCS_URL} to learn about rootless mode.",
                "",
            ]
        lines += [
            "To run the Docker daemon as a fully privileged service, but granting non-root",
            f"users access, refer to {DAEMON_ACCESS_DOCS_URL}",
            "",
            "WARNING: Access to the remote API on a privileged Docker daemon is equivalent",
            "         to root access on the host. Refer to the following article for guidance",
            "         on how to further secure your system:",
            f"           {DAEMON_ATTACK_SURFACE_URL}",
            "",
            SEPARATOR,
        ]
        self._log("\n".join(lines))

    def run_rootless(self) -> InstallOutcome:
        installer = RootlessInstaller(
            self.app_settings, self.runner, self.logger, root=self.root
        )
        return installer.run()

    def run(self) -> InstallOutcome:
        """
        Execute the installation.

        Returns:
            InstallOutcome describing what was (or, in dry-run, would be) done.

        Raises:
            InstallerError: On any unsupported platform, privilege, version or
                capability failure.
            subprocess.CalledProcessError: If a mutating command fails.
        """
        self._log(
            f"{self.symbols.get('rocket', '🚀')} Executing engine install script, version: {SCRIPT_VERSION}"
        )
        if self.app_settings.rootless:
            return self.run_rootless()

        self.warn_existing_docker()

        prefix = resolve_shell_prefix(self.runner, self.logger)
        self.shell = ShellExecutor(
            self.runner, prefix, self.app_settings, self.logger
        )

        distribution = self.detector.detect()
        self.warn_wsl()
        if not distribution.id:
            self.reject_undetected(distribution)

        self.detector.flag_deprecation(distribution)

        manager = select_package_manager(
            distribution,
            self.runner,
            self.shell,
            self.app_settings,
            self.logger,
        )
        manager.configure_repository(distribution)
        manager.refresh_index()

        if self.app_settings.repo_only:
            self._log(
                f"{self.symbols.get('success', '✅')} Repository for {distribution} configured; skipping package installation.",
                "success",
            )
            return InstallOutcome(
                distribution=distribution,
                package_manager=manager.kind,
                repository_only=True,
                dry_run=self.app_settings.dry_run,
            )

        resolved = self.resolver.resolve(
            manager,
            distribution,
            self.app_settings.channel,
            self.app_settings.version,
        )
        manager.install(resolved.packages)
        self.post_install_guidance()

        self._log(
            f"{self.symbols.get('sparkles', '✨')} Package set: {' '.join(manager.format_packages(resolved.packages))}",
            "success",
        )
        return InstallOutcome(
            distribution=distribution,
            package_manager=manager.kind,
            packages=resolved.packages,
            dry_run=self.app_settings.dry_run,
        )
