# installer/rootless.py
# -*- coding: utf-8 -*-
"""
Rootless engine installation for the current unprivileged user.

The flow is:

1. Environment checks that stop the run immediately (Linux only, not root
   unless forced, usable HOME and bin directory, no reachable rootful engine,
   usable runtime directory under systemd).
2. Capability checks that are collected, not short-circuited (uidmap,
   iptables, the ip_tables module, user-namespace sysctls).
3. The subuid/subgid records, each fatal on its own.
4. Download of the static engine and rootless-extras archives into a staging
   directory, extraction into the bin directory, then the setup tool.
"""

import logging
import os
import re
import shlex
import shutil
import signal
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Callable, Iterator, List, Optional, Tuple, Union

import requests

from common.command_utils import CommandRunner, log_installer
from installer.errors import (
    DownloadError,
    IdentityMappingMissing,
    MissingCapability,
    PrivilegeError,
    RootlessEnvironmentError,
    UnsupportedPlatform,
    VersionNotFound,
    render_requirements,
)
from installer.models import InstallOutcome, PreflightRequirement
from setup.config import (
    DOWNLOAD_TIMEOUT,
    MAX_USER_NAMESPACES_SYSCTL,
    ROOTFUL_SOCKET_PATH,
    ROOTLESS_DAEMON,
    ROOTLESS_DOCS_URL,
    ROOTLESS_SETUP_TOOL,
    STATIC_RELEASE_BASE_URL,
    SUBGID_PATH,
    SUBUID_PATH,
    UNPRIVILEGED_USERNS_SYSCTL,
)
from setup.config_models import SYMBOLS_DEFAULT, InstallerSettings

module_logger = logging.getLogger(__name__)

STATIC_ARCHIVE_PATTERN = re.compile(r"docker-(\d+)\.(\d+)\.(\d+)\.tgz")

UIDMAP_YUM_COMMANDS: Tuple[str, ...] = (
    "curl -o /etc/yum.repos.d/vbatts-shadow-utils-newxidmap-epel-7.repo "
    "https://copr.fedorainfracloud.org/coprs/vbatts/shadow-utils-newxidmap/repo/epel-7/"
    "vbatts-shadow-utils-newxidmap-epel-7.repo",
    "yum install -y shadow-utils46-newxidmap",
)
USERNS_CLONE_COMMANDS: Tuple[str, ...] = (
    "cat <<EOT > /etc/sysctl.d/50-rootless.conf",
    "kernel.unprivileged_userns_clone = 1",
    "EOT",
    "sysctl --system",
)
MAX_USER_NAMESPACES_COMMANDS: Tuple[str, ...] = (
    "cat <<EOT > /etc/sysctl.d/51-rootless.conf",
    "user.max_user_namespaces = 28633",
    "EOT",
    "sysctl --system",
)
IPTABLES_PATHS: Tuple[str, ...] = ("/sbin/iptables", "/usr/sbin/iptables")


class RootlessPreflightChecker:
    """
    Validates that this host and user can run a rootless engine.

    Args:
        runner: Runs host probes (``uname``, ``id``, ``lsmod``, ``systemctl``).
        app_settings: Settings of the current run.
        logger: Optional logger instance.
        root: Filesystem root for host files (/proc, /etc, the rootful socket).
    """

    def __init__(
        self,
        runner: CommandRunner,
        app_settings: InstallerSettings,
        logger: Optional[logging.Logger] = None,
        root: Union[str, Path] = "/",
    ):
        self.runner = runner
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.root = Path(root)

    def _host_path(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def _read(self, path: str) -> Optional[str]:
        try:
            return self._host_path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def systemd_available(self) -> bool:
        return self.runner.run(["systemctl", "--user", "daemon-reload"]).ok

    def check_environment(self, uid: str) -> None:
        """
        Checks that stop the run on the first failure.

        Raises:
            UnsupportedPlatform: Not running on Linux.
            PrivilegeError: Running as root without the force flag.
            RootlessEnvironmentError: HOME, bin directory, rootful socket or
                runtime directory make a rootless install impossible.
        """
        force = self.app_settings.force_rootless_install

        os_name = self.runner.run(["uname"]).stdout.strip()
        if os_name != "Linux":
            raise UnsupportedPlatform(
                f"Rootless Docker cannot be installed on {os_name or 'this system'}"
            )

        if uid == "0" and not force:
            raise PrivilegeError(
                "Refusing to install rootless Docker as the root user"
            )

        home = self.app_settings.home
        if not home or not Path(home).is_dir():
            raise RootlessEnvironmentError(
                f"Aborting because HOME directory {home or ''} does not exist"
            )

        bin_dir = self.app_settings.bin_dir
        if bin_dir.is_dir():
            if not os.access(bin_dir, os.W_OK):
                raise RootlessEnvironmentError(
                    f"Aborting because {bin_dir} is not writable"
                )
        elif not os.access(home, os.W_OK):
            raise RootlessEnvironmentError(
                f'Aborting because HOME ("{home}") is not writable'
            )

        socket_path = self._host_path(ROOTFUL_SOCKET_PATH)
        if (
            not force
            and socket_path.exists()
            and os.access(socket_path, os.W_OK)
        ):
            raise RootlessEnvironmentError(
                "Aborting because rootful Docker is running and accessible. "
                "Set FORCE_ROOTLESS_INSTALL=1 to ignore."
            )

        runtime_dir = self.app_settings.xdg_runtime_dir
        runtime_usable = bool(runtime_dir) and os.access(runtime_dir, os.W_OK)
        if not runtime_usable and self.systemd_available():
            raise RootlessEnvironmentError(
                "Aborting because systemd was detected but XDG_RUNTIME_DIR "
                f'("{runtime_dir or ""}") does not exist or is not writable\n'
                "Hint: this could happen if you changed users with 'su' or 'sudo'. "
                "To work around this:\n"
                "- try again by first running with root privileges "
                "'loginctl enable-linger <user>' where <user> is the unprivileged user "
                "and export XDG_RUNTIME_DIR to the value of RuntimePath as shown by "
                "'loginctl show-user <user>'\n"
                "- or simply log back in as the desired unprivileged user "
                "(ssh works for remote machines)"
            )

    def existing_installation(self) -> Optional[Path]:
        daemon = self.app_settings.bin_dir / ROOTLESS_DAEMON
        if daemon.is_file() and os.access(daemon, os.X_OK):
            return daemon
        return None

    def check_uidmap(self) -> Optional[PreflightRequirement]:
        if self.runner.exists("newuidmap"):
            return None
        if self.runner.exists("apt-get"):
            commands: Tuple[str, ...] = ("apt-get install -y uidmap",)
        elif self.runner.exists("dnf"):
            commands = ("dnf install -y shadow-utils",)
        elif self.runner.exists("yum"):
            commands = UIDMAP_YUM_COMMANDS
        else:
            return PreflightRequirement(
                capability="uidmap",
                hint="newuidmap binary not found. Please install with a package manager.",
            )
        return PreflightRequirement(capability="uidmap", commands=commands)

    def check_iptables(self) -> Optional[PreflightRequirement]:
        if self.app_settings.skip_iptables or self.runner.exists("iptables"):
            return None
        if any(self._host_path(path).is_file() for path in IPTABLES_PATHS):
            return None
        if self.runner.exists("apt-get"):
            commands: Tuple[str, ...] = ("apt-get install -y iptables",)
        elif self.runner.exists("dnf"):
            commands = ("dnf install -y iptables",)
        else:
            return PreflightRequirement(
                capability="iptables",
                hint="iptables binary not found. Please install with a package manager.",
            )
        return PreflightRequirement(capability="iptables", commands=commands)

    def check_ip_tables_module(self) -> Optional[PreflightRequirement]:
        if self.app_settings.skip_iptables:
            return None
        lsmod = self.runner.run(["lsmod"])
        if lsmod.ok and "ip_tables" in lsmod.stdout:
            return None
        kernel_release = self.runner.run(["uname", "-r"]).stdout.strip()
        builtin = self._read(f"/lib/modules/{kernel_release}/modules.builtin")
        if builtin and "ip_tables" in builtin:
            return None
        return PreflightRequirement(
            capability="ip_tables", commands=("modprobe ip_tables",)
        )

    def check_userns_clone(self) -> Optional[PreflightRequirement]:
        # Debian kernels gate unprivileged namespaces behind this sysctl
        value = self._read(UNPRIVILEGED_USERNS_SYSCTL)
        if value is None or value.strip() == "1":
            return None
        return PreflightRequirement(
            capability="kernel.unprivileged_userns_clone",
            commands=USERNS_CLONE_COMMANDS,
        )

    def check_max_user_namespaces(self) -> Optional[PreflightRequirement]:
        value = self._read(MAX_USER_NAMESPACES_SYSCTL)
        if value is None or value.strip() != "0":
            return None
        return PreflightRequirement(
            capability="user.max_user_namespaces",
            commands=MAX_USER_NAMESPACES_COMMANDS,
        )

    def collect(self) -> List[PreflightRequirement]:
        """Run every capability check and return all the gaps found."""
        checks: List[Callable[[], Optional[PreflightRequirement]]] = [
            self.check_uidmap,
            self.check_iptables,
            self.check_ip_tables_module,
            self.check_userns_clone,
            self.check_max_user_namespaces,
        ]
        requirements = []
        for check in checks:
            requirement = check()
            if requirement is not None:
                self.logger.debug(f"Missing capability: {requirement.capability}")
                requirements.append(requirement)
        return requirements

    def has_identity_record(self, table: str, user: str, uid: str) -> bool:
        content = self._read(table) or ""
        prefixes = (f"{user}:", f"{uid}:")
        return any(line.startswith(prefixes) for line in content.splitlines())

    def check_identity_mapping(
        self,
        user: str,
        uid: str,
        requirements: List[PreflightRequirement],
    ) -> None:
        """
        Raises:
            IdentityMappingMissing: For the first of subuid/subgid without a
                record for ``user``. Capability gaps already collected are
                logged first and attached to the error.
        """
        for table in (SUBUID_PATH, SUBGID_PATH):
            if self.has_identity_record(table, user, uid):
                continue
            if requirements:
                log_installer(
                    render_requirements(requirements),
                    "error",
                    self.logger,
                    self.app_settings,
                )
            raise IdentityMappingMissing(table, user, requirements)

    def run(self, user: str, uid: str) -> List[PreflightRequirement]:
        """Capability gaps for this host; identity mapping gaps raise."""
        requirements = self.collect()
        self.check_identity_mapping(user, uid, requirements)
        return requirements


class StaticReleaseClient:
    """Lists and downloads the static engine archives."""

    def __init__(
        self,
        base_url: str = STATIC_RELEASE_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: int = DOWNLOAD_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or module_logger

    def index_url(self, channel: str, arch: str) -> str:
        return f"{self.base_url}/{channel}/{arch}/"

    def archive_url(self, channel: str, arch: str, filename: str) -> str:
        return f"{self.index_url(channel, arch)}{filename}"

    def latest_version(self, channel: str, arch: str) -> str:
        """Newest ``docker-X.Y.Z.tgz`` listed for the channel and arch."""
        url = self.index_url(channel, arch)
        self.logger.info(f"Looking up the latest static release at {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DownloadError(url, str(e)) from e

        versions = {
            tuple(int(part) for part in match.groups()): ".".join(match.groups())
            for match in STATIC_ARCHIVE_PATTERN.finditer(response.text)
        }
        if not versions:
            raise VersionNotFound(
                "latest", f"docker-X.Y.Z.tgz in {url}", "static release"
            )
        return versions[max(versions)]

    def download(self, url: str, destination: Path) -> Path:
        self.logger.info(f"Downloading {url}")
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        except requests.exceptions.RequestException as e:
            raise DownloadError(url, str(e)) from e
        except IOError as e:
            raise DownloadError(url, f"could not write {destination}: {e}") from e
        self.logger.debug(f"Saved {url} to {destination}")
        return destination


@contextmanager
def staging_directory(prefix: str = "engine-rootless-") -> Iterator[Path]:
    """
    Temporary directory removed on exit, on Ctrl+C and on SIGTERM.
    """
    staging = Path(tempfile.mkdtemp(prefix=prefix))

    def _terminate(signum, frame):
        raise SystemExit(128 + signum)

    previous_handler = signal.signal(signal.SIGTERM, _terminate)
    try:
        yield staging
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
        shutil.rmtree(staging, ignore_errors=True)


def extract_stripped(
    archive: Path, destination: Path, logger: Optional[logging.Logger] = None
) -> List[str]:
    """
    Extract a .tgz into ``destination`` without its top-level directory,
    like ``tar zxf --strip-components=1``.

    Returns:
        The extracted member paths, relative to ``destination``.
    """
    logger_to_use = logger or module_logger
    extracted = []
    # extraction filters exist from 3.12 and in the 3.9.17/3.10.12/3.11.4 backports
    extract_options = {"filter": "tar"} if hasattr(tarfile, "tar_filter") else {}
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            parts = PurePosixPath(member.name).parts
            if len(parts) <= 1:
                continue
            relative = PurePosixPath(*parts[1:])
            if ".." in relative.parts:
                logger_to_use.warning(
                    f"Skipping unsafe archive member '{member.name}' in {archive.name}"
                )
                continue
            member.name = str(relative)
            if member.islnk():
                link_parts = PurePosixPath(member.linkname).parts
                member.linkname = str(PurePosixPath(*link_parts[1:]))
            tar.extract(member, destination, **extract_options)
            extracted.append(member.name)
    logger_to_use.debug(f"Extracted {len(extracted)} entries from {archive.name}")
    return extracted


class RootlessInstaller:
    """
    Installs the static engine binaries for the current user and hands over
    to the bundled setup tool.
    """

    ARCHIVES = ("docker-{version}.tgz", "docker-rootless-extras-{version}.tgz")

    def __init__(
        self,
        app_settings: InstallerSettings,
        runner: CommandRunner,
        logger: Optional[logging.Logger] = None,
        root: Union[str, Path] = "/",
        release_client: Optional[StaticReleaseClient] = None,
        checker: Optional[RootlessPreflightChecker] = None,
    ):
        self.app_settings = app_settings
        self.runner = runner
        self.logger = logger or module_logger
        self.release_client = release_client or StaticReleaseClient(
            logger=self.logger
        )
        self.checker = checker or RootlessPreflightChecker(
            runner, app_settings, self.logger, root
        )
        self.symbols = app_settings.symbols or SYMBOLS_DEFAULT

    def identity(self) -> Tuple[str, str]:
        user = self.runner.run(["id", "-un"]).stdout.strip()
        uid = self.runner.run(["id", "-u"]).stdout.strip()
        return user, uid

    def _already_installed(self, daemon: Path) -> InstallOutcome:
        messages = (
            f"# Existing rootless Docker detected at {daemon}",
            "# To reinstall or upgrade rootless Docker, run the following "
            "commands and then rerun the installation script:",
            "systemctl --user stop docker",
            f"rm -f {daemon}",
            "# Alternatively, install the docker-rootless-extras RPM/deb and "
            "run the following command:",
            f"# {ROOTLESS_SETUP_TOOL} install",
        )
        log_installer(
            "\n".join(messages), "info", self.logger, self.app_settings
        )
        return InstallOutcome(
            already_installed=True,
            dry_run=self.app_settings.dry_run,
            messages=messages,
        )

    def resolve_version(self, arch: str) -> str:
        if self.app_settings.version:
            return self.app_settings.version
        return self.release_client.latest_version(
            self.app_settings.channel.value, arch
        )

    def setup_tool_command(self, bin_dir: Path) -> List[str]:
        argv = [str(bin_dir / ROOTLESS_SETUP_TOOL), "install"]
        if self.app_settings.force_rootless_install:
            argv.append("--force")
        if self.app_settings.skip_iptables:
            argv.append("--skip-iptables")
        return argv

    def run_setup_tool(self, bin_dir: Path) -> None:
        argv = self.setup_tool_command(bin_dir)
        env = dict(os.environ)
        env["PATH"] = f"{bin_dir}{os.pathsep}{env.get('PATH', '')}"
        self.runner.run(argv, check=True, capture_output=False, env=env)

    def run(self) -> InstallOutcome:
        """
        Raises:
            InstallerError: For any environment, capability or identity gap,
                and when the release cannot be found or fetched.
        """
        user, uid = self.identity()
        self.checker.check_environment(uid)

        daemon = self.checker.existing_installation()
        if daemon is not None:
            return self._already_installed(daemon)

        requirements = self.checker.run(user, uid)
        if requirements:
            raise MissingCapability(requirements)

        arch = self.runner.run(["uname", "-m"]).stdout.strip()
        version = self.resolve_version(arch)
        channel = self.app_settings.channel.value
        bin_dir = self.app_settings.bin_dir
        log_installer(
            f"{self.symbols.get('package', '📦')} Installing rootless Docker {version} ({channel}, {arch}) into {bin_dir}",
            "info",
            self.logger,
            self.app_settings,
        )

        filenames = [name.format(version=version) for name in self.ARCHIVES]
        if self.app_settings.dry_run:
            for filename in filenames:
                url = self.release_client.archive_url(channel, arch, filename)
                log_installer(
                    f"+ download {url} and extract into {bin_dir}",
                    "info",
                    self.logger,
                    self.app_settings,
                )
            log_installer(
                f"+ {shlex.join(self.setup_tool_command(bin_dir))}",
                "info",
                self.logger,
                self.app_settings,
            )
            return InstallOutcome(dry_run=True, messages=(version,))

        bin_dir.mkdir(parents=True, exist_ok=True)
        with staging_directory() as staging:
            for filename in filenames:
                url = self.release_client.archive_url(channel, arch, filename)
                archive = self.release_client.download(url, staging / filename)
                extract_stripped(archive, bin_dir, self.logger)

        self.run_setup_tool(bin_dir)
        log_installer(
            f"{self.symbols.get('success', '✅')} Rootless Docker {version} installed. "
            f"See {ROOTLESS_DOCS_URL} for usage.",
            "success",
            self.logger,
            self.app_settings,
        )
        return InstallOutcome(messages=(version,))
