# installer/distribution.py
# -*- coding: utf-8 -*-
"""
Host distribution detection.

Reads the OS release descriptor and release-info commands to produce a
Distribution{id, version}. Every lookup degrades to an empty field when a
file is unreadable or a command is missing; only the orchestrator decides
that an empty id is fatal.
"""

import logging
import shlex
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from common.command_utils import CommandRunner, log_installer
from installer.models import Distribution
from installer.versioning import map_debian_numeric
from setup.config import (
    DEPRECATED_RELEASES,
    DEPRECATION_DELAY,
    FEDORA_MIN_SUPPORTED,
)
from setup.config_models import SYMBOLS_DEFAULT, InstallerSettings

module_logger = logging.getLogger(__name__)

OS_RELEASE_PATH = "/etc/os-release"
LSB_RELEASE_PATH = "/etc/lsb-release"
DEBIAN_VERSION_PATH = "/etc/debian_version"


def parse_env_file(content: str) -> Dict[str, str]:
    """Parse shell-style KEY=VALUE lines such as /etc/os-release."""
    values: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        try:
            parts = shlex.split(raw_value)
            value = " ".join(parts)
        except ValueError:
            value = raw_value.strip().strip("\"'")
        values[key.strip()] = value
    return values


def _second_tab_field(output: str) -> str:
    """First line of ``output`` as ``cut -f2`` would print it."""
    lines = output.splitlines()
    if not lines:
        return ""
    fields = lines[0].split("\t")
    return (fields[1] if len(fields) > 1 else fields[0]).strip()


def is_deprecated(distribution: Distribution) -> bool:
    """True when the distribution release is in the end-of-life table."""
    if (distribution.id, distribution.version) in DEPRECATED_RELEASES:
        return True
    if distribution.id == "fedora" and distribution.version.isdigit():
        return int(distribution.version) < FEDORA_MIN_SUPPORTED
    return False


class DistributionDetector:
    """
    Detects the host distribution.

    Args:
        runner: Command runner used for ``lsb_release`` probes.
        app_settings: Settings of the current run (logging symbols).
        logger: Optional logger instance.
        root: Filesystem root the host files are read from.
        pause: Called with the observation delay after a deprecation warning.
    """

    def __init__(
        self,
        runner: CommandRunner,
        app_settings: Optional[InstallerSettings] = None,
        logger: Optional[logging.Logger] = None,
        root: Union[str, Path] = "/",
        pause: Callable[[float], None] = time.sleep,
    ):
        self.runner = runner
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.root = Path(root)
        self.pause = pause
        self.symbols = (
            app_settings.symbols
            if app_settings and app_settings.symbols
            else SYMBOLS_DEFAULT
        )

    def _read(self, path: str) -> Optional[str]:
        host_path = self.root / path.lstrip("/")
        try:
            return host_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.logger.debug(f"Could not read {host_path}: {e}")
            return None

    def _os_release_field(self, key: str) -> str:
        content = self._read(OS_RELEASE_PATH)
        if content is None:
            return ""
        return parse_env_file(content).get(key, "")

    def get_distribution(self) -> str:
        """Lower-cased ID from the OS release descriptor, or ''."""
        return self._os_release_field("ID").lower()

    def debian_version(self) -> str:
        """Codename derived from /etc/debian_version, or ''."""
        content = self._read(DEBIAN_VERSION_PATH)
        if not content:
            return ""
        first_line = content.splitlines()[0] if content.splitlines() else ""
        major = first_line.split("/", 1)[0].split(".", 1)[0].strip()
        return map_debian_numeric(major)

    def ubuntu_codename(self) -> str:
        codename = ""
        if self.runner.exists("lsb_release"):
            result = self.runner.run(["lsb_release", "--codename"])
            if result.ok:
                codename = _second_tab_field(result.stdout)
        if not codename:
            content = self._read(LSB_RELEASE_PATH)
            if content:
                codename = parse_env_file(content).get("DISTRIB_CODENAME", "")
        return codename

    def detect_version(self, distro_id: str) -> str:
        """Per-family release lookup; '' when nothing answers."""
        if distro_id == "ubuntu":
            return self.ubuntu_codename()
        if distro_id in ("debian", "raspbian"):
            return self.debian_version()
        if distro_id in ("centos", "rhel"):
            return self._os_release_field("VERSION_ID")

        version = ""
        if self.runner.exists("lsb_release"):
            result = self.runner.run(["lsb_release", "--release"])
            if result.ok:
                version = _second_tab_field(result.stdout)
        return version or self._os_release_field("VERSION_ID")

    def reconcile_forked(self, distribution: Distribution) -> Distribution:
        """
        Trust the upstream identity of forked distributions.

        Distributions derived from Debian or Ubuntu often ship an
        ``lsb_release`` that understands ``-u`` and reports the upstream id
        and codename. Without it, a readable /etc/debian_version marks the host
        as Debian (or Raspbian for OSMC).
        """
        if not self.runner.exists("lsb_release"):
            return distribution

        result = self.runner.run(["lsb_release", "-a", "-u"])
        if result.ok:
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} You're using '{distribution.id}' version '{distribution.version}'.",
                "info",
                self.logger,
                self.app_settings,
            )
            upstream_id = ""
            upstream_codename = ""
            for line in result.output.lower().splitlines():
                key, _, value = line.partition(":")
                value = "".join(value.split())
                if "id" in key:
                    upstream_id += value
                if "codename" in key:
                    upstream_codename += value
            reconciled = Distribution(
                id=upstream_id, version=upstream_codename
            )
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} Upstream release is '{reconciled.id}' version '{reconciled.version}'.",
                "info",
                self.logger,
                self.app_settings,
            )
            return reconciled

        if distribution.id in ("ubuntu", "raspbian"):
            return distribution
        if self._read(DEBIAN_VERSION_PATH) is None:
            return distribution

        coerced_id = "raspbian" if distribution.id == "osmc" else "debian"
        self.logger.debug(
            f"Treating '{distribution.id}' as '{coerced_id}' based on {DEBIAN_VERSION_PATH}."
        )
        return Distribution(id=coerced_id, version=self.debian_version())

    def detect(self) -> Distribution:
        """Primary read, per-family version lookup, then fork reconciliation."""
        distro_id = self.get_distribution()
        distribution = Distribution(
            id=distro_id,
            version=self.detect_version(distro_id) if distro_id else "",
        )
        self.logger.debug(f"Primary detection: {distribution!r}")
        return self.reconcile_forked(distribution)

    def flag_deprecation(self, distribution: Distribution) -> bool:
        """
        Warn about end-of-life distributions and give the operator a window to
        abort. Never stops the run.

        Returns:
            True if the distribution is deprecated.
        """
        if not is_deprecated(distribution):
            return False

        warning = self.symbols.get("warning", "⚠️")
        log_installer(
            f"{warning} DEPRECATION WARNING\n"
            f"    This Linux distribution ({distribution.id} {distribution.version}) reached end-of-life "
            "and is no longer supported by this script.\n"
            "    No updates or security fixes will be released for this distribution, and users are "
            f"recommended to upgrade to a currently maintained version of {distribution.id}.\n\n"
            "Press Ctrl+C now to abort this script, or wait for the installation to continue.",
            "warning",
            self.logger,
            self.app_settings,
        )
        self.pause(DEPRECATION_DELAY)
        return True
