# installer/errors.py
# -*- coding: utf-8 -*-
"""
Structured error kinds raised by the installer.

Every error carries the message shown to the operator and the process exit
code. Detection-stage lookups never raise these; they return empty fields
that the orchestrator judges later.
"""

from typing import Iterable, Optional, Tuple

from installer.models import PreflightRequirement

MISSING_REQUIREMENTS_HEADER = (
    "# Missing system requirements. Please run following commands to\n"
    "# install the requirements and run this installer again.\n"
    "# Alternatively iptables checks can be disabled with SKIP_IPTABLES=1"
)


def render_requirements(requirements: Iterable[PreflightRequirement]) -> str:
    """Render capability gaps as one copy-pasteable remediation block."""
    lines = []
    for requirement in requirements:
        if requirement.hint and not requirement.commands:
            lines.append(f"# {requirement.hint}")
        lines.extend(requirement.commands)
    body = "\n".join(lines)
    return (
        f"{MISSING_REQUIREMENTS_HEADER}\n\n"
        f"cat <<EOF | sudo sh -x\n{body}\nEOF\n"
    )


class InstallerError(Exception):
    """Base class of every error that terminates a run."""

    exit_code: int = 1


class UnsupportedPlatform(InstallerError):
    """Unknown distribution, macOS, s390x on RPM, or SLES."""


class UnsupportedConfiguration(InstallerError):
    """Invalid channel, mirror or other configuration value."""


class PrivilegeError(InstallerError):
    """No usable way to run commands as root, or root where it is refused."""


class VersionNotFound(InstallerError):
    def __init__(self, version: str, search: str, source: str):
        self.version = version
        self.search = search
        super().__init__(
            f"'{version}' not found amongst {source} results "
            f"(searched with: {search})"
        )


class MissingCapability(InstallerError):
    """Aggregated rootless preflight gaps."""

    def __init__(self, requirements: Iterable[PreflightRequirement]):
        self.requirements: Tuple[PreflightRequirement, ...] = tuple(
            requirements
        )
        super().__init__(render_requirements(self.requirements))


class IdentityMappingMissing(InstallerError):
    """No subuid/subgid record for the current user."""

    def __init__(
        self,
        table: str,
        user: str,
        requirements: Optional[Iterable[PreflightRequirement]] = None,
    ):
        self.table = table
        self.user = user
        self.example = f'echo "{user}:100000:65536" >> {table}'
        self.requirements: Tuple[PreflightRequirement, ...] = tuple(
            requirements or ()
        )
        super().__init__(
            f"Could not find records for the current user {user} from "
            f"{table} . Please make sure valid {table.rsplit('/', 1)[-1]} "
            f"range is set there.\nFor example:\n{self.example}"
        )


class RootlessEnvironmentError(InstallerError):
    """The user environment cannot host a rootless install."""


class DownloadError(InstallerError):
    """A release listing or archive could not be fetched."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to download {url}: {reason}")
