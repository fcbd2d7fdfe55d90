"""
Engine installer core.

This package holds the decision logic of the installer: distribution
detection, version comparison and resolution, the rootless flow, and the
orchestrator sequencing them.
"""

from installer.errors import InstallerError
from installer.models import Distribution, InstallOutcome

__all__ = ["Distribution", "InstallOutcome", "InstallerError"]
