# setup/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for installer configuration.

This module defines the structured settings for a single installer run,
including defaults, type annotations, and descriptions. Settings are read
from environment variables by pydantic-settings and are frozen once
constructed, so every component receives the same immutable view.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from setup.config import (
    DEFAULT_DOWNLOAD_URL,
    DEFAULT_REPO_FILE,
    MIRROR_URLS,
    SYMBOLS,
)

SYMBOLS_DEFAULT: Dict[str, str] = dict(SYMBOLS)


class Channel(str, Enum):
    """Release track of the engine packages."""

    STABLE = "stable"
    TEST = "test"


class Mirror(str, Enum):
    """Download mirror; NONE means the default download URL."""

    NONE = ""
    ALIYUN = "Aliyun"
    AZURE_CHINA_CLOUD = "AzureChinaCloud"

    @property
    def url(self) -> Optional[str]:
        return MIRROR_URLS.get(self.value)


class InstallerSettings(BaseSettings):
    """Settings for one installer invocation."""

    model_config = SettingsConfigDict(extra="ignore", frozen=True)

    version: Optional[str] = Field(
        default=None,
        description="Engine version to pin (CalVer YY.MM or SemVer). Unset means latest in channel.",
    )
    channel: Channel = Field(
        default=Channel.STABLE, description="Release channel: stable or test."
    )
    mirror: Mirror = Field(
        default=Mirror.NONE,
        description="Download mirror (Aliyun or AzureChinaCloud). Overrides download_url.",
    )
    download_url: str = Field(
        default=DEFAULT_DOWNLOAD_URL,
        description="Base URL of the package repositories.",
    )
    repo_file: str = Field(
        default=DEFAULT_REPO_FILE,
        description="Name of the RPM repository descriptor to fetch.",
    )
    dry_run: bool = Field(
        default=False,
        description="Print mutating commands instead of running them.",
    )
    repo_only: bool = Field(
        default=False,
        description="Only configure the package repository, do not install.",
    )
    rootless: bool = Field(
        default=False,
        description="Install the engine for the current unprivileged user.",
    )
    force_rootless_install: bool = Field(
        default=False,
        description="Allow a rootless install as root or next to a running rootful engine.",
    )
    skip_iptables: bool = Field(
        default=False,
        description="Skip the iptables checks of the rootless preflight.",
    )
    docker_bin: Optional[str] = Field(
        default=None,
        description="Directory receiving the rootless binaries. Defaults to $HOME/bin.",
    )
    home: Optional[str] = Field(
        default=None, description="Home directory of the invoking user."
    )
    xdg_runtime_dir: Optional[str] = Field(
        default=None, description="Per-user runtime directory."
    )
    log_level: str = Field(default="INFO", description="Logging level.")
    log_format: str = Field(
        default="text", description="Console log format: text or json."
    )

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )

    @field_validator("version", mode="before")
    @classmethod
    def _strip_version_prefix(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        if value.startswith("v"):
            value = value[1:]
        return value or None

    @field_validator("channel", mode="before")
    @classmethod
    def _check_channel(cls, value: Any) -> Any:
        if value is None or value == "":
            return Channel.STABLE
        if isinstance(value, Channel):
            return value
        if value not in {c.value for c in Channel}:
            raise ValueError(
                f"unknown CHANNEL '{value}': use either stable or test."
            )
        return value

    @field_validator("mirror", mode="before")
    @classmethod
    def _check_mirror(cls, value: Any) -> Any:
        if value is None or value == "":
            return Mirror.NONE
        if isinstance(value, Mirror):
            return value
        if value not in MIRROR_URLS:
            raise ValueError(
                f"unknown mirror '{value}': use either 'Aliyun', or 'AzureChinaCloud'."
            )
        return value

    @property
    def effective_download_url(self) -> str:
        """The mirror URL when a mirror is selected, else download_url."""
        return self.mirror.url or self.download_url.rstrip("/")

    @property
    def bin_dir(self) -> Path:
        """Install directory for rootless binaries."""
        if self.docker_bin:
            return Path(self.docker_bin)
        return Path(self.home or "") / "bin"
