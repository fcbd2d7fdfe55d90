# setup/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the engine installer.

This module defines truly static values: download locations, mirror URLs,
repository file locations, package names, feature gates, the end-of-life
distribution table, and logging symbols.

Runtime configuration (channel, pinned version, mirror, dry-run and the
rootless flags) is handled by 'setup/config_models.py' and
'setup/config_loader.py'.
"""

from typing import Dict, FrozenSet, Tuple

SCRIPT_VERSION: str = "1.0"

DEFAULT_DOWNLOAD_URL: str = "https://download.docker.com"
DEFAULT_REPO_FILE: str = "docker-ce.repo"
DEFAULT_CONFIG_FILE: str = "engine-install.yaml"

MIRROR_URLS: Dict[str, str] = {
    "Aliyun": "https://mirrors.aliyun.com/docker-ce",
    "AzureChinaCloud": "https://mirror.azure.cn/docker-ce",
}

DOCKER_DESKTOP_URL: str = "https://www.docker.com/products/docker-desktop/"
ROOTLESS_DOCS_URL: str = "https://docs.docker.com/go/rootless/"
DAEMON_ACCESS_DOCS_URL: str = "https://docs.docker.com/go/daemon-access/"
DAEMON_ATTACK_SURFACE_URL: str = (
    "https://docs.docker.com/go/attack-surface/"
)

# --- Apt family ---
APT_KEYRING_DIR: str = "/etc/apt/keyrings"
APT_KEYRING_PATH: str = "/etc/apt/keyrings/docker.asc"
APT_SOURCES_LIST_PATH: str = "/etc/apt/sources.list.d/docker.list"
APT_PREREQ_PACKAGES: Tuple[str, ...] = ("ca-certificates", "curl")

# --- RPM family ---
YUM_REPOS_DIR: str = "/etc/yum.repos.d"
STALE_REPO_FILES: Tuple[str, ...] = (
    "/etc/yum.repos.d/docker-ce.repo",
    "/etc/yum.repos.d/docker-ce-staging.repo",
)

# --- Packages, in install order ---
ENGINE_PACKAGE: str = "docker-ce"
CLI_PACKAGE: str = "docker-ce-cli"
CONTAINERD_PACKAGE: str = "containerd.io"
COMPOSE_PLUGIN_PACKAGE: str = "docker-compose-plugin"
ROOTLESS_EXTRAS_PACKAGE: str = "docker-ce-rootless-extras"
BUILDX_PLUGIN_PACKAGE: str = "docker-buildx-plugin"

# Releases older than these shipped the add-on packages bundled (or not at all).
SPLIT_CLI_GATE: str = "18.09"
COMPOSE_ROOTLESS_GATE: str = "20.10"
BUILDX_GATE: str = "23.0"

# --- Distribution end-of-life table ---
DEPRECATED_RELEASES: FrozenSet[Tuple[str, str]] = frozenset(
    {
        ("centos", "8"),
        ("centos", "7"),
        ("rhel", "7"),
        ("debian", "buster"),
        ("debian", "stretch"),
        ("debian", "jessie"),
        ("raspbian", "buster"),
        ("raspbian", "stretch"),
        ("raspbian", "jessie"),
        ("ubuntu", "focal"),
        ("ubuntu", "bionic"),
        ("ubuntu", "xenial"),
        ("ubuntu", "trusty"),
        ("ubuntu", "oracular"),
        ("ubuntu", "mantic"),
        ("ubuntu", "lunar"),
        ("ubuntu", "kinetic"),
        ("ubuntu", "impish"),
        ("ubuntu", "hirsute"),
        ("ubuntu", "groovy"),
        ("ubuntu", "eoan"),
        ("ubuntu", "disco"),
        ("ubuntu", "cosmic"),
    }
)
# Any Fedora release numerically below this is end-of-life.
FEDORA_MIN_SUPPORTED: int = 40

DEBIAN_CODENAMES: Dict[str, str] = {
    "12": "bookworm",
    "11": "bullseye",
    "10": "buster",
    "9": "stretch",
    "8": "jessie",
}

# --- Operator observation windows (seconds) ---
EXISTING_DOCKER_DELAY: float = 20
WSL_DELAY: float = 20
DEPRECATION_DELAY: float = 10

# --- Rootless ---
STATIC_RELEASE_BASE_URL: str = "https://download.docker.com/linux/static"
ROOTLESS_DAEMON: str = "dockerd"
ROOTLESS_SETUP_TOOL: str = "dockerd-rootless-setuptool.sh"
ROOTFUL_SOCKET_PATH: str = "/var/run/docker.sock"
SUBUID_PATH: str = "/etc/subuid"
SUBGID_PATH: str = "/etc/subgid"
UNPRIVILEGED_USERNS_SYSCTL: str = "/proc/sys/kernel/unprivileged_userns_clone"
MAX_USER_NAMESPACES_SYSCTL: str = "/proc/sys/user/max_user_namespaces"
DOWNLOAD_TIMEOUT: int = 300

SYMBOLS: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}
