# tests/common/test_apt_manager.py
import pytest

from common.command_utils import ShellExecutor
from common.package_managers import AptManager
from installer.models import Distribution, PackageManagerKind, PackageSpec

BOOKWORM = Distribution(id="debian", version="bookworm")


@pytest.fixture
def apt_manager(make_runner, make_settings, mock_logger):
    """AptManager over a scripted runner, run as root."""

    def _make(responses=None, **settings_overrides):
        settings = make_settings(**settings_overrides)
        runner = make_runner(
            dict({"dpkg --print-architecture": "arm64\n"}, **(responses or {}))
        )
        shell = ShellExecutor(runner, ["sh", "-c"], settings, mock_logger)
        return AptManager(runner, shell, settings, mock_logger), runner

    return _make


def test_registered_kind(apt_manager):
    manager, _ = apt_manager()
    assert manager.kind is PackageManagerKind.APT
    assert manager.search_source == "apt-cache madison"


def test_configure_repository_commands(apt_manager):
    manager, runner = apt_manager()
    manager.configure_repository(BOOKWORM)
    assert runner.shell_scripts == [
        "apt-get -qq update >/dev/null",
        "DEBIAN_FRONTEND=noninteractive apt-get -y -qq install ca-certificates curl >/dev/null",
        "install -m 0755 -d /etc/apt/keyrings",
        'curl -fsSL "https://download.docker.com/linux/debian/gpg" -o /etc/apt/keyrings/docker.asc',
        "chmod a+r /etc/apt/keyrings/docker.asc",
        'echo "deb [arch=arm64 signed-by=/etc/apt/keyrings/docker.asc] '
        'https://download.docker.com/linux/debian bookworm stable" '
        "> /etc/apt/sources.list.d/docker.list",
    ]


def test_configure_repository_is_an_overwrite(apt_manager):
    manager, runner = apt_manager()
    manager.configure_repository(BOOKWORM)
    manager.configure_repository(BOOKWORM)
    writes = [s for s in runner.shell_scripts if s.startswith("echo ")]
    assert len(writes) == 2
    assert all(" > /etc/apt/sources.list.d/docker.list" in s for s in writes)


def test_mirror_and_channel_in_repository_line(apt_manager):
    manager, _ = apt_manager(mirror="Aliyun", channel="test")
    assert manager.repository_line(BOOKWORM) == (
        "deb [arch=arm64 signed-by=/etc/apt/keyrings/docker.asc] "
        "https://mirrors.aliyun.com/docker-ce/linux/debian bookworm test"
    )


@pytest.mark.parametrize(
    "requested,pattern",
    [
        ("24.0", "24.0"),
        ("20.10.24", "20.10.24"),
        ("18.06.3-ce", "18.06.3.*ce"),
        ("17.03.2-ce-0", "17.03.2~ce~.*0"),
    ],
)
def test_version_pattern(apt_manager, requested, pattern):
    manager, _ = apt_manager()
    assert manager.version_pattern(requested, BOOKWORM) == pattern


def test_search_version_takes_first_match(apt_manager):
    madison = (
        " docker-ce | 5:25.0.3-1~debian.12~bookworm | https://download.docker.com/linux/debian bookworm/stable arm64 Packages\n"
        " docker-ce | 5:24.0.9-1~debian.12~bookworm | https://download.docker.com/linux/debian bookworm/stable arm64 Packages\n"
        " docker-ce | 5:24.0.7-1~debian.12~bookworm | https://download.docker.com/linux/debian bookworm/stable arm64 Packages\n"
    )
    manager, _ = apt_manager({"apt-cache madison docker-ce": madison})
    search = manager.resolve_version("docker-ce", "24.0", BOOKWORM)
    assert search.found
    assert search.version == "5:24.0.9-1~debian.12~bookworm"
    assert search.command == "apt-cache madison docker-ce | grep '24.0' | head -1"


def test_search_version_without_match(apt_manager):
    manager, _ = apt_manager({"apt-cache madison docker-ce": ""})
    search = manager.search_version("docker-ce", "24.0")
    assert not search.found
    assert search.version == ""


def test_install_formats_pins(apt_manager):
    manager, runner = apt_manager()
    manager.install(
        [
            PackageSpec(name="docker-ce", version="5:24.0.9-1~debian.12~bookworm"),
            PackageSpec(name="containerd.io"),
        ]
    )
    assert runner.shell_scripts == [
        "DEBIAN_FRONTEND=noninteractive apt-get -y -qq install "
        "docker-ce=5:24.0.9-1~debian.12~bookworm containerd.io >/dev/null"
    ]
