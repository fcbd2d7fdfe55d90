# tests/common/test_rpm_manager.py
import pytest

from common.command_utils import ShellExecutor
from common.package_managers import Dnf5Manager, DnfManager, YumManager
from installer.models import Distribution, PackageSpec

FEDORA = Distribution(id="fedora", version="41")
RHEL = Distribution(id="rhel", version="9.3")


@pytest.fixture
def rpm_manager(make_runner, make_settings, mock_logger):
    def _make(adapter_class, commands=None, responses=None, **settings_overrides):
        settings = make_settings(**settings_overrides)
        runner = make_runner(responses, commands)
        shell = ShellExecutor(runner, ["sh", "-c"], settings, mock_logger)
        return adapter_class(runner, shell, settings, mock_logger), runner

    return _make


def test_dnf5_configure_test_channel(rpm_manager):
    manager, runner = rpm_manager(Dnf5Manager, ["dnf5", "dnf"], channel="test")
    manager.configure_repository(FEDORA)
    manager.refresh_index()
    assert runner.shell_scripts == [
        "dnf -y -q --setopt=install_weak_deps=False install dnf-plugins-core",
        "dnf5 config-manager addrepo --overwrite --save-filename=docker-ce.repo "
        "--from-repofile='https://download.docker.com/linux/fedora/docker-ce.repo'",
        'dnf5 config-manager setopt "docker-ce-*.enabled=0"',
        'dnf5 config-manager setopt "docker-ce-test.enabled=1"',
        "dnf makecache",
    ]


def test_dnf_configure_stable_channel(rpm_manager):
    manager, runner = rpm_manager(DnfManager, ["dnf"])
    manager.configure_repository(RHEL)
    assert runner.shell_scripts == [
        "dnf -y -q --setopt=install_weak_deps=False install dnf-plugins-core",
        "rm -f /etc/yum.repos.d/docker-ce.repo /etc/yum.repos.d/docker-ce-staging.repo",
        "dnf config-manager --add-repo https://download.docker.com/linux/rhel/docker-ce.repo",
    ]


def test_yum_configure_test_channel_and_custom_repo_file(rpm_manager):
    manager, runner = rpm_manager(
        YumManager, [], channel="test", repo_file="docker-ce-staging.repo"
    )
    manager.configure_repository(Distribution(id="centos", version="7"))
    manager.refresh_index()
    assert runner.shell_scripts[2:] == [
        "yum-config-manager --add-repo https://download.docker.com/linux/centos/docker-ce-staging.repo",
        'yum-config-manager --disable "docker-ce-*"',
        'yum-config-manager --enable "docker-ce-test"',
        "yum makecache",
    ]


@pytest.mark.parametrize(
    "distribution,requested,pattern",
    [
        (FEDORA, "27.3", "27.3.*fc41"),
        (RHEL, "24.0.7", "24.0.7.*el"),
        (Distribution(id="centos", version="7"), "17.03.0-ce-1", r"17.03.0\.ce.*1.*el"),
    ],
)
def test_version_pattern_suffix(rpm_manager, distribution, requested, pattern):
    manager, _ = rpm_manager(DnfManager, ["dnf"])
    assert manager.version_pattern(requested, distribution) == pattern


def test_search_takes_last_match_and_drops_epoch(rpm_manager):
    listing = (
        "Available Packages\n"
        "docker-ce.x86_64    3:27.3.0-1.fc41    docker-ce-stable\n"
        "docker-ce.x86_64    3:27.3.1-1.fc41    docker-ce-stable\n"
        "docker-ce.x86_64    3:27.3.1-1.el9     docker-ce-stable\n"
    )
    manager, runner = rpm_manager(
        DnfManager, ["dnf"], {"dnf list --showduplicates docker-ce": listing}
    )
    search = manager.resolve_version("docker-ce", "27.3", FEDORA)
    assert search.version == "27.3.1-1.fc41"
    assert search.command == (
        "dnf list --showduplicates docker-ce | grep '27.3.*fc41' | tail -1"
    )
    assert manager.search_source == "dnf list"


def test_install_prefers_dnf(rpm_manager):
    manager, runner = rpm_manager(Dnf5Manager, ["dnf5", "dnf"])
    manager.install([PackageSpec(name="docker-ce", version="27.3.1-1.fc41")])
    assert runner.shell_scripts == ["dnf -y -q --best install docker-ce-27.3.1-1.fc41"]


def test_install_falls_back_to_yum(rpm_manager):
    manager, runner = rpm_manager(YumManager, [])
    manager.install([PackageSpec(name="docker-ce"), PackageSpec(name="containerd.io")])
    assert runner.shell_scripts == ["yum -y -q install docker-ce containerd.io"]
    assert manager.search_source == "yum list"
