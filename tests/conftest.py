# tests/conftest.py
import logging
import subprocess
from typing import Callable, Dict, List, Optional, Union
from unittest.mock import MagicMock

import pytest

from common.command_utils import CommandResult
from setup.config_models import InstallerSettings

SETTINGS_ENV_VARS = (
    "VERSION",
    "CHANNEL",
    "MIRROR",
    "DOWNLOAD_URL",
    "REPO_FILE",
    "DRY_RUN",
    "REPO_ONLY",
    "ROOTLESS",
    "FORCE_ROOTLESS_INSTALL",
    "SKIP_IPTABLES",
    "DOCKER_BIN",
    "XDG_RUNTIME_DIR",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "SYMBOLS",
)

SHELL_PREFIXES = (["sh", "-c"], ["sudo", "-E", "sh", "-c"], ["su", "-c"])

Response = Union[str, CommandResult, Callable[[List[str]], CommandResult]]


class FakeRunner:
    """
    Scripted stand-in for CommandRunner.

    ``responses`` maps a command line (``"uname -m"``) or a privileged shell
    snippet (``"apt-cache madison docker-ce"``) to its stdout, a
    CommandResult, or a callable. Unscripted host commands behave as missing
    binaries (rc 127); unscripted shell snippets succeed silently.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Response]] = None,
        commands: Optional[List[str]] = None,
    ):
        self.responses = dict(responses or {})
        self.available = set(commands or ())
        self.calls: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []

    def exists(self, command_name: str) -> bool:
        return command_name in self.available

    @staticmethod
    def _shell_script(argv: List[str]) -> Optional[str]:
        for prefix in SHELL_PREFIXES:
            if argv[:-1] == prefix:
                return argv[-1]
        return None

    @property
    def shell_scripts(self) -> List[str]:
        scripts = [self._shell_script(argv) for argv in self.calls]
        return [script for script in scripts if script is not None]

    def run(
        self,
        argv: List[str],
        check: bool = False,
        capture_output: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(env)

        script = self._shell_script(argv)
        response = self.responses.get(" ".join(argv))
        if response is None and script is not None:
            response = self.responses.get(script)

        if callable(response):
            result = response(argv)
        elif isinstance(response, CommandResult):
            result = response
        elif response is not None:
            result = CommandResult(stdout=response)
        elif script is not None:
            result = CommandResult()
        else:
            result = CommandResult(returncode=127)

        if check and not result.ok:
            raise subprocess.CalledProcessError(
                result.returncode, argv, result.stdout, result.stderr
            )
        return result


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """Keep the host environment out of InstallerSettings."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings(tmp_path):
    """Factory for InstallerSettings with a temporary HOME."""

    def _make(**overrides) -> InstallerSettings:
        values = {"home": str(tmp_path / "home")}
        values.update(overrides)
        return InstallerSettings(**values)

    return _make


@pytest.fixture
def app_settings(make_settings):
    return make_settings()


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def host_root(tmp_path):
    """Temporary filesystem root standing in for '/'."""
    root = tmp_path / "root"
    root.mkdir()
    return root


def write_host_file(root, path: str, content: str):
    target = root / path.lstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


@pytest.fixture
def make_runner():
    """Factory for FakeRunner(responses, commands)."""
    return FakeRunner


@pytest.fixture
def host_file(host_root):
    """Write a file below the temporary host root."""

    def _write(path: str, content: str):
        return write_host_file(host_root, path, content)

    return _write
