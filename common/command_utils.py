# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing host commands and logging their output.

Two seams are exposed to the rest of the installer:

- CommandRunner: runs an argv and returns exit status plus captured output.
  Detection code uses it and treats a missing binary as an ordinary failure.
- ShellExecutor: runs a shell snippet with the privilege prefix resolved for
  this host (the installer's ``sh_c``). In dry-run mode it only logs.
"""

import logging
import shlex
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from installer.errors import PrivilegeError
from setup.config_models import SYMBOLS_DEFAULT, InstallerSettings

module_logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND_RC = 127


def _symbols(app_settings: Optional[InstallerSettings]) -> Dict[str, str]:
    if app_settings and app_settings.symbols:
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_installer(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[InstallerSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs an operator-facing message at the given level.

    Args:
        message (str): The log message to be recorded.
        level (str): "debug", "info", "success", "warning", "error" or
            "critical". Unknown levels log at info.
        current_logger (Optional[logging.Logger]): A logger instance to use.
            If not provided, the module-level logger is used.
        app_settings (Optional[InstallerSettings]): Settings of the current run.
        exc_info (bool): Whether to include exception details.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


class CommandResult(BaseModel):
    """Exit status and captured output of one external command."""

    model_config = ConfigDict(frozen=True)

    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, for tools that report on either."""
        return (self.stdout or "") + (self.stderr or "")


def run_command(
    command: List[str],
    app_settings: Optional[InstallerSettings],
    check: bool = True,
    capture_output: bool = False,
    current_logger: Optional[logging.Logger] = None,
    env: Optional[Dict[str, str]] = None,
    quiet: bool = False,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the process details and results.

    Args:
        command (List[str]): The argv to execute.
        app_settings (Optional[InstallerSettings]): Settings providing the
            logging symbols.
        check (bool): Raise CalledProcessError on a non-zero exit code.
        capture_output (bool): Capture stdout and stderr as text.
        current_logger (Optional[logging.Logger]): Logger for the details.
        env (Optional[Dict[str, str]]): Environment for the command.
        quiet (bool): Log the invocation at debug instead of info.

    Returns:
        subprocess.CompletedProcess: The completed process.

    Raises:
        subprocess.CalledProcessError: On a non-zero exit when check is True.
        FileNotFoundError: If the executable does not exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = _symbols(app_settings)
    command_to_log_str = subprocess.list2cmdline(command)

    invocation_level = "debug" if quiet else "info"
    log_installer(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str}",
        invocation_level,
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command,
            check=check,
            capture_output=capture_output,
            text=True,
            env=env,
        )
        if capture_output and result.stdout and result.stdout.strip():
            log_installer(
                f"   stdout: {result.stdout.strip()}",
                "debug",
                effective_logger,
                app_settings,
            )
        return result
    except subprocess.CalledProcessError as e:
        log_installer(
            f"{symbols.get('error', '❌')} Command `{command_to_log_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if e.stderr and hasattr(e.stderr, "strip") and e.stderr.strip():
            log_installer(
                f"   stderr: {e.stderr.strip()}",
                "error",
                effective_logger,
                app_settings,
            )
        raise
    except FileNotFoundError as e:
        log_installer(
            f"{symbols.get('warning', '!')} Command not found: {e.filename}.",
            "debug" if quiet else "error",
            effective_logger,
            app_settings,
        )
        raise


def command_exists(command_name: str) -> bool:
    """Check if a command exists in the system's PATH."""
    return shutil.which(command_name) is not None


class CommandRunner:
    """
    Narrow capability for running host commands.

    ``run`` never raises for a missing executable: it reports return code 127
    so callers can degrade to empty values. Tests substitute a scripted fake.
    """

    def __init__(
        self,
        app_settings: Optional[InstallerSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(__name__)

    def exists(self, command_name: str) -> bool:
        return command_exists(command_name)

    def run(
        self,
        argv: List[str],
        check: bool = False,
        capture_output: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        try:
            completed = run_command(
                argv,
                self.app_settings,
                check=check,
                capture_output=capture_output,
                current_logger=self.logger,
                env=env,
                quiet=capture_output,
            )
        except FileNotFoundError:
            if check:
                raise
            return CommandResult(returncode=COMMAND_NOT_FOUND_RC)
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def resolve_shell_prefix(
    runner: CommandRunner, current_logger: Optional[logging.Logger] = None
) -> List[str]:
    """
    Determines how shell snippets are run with root privileges.

    Returns ``sh -c`` for root, ``sudo -E sh -c`` when sudo is available,
    otherwise ``su -c``.

    Raises:
        PrivilegeError: If the user is not root and neither sudo nor su exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    user = runner.run(["id", "-un"]).stdout.strip()
    if user == "root":
        return ["sh", "-c"]
    if runner.exists("sudo"):
        return ["sudo", "-E", "sh", "-c"]
    if runner.exists("su"):
        return ["su", "-c"]
    effective_logger.debug(f"Neither sudo nor su found for user '{user}'.")
    raise PrivilegeError(
        "this installer needs the ability to run commands as root. "
        'We are unable to find either "sudo" or "su" available to make this happen.'
    )


class ShellExecutor:
    """
    Runs shell snippets with elevated privileges, or only logs them in
    dry-run mode.
    """

    def __init__(
        self,
        runner: CommandRunner,
        prefix: List[str],
        app_settings: InstallerSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.prefix = list(prefix)
        self.app_settings = app_settings
        self.dry_run = app_settings.dry_run
        self.logger = logger or logging.getLogger(__name__)

    def __call__(
        self, script: Union[str, List[str]], capture_output: bool = False
    ) -> CommandResult:
        if isinstance(script, list):
            script = shlex.join(script)
        if self.dry_run:
            log_installer(f"+ {script}", "info", self.logger, self.app_settings)
            return CommandResult()
        return self.runner.run(
            self.prefix + [script], check=True, capture_output=capture_output
        )
