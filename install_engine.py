#!/usr/bin/env python3
# filename: install_engine.py
# -*- coding: utf-8 -*-
"""
Entry point for the container engine installer.

Usage:
    engine-install [--channel stable|test] [--mirror Aliyun|AzureChinaCloud]
                   [--version X.Y[.Z]] [--dry-run] [--setup-repo] [--rootless]
"""

import argparse
import logging
import subprocess
import sys
from typing import List, Optional, Tuple

from common.logging_config import setup_logging
from installer.errors import InstallerError
from installer.orchestrator import InstallOrchestrator
from setup.config_loader import load_installer_settings


def parse_args(
    args: Optional[List[str]] = None,
) -> Tuple[argparse.Namespace, List[str]]:
    """Parse command-line arguments; unknown flags are returned, not fatal."""
    parser = argparse.ArgumentParser(
        description="Install the Docker Engine packages on this host."
    )
    parser.add_argument(
        "--channel", default=None, help="Release channel: stable (default) or test."
    )
    parser.add_argument(
        "--mirror", default=None, help="Download mirror: Aliyun or AzureChinaCloud."
    )
    parser.add_argument(
        "--version",
        default=None,
        help="Engine version to install, e.g. 24.0 or 23.0.6. Defaults to latest.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Print the commands that would be run instead of running them.",
    )
    parser.add_argument(
        "--setup-repo",
        action="store_true",
        default=None,
        help="Only configure the package repository; do not install packages.",
    )
    parser.add_argument(
        "--rootless",
        action="store_true",
        default=None,
        help="Install the engine for the current unprivileged user.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: engine-install.yaml).",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    return parser.parse_known_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the engine installer."""
    parsed_args, unknown_args = parse_args(args)
    logger = setup_logging("DEBUG" if parsed_args.verbose else "INFO")

    for unknown in unknown_args:
        logger.warning(f"Illegal option {unknown}")

    try:
        app_settings = load_installer_settings(
            parsed_args, parsed_args.config, logger
        )
        logger = setup_logging(
            "DEBUG" if parsed_args.verbose else app_settings.log_level,
            app_settings.log_format,
        )
        outcome = InstallOrchestrator(app_settings, logger=logger).run()
    except InstallerError as e:
        logger.error(f"ERROR: {e}")
        return e.exit_code
    except subprocess.CalledProcessError as e:
        logger.error(
            f"ERROR: command failed with exit code {e.returncode}: {e.cmd}"
        )
        return 1
    except KeyboardInterrupt:
        logger.warning("Installation aborted by user.")
        return 130

    if outcome.already_installed:
        logger.debug("Existing installation found; nothing to do.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
