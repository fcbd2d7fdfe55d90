# setup/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, environment
variables, an optional YAML file, and command-line arguments, applying a
specific order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments

The result is validated once and frozen. Invalid values surface as
UnsupportedConfiguration before any host detection runs.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from installer.errors import UnsupportedConfiguration
from setup.config import DEFAULT_CONFIG_FILE
from setup.config_models import InstallerSettings

module_logger = logging.getLogger(__name__)

# argparse destination -> settings field
CLI_FIELD_MAP: Dict[str, str] = {
    "channel": "channel",
    "mirror": "mirror",
    "version": "version",
    "dry_run": "dry_run",
    "setup_repo": "repo_only",
    "rootless": "rootless",
}


def _describe_validation_error(error: ValidationError) -> str:
    """Return the operator-facing message of the first validation failure."""
    for detail in error.errors():
        ctx = detail.get("ctx") or {}
        if ctx.get("error") is not None:
            return str(ctx["error"])
        location = ".".join(str(part) for part in detail.get("loc", ()))
        return f"invalid value for '{location}': {detail.get('msg')}"
    return str(error)


def _build_settings(**values: Any) -> InstallerSettings:
    try:
        return InstallerSettings(**values)
    except ValidationError as e:
        raise UnsupportedConfiguration(_describe_validation_error(e)) from e


def _load_yaml_overrides(
    yaml_config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    if not (yaml_config_path.exists() and yaml_config_path.is_file()):
        logger_to_use.debug(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}
    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def load_installer_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> InstallerSettings:
    """
    Loads installer settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (VERSION, CHANNEL, DOWNLOAD_URL, DRY_RUN, ...).
    3. Values from the YAML configuration file.
    4. Command-Line Arguments (highest precedence, overrides all else).

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. Defaults to
            'engine-install.yaml' in the working directory.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        A frozen InstallerSettings instance.

    Raises:
        UnsupportedConfiguration: If any value fails validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    # Model defaults < environment variables
    current_values = _build_settings().model_dump()

    yaml_path = Path(config_file_path or DEFAULT_CONFIG_FILE)
    current_values.update(_load_yaml_overrides(yaml_path, logger_to_use))

    if cli_args:
        for cli_key, cli_value in vars(cli_args).items():
            field_name = CLI_FIELD_MAP.get(cli_key)
            if field_name is None or cli_value is None:
                continue
            current_values[field_name] = cli_value

    final_settings = _build_settings(**current_values)
    logger_to_use.debug(
        f"Resolved settings: channel={final_settings.channel.value}, "
        f"version={final_settings.version or 'latest'}, "
        f"download_url={final_settings.effective_download_url}, "
        f"dry_run={final_settings.dry_run}"
    )
    return final_settings
