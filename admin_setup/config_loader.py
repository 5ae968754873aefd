# admin_setup/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the admin node installer.

Handles loading settings from Pydantic model defaults, environment
variables, a YAML file and command-line arguments, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (read by BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments

Development mode is resolved last: path defaults that were not overridden
switch to the source-tree locations and the development skip list is added.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from admin_setup import config as static_config

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively update `source` with the values of `overrides`.

    Nested dictionaries are merged key by key; any other value replaces the
    one in `source`. None never replaces an existing value.

    Parameters:
        source: Dict[str, Any]
            The dictionary to be updated. This dictionary gets modified in place.
        overrides: Dict[str, Any]
            The dictionary containing values to update or add to the `source`.

    Returns:
        Dict[str, Any]:
            The updated dictionary after applying all `overrides` to the input `source`.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _merge_unique(*name_lists: List[str]) -> List[str]:
    merged: List[str] = []
    for names in name_lists:
        for name in names:
            if name not in merged:
                merged.append(name)
    return merged


def _load_yaml_overrides(
    yaml_config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    if not (yaml_config_path.exists() and yaml_config_path.is_file()):
        logger_to_use.info(
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

    if yaml_data and isinstance(yaml_data, dict):
        logger_to_use.info(f"Loaded main configuration from {yaml_config_path}")
        return yaml_data
    if yaml_data is not None:
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
    return {}


def _map_cli_args(cli_args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed CLI arguments into a settings override dictionary."""
    cli_arg_dict = vars(cli_args)
    mapped: Dict[str, Any] = {}

    if cli_arg_dict.get("from_git"):
        mapped["development_mode"] = True
    if cli_arg_dict.get("verbose"):
        mapped["verbose"] = True
    if cli_arg_dict.get("run_tests"):
        mapped["run_tests"] = True
    if cli_arg_dict.get("log_prefix"):
        mapped["log_prefix"] = cli_arg_dict["log_prefix"]
    if cli_arg_dict.get("proposal_file"):
        mapped.setdefault("proposal", {})["attributes_file"] = Path(
            cli_arg_dict["proposal_file"]
        )
    if cli_arg_dict.get("barclamp_src"):
        mapped.setdefault("paths", {})["barclamp_src"] = Path(
            cli_arg_dict["barclamp_src"]
        )
    return mapped


def _apply_development_defaults(values: Dict[str, Any]) -> None:
    """Switch untouched production path defaults to the development ones."""
    paths = values.setdefault("paths", {})
    production_defaults = {
        "barclamp_src": static_config.BARCLAMP_SRC_DEFAULT,
        "crowbar_file": static_config.CROWBAR_FILE_DEFAULT,
    }
    for key, dev_path in static_config.DEV_PATH_DEFAULTS.items():
        current = paths.get(key)
        if current is None or Path(current) == production_defaults[key]:
            paths[key] = dev_path


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[Union[str, Path]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (CROWBAR_*, plus BARCLAMP_SRC and CROWBAR_FILE).
    3. Values from the YAML configuration file, if one is given.
    4. Command-Line Arguments (highest precedence, overrides all else).

    Repository skip names from the environment, the YAML file and the CLI
    are appended to the built-in skip list rather than replacing it.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration does not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    # Model defaults < environment variables.
    settings_after_env_and_defaults = AppSettings()
    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )

    if config_file_path:
        yaml_data = _load_yaml_overrides(Path(config_file_path), logger_to_use)
        current_values_dict = _deep_update(current_values_dict, yaml_data)

    extra_skip_names: List[str] = []
    if cli_args:
        current_values_dict = _deep_update(
            current_values_dict, _map_cli_args(cli_args)
        )
        extra_skip_names = list(getattr(cli_args, "skip_repo_check", None) or [])

    repos = current_values_dict.setdefault("repos", {})
    skip_lists = [
        static_config.REPOS_SKIP_CHECKS_DEFAULT,
        repos.get("skip_checks") or [],
        extra_skip_names,
    ]
    if current_values_dict.get("development_mode"):
        _apply_development_defaults(current_values_dict)
        skip_lists.append(static_config.DEV_REPOS_SKIP_CHECKS)
    repos["skip_checks"] = _merge_unique(*skip_lists)

    try:
        final_settings = AppSettings(**current_values_dict)
    except Exception as e:  # Catch Pydantic validation errors etc.
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.info(
        "Successfully loaded and validated application settings"
    )

    return final_settings
