# admin_setup/dev_setup.py
# -*- coding: utf-8 -*-
"""
Additional host setup when installing from git checkouts.

In production these steps are covered by the crowbar package and the
installation guide.
"""

import logging
import os
import subprocess
from typing import List, Optional, Sequence

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.errors import ConfigurationError, InstallError
from common.command_utils import log_installer, run_command
from common.file_utils import ensure_directory, remove_matching_lines

module_logger = logging.getLogger(__name__)


def strip_unsupported_barclamps(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """Drop the barclamps that are not shipped from the attributes document."""
    crowbar_file = app_settings.proposal_attributes_file
    if not crowbar_file.is_file():
        return 0
    removed = 0
    for key in static_config.DEV_STRIPPED_ATTRIBUTE_KEYS:
        removed += remove_matching_lines(
            crowbar_file, f'"{key}":', app_settings, current_logger
        )
    return removed


def install_packages(
    packages: Sequence[str],
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    try:
        run_command(
            ["zypper", "--non-interactive", "--gpg-auto-import-keys", "in", *packages],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise InstallError(
            f"Could not install packages {' '.join(packages)}: {e}", packages[0]
        ) from e


def add_dev_repositories(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Add the configured zypper repositories that are not set up yet."""
    logger_to_use = current_logger if current_logger else module_logger
    added: List[str] = []
    for alias, url in app_settings.dev_repositories.items():
        if (app_settings.paths.zypp_repos_dir / f"{alias}.repo").is_file():
            log_installer(
                f"{app_settings.symbols.get('info', 'ℹ️')} Repo: {alias} already exists. Skipping.",
                "info",
                logger_to_use,
                app_settings,
            )
            continue
        run_command(
            ["zypper", "ar", url, alias],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
        )
        added.append(alias)
    return added


def write_pxelinux_default(app_settings: AppSettings) -> None:
    """The provisioner needs a discovery PXE configuration."""
    config_dir = app_settings.paths.tftpboot_root / "discovery" / "pxelinux.cfg"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "default").write_text(static_config.DEV_PXELINUX_DEFAULT, encoding="utf-8")


def ensure_tftpboot_link(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Create the compatibility link /tftpboot -> tftpboot root.

    Raises:
        ConfigurationError: The link path exists but is something else.
    """
    link = app_settings.paths.tftpboot_link
    target = app_settings.paths.tftpboot_root
    if not link.exists() and not link.is_symlink():
        link.symlink_to(target)
        log_installer(
            f"{app_settings.symbols.get('gear', '⚙️')} Linked {link} -> {target}",
            "info",
            current_logger if current_logger else module_logger,
            app_settings,
        )
        return
    if not link.is_symlink() or os.readlink(link).rstrip("/") != str(target).rstrip("/"):
        raise ConfigurationError(
            f"{link} exist but is not a symbolic link to {target}. Please fix!"
        )


def prepare_dev_prerequisites(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Steps needed before the repository checks can run."""
    strip_unsupported_barclamps(app_settings, current_logger)
    install_packages(static_config.DEV_TOOL_PACKAGES, app_settings, current_logger)


def perform_dev_setup(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    add_dev_repositories(app_settings, current_logger)
    install_packages(static_config.DEV_CHEF_PACKAGES, app_settings, current_logger)
    install_packages(static_config.DEV_CROWBAR_PACKAGES, app_settings, current_logger)
    write_pxelinux_default(app_settings)
    ensure_tftpboot_link(app_settings, current_logger)
    ensure_directory(app_settings.paths.log_dir, 0o750, app_settings, current_logger)
