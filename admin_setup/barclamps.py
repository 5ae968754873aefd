# admin_setup/barclamps.py
# -*- coding: utf-8 -*-
"""
Ordered barclamp installation.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from admin_setup.config_models import AppSettings
from admin_setup.errors import InstallError
from common.command_utils import log_installer, run_command

module_logger = logging.getLogger(__name__)


class InstallableUnitInstaller:
    """
    Installs barclamps with barclamp_install.rb, strictly in the given order.

    A barclamp counts as installed once its descriptor
    `<framework>/barclamps/<name>.yml` exists; installed barclamps are not
    verified again. The framework barclamp is always reinstalled first.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

    @property
    def install_script(self) -> str:
        return str(self.app_settings.paths.bin_dir / "barclamp_install.rb")

    def marker_path(self, unit: str) -> Path:
        return self.app_settings.paths.barclamps_installed_dir / f"{unit}.yml"

    def is_installed(self, unit: str) -> bool:
        return self.marker_path(unit).exists()

    def install_unit(self, unit: str, opts: Sequence[str]) -> None:
        source = self.app_settings.paths.barclamp_src / unit
        log_installer(
            f"{self.symbols.get('package', '📦')} Installing {unit} barclamp from {source}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            run_command(
                [self.install_script, *opts, str(source)],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise InstallError(f"Failed to install the {unit} barclamp: {e}", unit) from e

    def install_all(
        self,
        units: Optional[Sequence[str]] = None,
        opts: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """
        Install the framework barclamp, then every unit not yet installed.

        Args:
            units: Barclamps in dependency order; defaults to the configured list.
            opts: barclamp_install.rb options; defaults to --rpm, or --force
                in development mode.

        Returns:
            The barclamps that were installed by this call, in order.

        Raises:
            InstallError: For the first barclamp that failed; later ones
                are not attempted.
        """
        units = list(self.app_settings.barclamps if units is None else units)
        opts = list(self.app_settings.barclamp_install_opts if opts is None else opts)

        self.app_settings.paths.framework_dir.mkdir(parents=True, exist_ok=True)

        installed: List[str] = []
        framework = self.app_settings.framework_barclamp
        self.install_unit(framework, opts)
        installed.append(framework)

        for unit in units:
            if self.is_installed(unit):
                log_installer(
                    f"{self.symbols.get('info', 'ℹ️')} {unit} barclamp is already installed",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                continue
            self.install_unit(unit, opts)
            installed.append(unit)
        return installed
