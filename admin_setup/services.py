# admin_setup/services.py
# -*- coding: utf-8 -*-
"""
Best-effort supervision of init services.
"""

import logging
import re
import subprocess
import time
from typing import Callable, Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.errors import ServiceStartError
from common.command_utils import command_succeeds, log_installer, run_command

module_logger = logging.getLogger(__name__)


class ServiceSupervisor:
    """
    Starts services that are not running yet.

    ensure_running() trusts the start command's exit status and only waits
    a grace period afterwards; it does not probe the service again.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        sleep_func: Callable[[float], None] = time.sleep,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.sleep_func = sleep_func
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

    def status_output(self, service: str) -> str:
        try:
            result = run_command(
                ["service", service, "status"],
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
        except FileNotFoundError:
            return ""
        return (result.stdout or "") + (result.stderr or "")

    def is_running(
        self,
        service: str,
        healthy_pattern: str = static_config.DEFAULT_HEALTHY_PATTERN,
    ) -> bool:
        return re.search(healthy_pattern, self.status_output(service), re.MULTILINE) is not None

    def ensure_running(
        self,
        service: str,
        healthy_pattern: str = static_config.DEFAULT_HEALTHY_PATTERN,
    ) -> bool:
        """
        Start a service unless its status output matches `healthy_pattern`.

        Returns:
            True if the service was started, False if it was already running.

        Raises:
            ServiceStartError: If the start command fails.
        """
        if self.is_running(service, healthy_pattern):
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} {service} is already running - no need to start.",
                "info",
                self.logger,
                self.app_settings,
            )
            return False

        log_installer(
            f"{self.symbols.get('step', '➡️')} Starting {service}...",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            run_command(
                ["service", service, "start"],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ServiceStartError(f"Could not start service {service}: {e}", service) from e
        self.sleep_func(self.app_settings.timing.service_grace_period)
        return True

    def enable(self, service: str) -> None:
        """Enable a service at boot."""
        try:
            run_command(
                ["chkconfig", service, "on"],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ServiceStartError(f"Could not enable service {service}: {e}", service) from e

    def enable_and_ensure_running(
        self,
        service: str,
        healthy_pattern: str = static_config.DEFAULT_HEALTHY_PATTERN,
    ) -> bool:
        self.enable(service)
        return self.ensure_running(service, healthy_pattern)

    def status_ok(self, service: str) -> bool:
        """True if the service's status command exits successfully."""
        return command_succeeds(
            ["service", service, "status"], self.app_settings, self.logger
        )
