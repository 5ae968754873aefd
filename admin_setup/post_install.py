# admin_setup/post_install.py
# -*- coding: utf-8 -*-
"""
Final sanity checks once the admin node reached "ready".
"""

import logging
import subprocess
from typing import Optional

import requests

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.crowbar_client import CrowbarClient
from admin_setup.errors import PostInstallError
from admin_setup.preflight import ADMIN_RANGE_PATH
from admin_setup.services import ServiceSupervisor
from common.command_utils import log_installer, run_command
from common.json_utils import get_nested
from common.network_utils import is_local_address

module_logger = logging.getLogger(__name__)

SUMMARY_TEMPLATE = """

Admin node deployed.

You can now visit the Crowbar web UI at:

    {url}

You should also now be able to PXE-boot a client.  Please refer
to the documentation for the next steps.

Note that to run the crowbar CLI tool, you will need to log out
and log back in again for the correct environment variables to
be set up.
"""


def web_ui_url(ip: str, port: int) -> str:
    return f"http://{ip}:{port}/"


def render_summary(ip: str, port: int) -> str:
    return SUMMARY_TEMPLATE.format(url=web_ui_url(ip, port))


class PostInstallVerifier:
    """Checks run after the lifecycle transitions completed."""

    def __init__(
        self,
        client: CrowbarClient,
        supervisor: ServiceSupervisor,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.supervisor = supervisor
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

    def start_chef_client_service(self) -> None:
        self.supervisor.enable_and_ensure_running(static_config.CHEF_CLIENT_SERVICE)

    def admin_ip(self) -> str:
        """First address of the admin range, as committed in the network barclamp."""
        try:
            network = self.client.show("network", "default")
        except (subprocess.CalledProcessError, ValueError) as e:
            raise PostInstallError(f"Could not read the network configuration: {e}") from e
        ip = get_nested(network, ADMIN_RANGE_PATH + ".start")
        if not ip:
            raise PostInstallError("The network configuration has no admin range.")
        return str(ip)

    def check_admin_ip_configured(self, ip: str) -> None:
        if not is_local_address(ip, self.app_settings, self.logger):
            raise PostInstallError(
                f"Admin network address {ip} is not configured on any interface, but should have been."
            )

    def run_self_test(self) -> None:
        test_script = str(self.app_settings.paths.bin_dir / "barclamp_test.rb")
        try:
            run_command(
                [test_script, "-t"],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise PostInstallError(
                "Crowbar validation has errors! Please check the logs and correct."
            ) from e

    def check_required_services(self) -> None:
        for service in static_config.REQUIRED_POST_INSTALL_SERVICES:
            if not self.supervisor.status_ok(service):
                raise PostInstallError(f"service {service} missing")

    def probe_web_ui(self, ip: str) -> bool:
        """Informational only; the web UI may take a while to come up."""
        url = web_ui_url(ip, self.app_settings.web_ui_port)
        try:
            response = requests.get(url, timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as req_err:
            log_installer(
                f"{self.symbols.get('warning', '⚠️')} Crowbar web UI at {url} is not answering yet: {req_err}",
                "warning",
                self.logger,
                self.app_settings,
            )
            return False
        log_installer(
            f"{self.symbols.get('success', '✅')} Crowbar web UI at {url} answered with HTTP {response.status_code}.",
            "info",
            self.logger,
            self.app_settings,
        )
        return True

    def verify(self) -> str:
        """
        Run the checks in order and return the admin IP.

        Raises:
            PostInstallError: For the first failing check.
        """
        ip = self.admin_ip()
        self.check_admin_ip_configured(ip)
        if self.app_settings.run_tests:
            self.run_self_test()
        self.check_required_services()
        self.probe_web_ui(ip)
        return ip
