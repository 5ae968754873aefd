# admin_setup/preflight.py
# -*- coding: utf-8 -*-
"""
Host sanity checks run before the installer changes anything.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.errors import PreflightError
from common.command_utils import log_installer
from common.json_utils import get_nested, load_json_document
from common.network_utils import (
    address_in_range,
    is_local_address,
    is_loopback_address,
    ping_host,
    resolve_host_addresses,
)
from common.system_utils import (
    firewall_is_disabled,
    get_dns_domain,
    get_fqdn,
    get_password_field,
    is_password_locked_or_unset,
)

module_logger = logging.getLogger(__name__)

ADMIN_RANGE_PATH = "attributes.network.networks.admin.ranges.admin"


@dataclass(frozen=True)
class Node:
    """Identity of the admin node, resolved once per run."""

    fqdn: str
    domain: str
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None

    @property
    def role_name(self) -> str:
        return "crowbar-" + self.fqdn.replace(".", "_")


def network_template_path(app_settings: AppSettings) -> Path:
    """The network barclamp template, taken from the source tree in development mode."""
    if app_settings.development_mode:
        return app_settings.paths.barclamp_src / static_config.DEV_NETWORK_TEMPLATE_RELATIVE
    return app_settings.paths.network_template


class PreflightValidator:
    """
    Verifies host identity, addressing and firewall posture.

    Only reads from the host. Each check raises PreflightError on failure,
    so the first failing check stops the run.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

    def validate(self) -> Node:
        self.check_root_password()
        fqdn, domain = self.detect_host_names()
        node = self.resolve_node(fqdn, domain)
        if node.ipv4:
            self.check_ipv4(node)
        if node.ipv6:
            self.check_ipv6(node)
        self.check_firewall()
        self.check_reachable(node)
        log_installer(
            f"{self.symbols.get('success', '✅')} Sanity checks passed for {node.fqdn}.",
            "info",
            self.logger,
            self.app_settings,
        )
        return node

    def check_root_password(self) -> None:
        password_field = get_password_field("root", self.app_settings, self.logger)
        if is_password_locked_or_unset(password_field):
            raise PreflightError(
                "root password is unset or locked.  Chef will rewrite "
                "/root/.ssh/authorized_keys; therefore to avoid being accidentally "
                "locked out of this admin node, you should first ensure you have "
                "a working root password."
            )

    def detect_host_names(self):
        fqdn = get_fqdn(self.app_settings, self.logger)
        if not fqdn:
            raise PreflightError("Unable to detect fully-qualified hostname. Aborting.")
        domain = get_dns_domain(self.app_settings, self.logger)
        if not domain:
            raise PreflightError("Unable to detect DNS domain name. Aborting.")
        return fqdn, domain

    def resolve_node(self, fqdn: str, domain: str) -> Node:
        try:
            ipv4, ipv6 = resolve_host_addresses(fqdn, self.app_settings, self.logger)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise PreflightError(
                f"Unable to resolve hostname {fqdn}. Please check your configuration "
                "of DNS, hostname, and /etc/hosts. Aborting."
            ) from e
        if not ipv4 and not ipv6:
            raise PreflightError(
                f"Could not resolve {fqdn} to an IPv4 or IPv6 address. Aborting."
            )
        return Node(fqdn=fqdn, domain=domain, ipv4=ipv4, ipv6=ipv6)

    def check_ipv4(self, node: Node) -> None:
        log_installer(
            f"{self.symbols.get('info', 'ℹ️')} {node.fqdn} resolved to IPv4 address: {node.ipv4}",
            "info",
            self.logger,
            self.app_settings,
        )
        if is_loopback_address(node.ipv4):
            raise PreflightError(f"{node.fqdn} resolves to a loopback address. Aborting.")
        if not is_local_address(node.ipv4, self.app_settings, self.logger):
            raise PreflightError(
                f"No local interfaces configured with address {node.ipv4}. Aborting."
            )
        self.check_admin_range(node.ipv4)

    def check_admin_range(self, ipv4: str) -> None:
        template = network_template_path(self.app_settings)
        try:
            admin_range = get_nested(load_json_document(template), ADMIN_RANGE_PATH)
        except (OSError, ValueError) as e:
            raise PreflightError(
                f"Cannot read the admin network range from {template}: {e}"
            ) from e
        if not isinstance(admin_range, dict) or not (
            admin_range.get("start") and admin_range.get("end")
        ):
            raise PreflightError(f"{template} does not define the admin range of the admin network.")
        if not address_in_range(ipv4, admin_range["start"], admin_range["end"]):
            raise PreflightError(
                f"IPv4 address {ipv4} of admin node not in admin range of admin "
                "network. Please check and fix with yast2 crowbar. Aborting."
            )

    def check_ipv6(self, node: Node) -> None:
        log_installer(
            f"{self.symbols.get('info', 'ℹ️')} {node.fqdn} resolved to IPv6 address: {node.ipv6}",
            "info",
            self.logger,
            self.app_settings,
        )
        if is_loopback_address(node.ipv6):
            raise PreflightError(f"{node.fqdn} resolves to a loopback address. Aborting.")
        if not is_local_address(node.ipv6, self.app_settings, self.logger):
            raise PreflightError(
                f"No local interfaces configured with address {node.ipv6}. Aborting."
            )

    def check_firewall(self) -> None:
        if not firewall_is_disabled(self.app_settings, self.logger):
            raise PreflightError("Firewall is not completely disabled. Aborting.")

    def check_reachable(self, node: Node) -> None:
        if not ping_host(node.fqdn, self.app_settings, self.logger):
            raise PreflightError(
                f"Failed to ping {node.fqdn}; please check your network configuration. Aborting."
            )
