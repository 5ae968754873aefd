# admin_setup/chef_bootstrap.py
# -*- coding: utf-8 -*-
"""
Chef preparation for the admin node: knife configuration, the initial
chef-client run and the first crowbar bootstrap step (DNS data bag, node
role and run list).
"""

import json
import logging
import re
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.crowbar_client import CrowbarClient
from admin_setup.errors import ChefBootstrapError
from admin_setup.preflight import Node
from admin_setup.services import ServiceSupervisor
from common.command_utils import log_installer
from common.json_utils import load_json_document
from common.system_utils import read_nameservers

module_logger = logging.getLogger(__name__)

_RUN_LIST_HAS_ROLE = re.compile(r"Run List:.*role")

ROLE_TEMPLATE = """\
name "{name}"
description "Role for {fqdn}"
run_list()
default_attributes( "crowbar" => {{ "network" => {{}} }} )
override_attributes()
"""


def configure_knife(
    client: CrowbarClient,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Run `knife configure -i` with all defaults unless knife is configured."""
    logger_to_use = current_logger if current_logger else module_logger
    if app_settings.paths.knife_config.exists():
        log_installer(
            f"{app_settings.symbols.get('info', 'ℹ️')} {app_settings.paths.knife_config} exists; knife already configured.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False
    try:
        client.knife(["configure", "-i"], cmd_input="\n" * 32)
    except subprocess.CalledProcessError as e:
        raise ChefBootstrapError(f"knife configure failed: {e}") from e
    return True


def run_initial_chef_client(
    client: CrowbarClient,
    node: Node,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Run chef-client once, unless the node's run list already holds a role.

    Returns:
        True if chef-client was run.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    node_info = client.knife(["node", "show", node.fqdn], check=False).stdout or ""
    if _RUN_LIST_HAS_ROLE.search(node_info):
        log_installer(
            f"{symbols.get('info', 'ℹ️')} Chef runlist for {node.fqdn} is already populated; skipping initial chef-client run.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    log_installer(
        f"{symbols.get('info', 'ℹ️')} The initial chef-client run may warn about /etc/chef/client.rb "
        "missing and the run list being empty; they can be safely ignored.",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        client.run_chef_client()
    except subprocess.CalledProcessError as e:
        raise ChefBootstrapError(f"Initial chef-client run failed: {e}") from e
    return True


def build_dns_data_bag(
    template: Dict[str, Any], domain: str, nameservers: List[str]
) -> Dict[str, Any]:
    """Fill the DNS barclamp template with the local domain and forwarders."""
    data_bag = json.loads(json.dumps(template))
    dns_attributes = data_bag.setdefault("attributes", {}).setdefault("dns", {})
    dns_attributes["domain"] = domain
    dns_attributes["forwarders"] = list(nameservers)
    return data_bag


def render_node_role(node: Node) -> str:
    return ROLE_TEMPLATE.format(name=node.role_name, fqdn=node.fqdn)


class CrowbarBootstrapper:
    """First step of the crowbar bootstrap, before any proposal exists."""

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

    def _knife(self, args: List[str]) -> None:
        try:
            self.client.knife(args)
        except subprocess.CalledProcessError as e:
            raise ChefBootstrapError(f"knife {' '.join(args)} failed: {e}") from e

    def upload_dns_data_bag(self, node: Node) -> Path:
        template_path = self.app_settings.paths.dns_template
        if not template_path.is_file():
            raise ChefBootstrapError(f"{template_path} doesn't exist")
        try:
            template = load_json_document(template_path)
        except ValueError as e:
            raise ChefBootstrapError(f"{template_path} is not a valid JSON object: {e}") from e

        nameservers = read_nameservers(self.app_settings.paths.resolv_conf)
        data_bag = build_dns_data_bag(template, node.domain, nameservers)
        target = self.app_settings.paths.work_dir / "bc-template-dns.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(data_bag, indent=2) + "\n", encoding="utf-8")

        log_installer(
            f"{self.symbols.get('info', 'ℹ️')} Instructing chef to configure bind with the following DNS forwarders: {' '.join(nameservers)}",
            "info",
            self.logger,
            self.app_settings,
        )
        self._knife(["data", "bag", "from", "file", "crowbar", str(target)])
        return target

    def create_node_role(self, node: Node) -> Path:
        target = self.app_settings.paths.work_dir / "role.rb"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_node_role(node), encoding="utf-8")
        self._knife(["role", "from", "file", str(target)])
        return target

    def populate_run_list(self, node: Node) -> None:
        for role in [*static_config.ADMIN_RUN_LIST_ROLES, node.role_name]:
            self._knife(["node", "run_list", "add", node.fqdn, f'role[{role}]'])

    def bootstrap(self, node: Node) -> None:
        self.upload_dns_data_bag(node)
        log_installer(
            f"{self.symbols.get('step', '➡️')} Create Admin node role",
            "info",
            self.logger,
            self.app_settings,
        )
        self.create_node_role(node)
        self.populate_run_list(node)
        try:
            self.client.run_chef_client()
        except subprocess.CalledProcessError as e:
            raise ChefBootstrapError(f"chef-client run for the crowbar bootstrap failed: {e}") from e
        self.supervisor.ensure_running(static_config.CROWBAR_SERVICE)
