# admin_setup/crowbar_client.py
# -*- coding: utf-8 -*-
"""
Thin wrapper around the crowbar, knife and chef-client command line tools.

Every call goes through run_command; failures surface as
subprocess.CalledProcessError and are translated by the callers.
"""

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from admin_setup.config_models import AppSettings
from common.command_utils import run_command

module_logger = logging.getLogger(__name__)


class CrowbarClient:
    """Backend command surface used by the installer."""

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.install_key: Optional[str] = None

    def set_install_key(self, key: Optional[str]) -> None:
        """Authenticate later crowbar calls with the machine install key."""
        self.install_key = key

    def _crowbar_env(self) -> Optional[Dict[str, str]]:
        if not self.install_key:
            return None
        env = dict(os.environ)
        env["CROWBAR_KEY"] = self.install_key
        return env

    @property
    def crowbar_bin(self) -> str:
        return str(self.app_settings.paths.bin_dir / "crowbar")

    def _crowbar(self, args: List[str]) -> subprocess.CompletedProcess:
        return run_command(
            [self.crowbar_bin, *args],
            self.app_settings,
            check=True,
            capture_output=True,
            current_logger=self.logger,
            env=self._crowbar_env(),
        )

    def _crowbar_json(self, args: List[str]) -> Dict[str, Any]:
        output = self._crowbar(args).stdout or ""
        document = json.loads(output)
        if not isinstance(document, dict):
            raise ValueError(f"crowbar {' '.join(args)} did not return a JSON object")
        return document

    def list_proposals(self, barclamp: str) -> List[str]:
        output = self._crowbar([barclamp, "proposal", "list"]).stdout or ""
        return [line.strip() for line in output.splitlines() if line.strip()]

    def create_proposal(
        self, barclamp: str, name: str, attributes_file: Optional[Path] = None
    ) -> None:
        args = [barclamp]
        if attributes_file is not None:
            args += ["--file", str(attributes_file)]
        args += ["proposal", "create", name]
        self._crowbar(args)

    def show_proposal(self, barclamp: str, name: str) -> Dict[str, Any]:
        return self._crowbar_json([barclamp, "proposal", "show", name])

    def commit_proposal(self, barclamp: str, name: str) -> None:
        self._crowbar([barclamp, "proposal", "commit", name])

    def show(self, barclamp: str, name: str) -> Dict[str, Any]:
        """Show the active configuration of a barclamp, e.g. `network show default`."""
        return self._crowbar_json([barclamp, "show", name])

    def transition(self, fqdn: str, state: str) -> None:
        self._crowbar(["crowbar", "transition", fqdn, state])

    def run_chef_client(self) -> None:
        """Trigger a single synchronous chef-client run."""
        run_command(
            ["chef-client"],
            self.app_settings,
            check=True,
            capture_output=True,
            current_logger=self.logger,
        )

    def knife(
        self,
        args: List[str],
        check: bool = True,
        cmd_input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        return run_command(
            ["knife", *args],
            self.app_settings,
            check=check,
            capture_output=True,
            cmd_input=cmd_input,
            current_logger=self.logger,
        )
