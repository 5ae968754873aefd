# admin_setup/proposals.py
# -*- coding: utf-8 -*-
"""
Creation and commit of the crowbar default proposal.

Creation often fails right after the chef server came up because solr has
not indexed everything yet, so it is retried with a chef-client run between
attempts. A failed commit points at a structural problem (typically a
missing barclamp) and is not retried.
"""

import json
import logging
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from admin_setup.config_models import AppSettings
from admin_setup.crowbar_client import CrowbarClient
from admin_setup.errors import (
    ConfigurationError,
    ProposalCommitError,
    ProposalCreateError,
)
from common.command_utils import log_installer
from common.json_utils import JsonFileType, check_json_file
from common.retry_utils import RetryExhaustedError, retry_with_side_effect

module_logger = logging.getLogger(__name__)


class ProposalOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def write_json_artefact(document: Dict[str, Any], target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(document, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return target


class ProposalManager:
    """Negotiates a named proposal of one barclamp with crowbar."""

    def __init__(
        self,
        client: CrowbarClient,
        app_settings: AppSettings,
        sleep_func: Callable[[float], None] = time.sleep,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.app_settings = app_settings
        self.sleep_func = sleep_func
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols
        self.barclamp = app_settings.proposal.barclamp

    def exists(self, name: str) -> bool:
        try:
            return name in self.client.list_proposals(self.barclamp)
        except subprocess.CalledProcessError:
            log_installer(
                f"{self.symbols.get('warning', '⚠️')} Could not list {self.barclamp} proposals; assuming '{name}' does not exist.",
                "warning",
                self.logger,
                self.app_settings,
            )
            return False

    def _usable_attributes_file(self, attributes_file: Optional[Path]) -> Optional[Path]:
        """The attributes file if it exists, after checking it is valid JSON."""
        if attributes_file is None or not attributes_file.exists():
            return None
        if check_json_file(attributes_file) != JsonFileType.VALID_JSON:
            raise ConfigurationError(
                f"Proposal attributes file {attributes_file} is not valid JSON."
            )
        return attributes_file

    def _kick_backend(self, attempt: int, error: BaseException) -> None:
        log_installer(
            f"{self.symbols.get('warning', '⚠️')} Proposal create failed, pass {attempt}. Will kick Chef and try again.",
            "warning",
            self.logger,
            self.app_settings,
        )
        try:
            self.client.run_chef_client()
        except subprocess.CalledProcessError as e:
            log_installer(
                f"{self.symbols.get('warning', '⚠️')} chef-client run between proposal attempts failed: {e}",
                "warning",
                self.logger,
                self.app_settings,
            )

    def ensure_created(
        self,
        name: Optional[str] = None,
        attributes_file: Optional[Path] = None,
    ) -> ProposalOutcome:
        """
        Create the proposal unless crowbar already lists it.

        Raises:
            ConfigurationError: The attributes file exists but is not valid JSON.
            ProposalCreateError: Every creation attempt failed.
        """
        name = name or self.app_settings.proposal.name
        if attributes_file is None:
            attributes_file = self.app_settings.proposal_attributes_file
        usable_file = self._usable_attributes_file(attributes_file)

        if self.exists(name):
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} Proposal '{name}' of {self.barclamp} already exists.",
                "info",
                self.logger,
                self.app_settings,
            )
            return ProposalOutcome.ALREADY_EXISTS

        attempts = self.app_settings.proposal.create_attempts
        try:
            retry_with_side_effect(
                lambda: self.client.create_proposal(self.barclamp, name, usable_file),
                attempts=attempts,
                on_failure=self._kick_backend,
                backoff=self.app_settings.proposal.retry_pause,
                retry_on=(subprocess.CalledProcessError,),
                sleep_func=self.sleep_func,
                description=f"Creating proposal '{name}'",
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
        except RetryExhaustedError as e:
            raise ProposalCreateError(
                f"Could not create {name} proposal", name, attempts
            ) from e

        log_installer(
            f"{self.symbols.get('success', '✅')} Proposal '{name}' of {self.barclamp} created.",
            "info",
            self.logger,
            self.app_settings,
        )
        return ProposalOutcome.CREATED

    def commit(self, name: Optional[str] = None) -> None:
        """Commit the proposal once; there is no retry."""
        name = name or self.app_settings.proposal.name
        try:
            self.client.commit_proposal(self.barclamp, name)
        except subprocess.CalledProcessError as e:
            raise ProposalCommitError(f"Could not commit {name} proposal!", name) from e

    def show(self, name: Optional[str] = None) -> Dict[str, Any]:
        name = name or self.app_settings.proposal.name
        return self.client.show_proposal(self.barclamp, name)

    def save_artefact(self, fetch: Callable[[], Dict[str, Any]], file_name: str) -> Optional[Path]:
        """Save a crowbar JSON document in the log directory for later inspection."""
        target = self.app_settings.paths.log_dir / file_name
        try:
            return write_json_artefact(fetch(), target)
        except (subprocess.CalledProcessError, ValueError, OSError) as e:
            log_installer(
                f"{self.symbols.get('warning', '⚠️')} Could not save {target}: {e}",
                "warning",
                self.logger,
                self.app_settings,
            )
            return None

    def negotiate(self, name: Optional[str] = None) -> ProposalOutcome:
        """
        Create (if needed) and commit the proposal, then converge with chef-client.

        The proposal is committed whether it was created now or by an
        earlier run.
        """
        name = name or self.app_settings.proposal.name
        outcome = self.ensure_created(name)
        self.save_artefact(lambda: self.show(name), f"{name}-proposal.json")
        self.commit(name)
        self.save_artefact(
            lambda: self.client.show(self.barclamp, name), f"{name}.json"
        )
        self.client.run_chef_client()
        return outcome
