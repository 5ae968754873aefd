# admin_setup/installer.py
# -*- coding: utf-8 -*-
"""
The admin node installation pipeline.

Stages run strictly in order through the Orchestrator; the first failing
stage stops the run and its error propagates to the caller. Every stage is
safe to repeat, so a failed run is recovered by fixing the cause and running
the installer again.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from admin_setup import config as static_config
from admin_setup.barclamps import InstallableUnitInstaller
from admin_setup.chef_bootstrap import (
    CrowbarBootstrapper,
    configure_knife,
    run_initial_chef_client,
)
from admin_setup.config_models import AppSettings
from admin_setup.crowbar_client import CrowbarClient
from admin_setup.dev_setup import perform_dev_setup, prepare_dev_prerequisites
from admin_setup.install_key import ensure_install_key
from admin_setup.post_install import PostInstallVerifier
from admin_setup.preflight import Node, PreflightValidator
from admin_setup.proposals import ProposalManager
from admin_setup.repositories import RepositoryValidator
from admin_setup.services import ServiceSupervisor
from admin_setup.services_setup import start_required_services
from admin_setup.state_store import DeploymentGate, MarkerStore
from admin_setup.transitions import LifecycleState, TransitionHook, TransitionStateMachine
from common.command_utils import log_installer
from common.orchestrator import Orchestrator
from common.progress import ProgressIndicator
from common.system_utils import log_host_diagnostics

module_logger = logging.getLogger(__name__)


class AdminNodeInstaller:
    """Wires the installer components together and runs them as stages."""

    def __init__(
        self,
        app_settings: AppSettings,
        progress: Optional[ProgressIndicator] = None,
        sleep_func: Callable[[float], None] = time.sleep,
        transition_hooks: Optional[Dict[LifecycleState, TransitionHook]] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.progress = progress
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

        self.client = CrowbarClient(app_settings, self.logger)
        self.supervisor = ServiceSupervisor(app_settings, sleep_func, self.logger)
        self.store = MarkerStore.from_settings(app_settings, self.logger)
        self.gate = DeploymentGate(self.store)
        self.preflight = PreflightValidator(app_settings, self.logger)
        self.repositories = RepositoryValidator(app_settings, self.logger)
        self.units = InstallableUnitInstaller(app_settings, self.logger)
        self.proposals = ProposalManager(self.client, app_settings, sleep_func, self.logger)
        self.transitions = TransitionStateMachine(
            self.client,
            self.store,
            app_settings,
            hooks=transition_hooks,
            sleep_func=sleep_func,
            current_logger=self.logger,
        )
        self.bootstrapper = CrowbarBootstrapper(
            self.client, self.supervisor, app_settings, self.logger
        )
        self.verifier = PostInstallVerifier(
            self.client, self.supervisor, app_settings, self.logger
        )

    # --- stages ---------------------------------------------------------

    def sanity_checks(self, app_settings: AppSettings, context: Dict[str, Any]) -> Node:
        node = self.preflight.validate()
        context["node"] = node
        return node

    def host_diagnostics(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        log_host_diagnostics(app_settings, self.logger)

    def dev_prerequisites(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        prepare_dev_prerequisites(app_settings, self.logger)

    def validate_repositories(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.repositories.validate_all()

    def dev_setup(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        perform_dev_setup(app_settings, self.logger)

    def start_services(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        start_required_services(self.supervisor, app_settings, self.logger)

    def initial_chef_run(self, app_settings: AppSettings, context: Dict[str, Any]) -> bool:
        configure_knife(self.client, app_settings, self.logger)
        return run_initial_chef_client(self.client, context["node"], app_settings, self.logger)

    def install_barclamps(self, app_settings: AppSettings, context: Dict[str, Any]):
        key = ensure_install_key(app_settings, self.logger)
        self.client.set_install_key(key)
        return self.units.install_all()

    def bootstrap_crowbar(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        self.bootstrapper.bootstrap(context["node"])

    def apply_proposal(self, app_settings: AppSettings, context: Dict[str, Any]):
        # The looping chef-client trigger does nothing while the gate is held.
        self.gate.acquire()
        return self.proposals.negotiate()

    def transition_to_ready(self, app_settings: AppSettings, context: Dict[str, Any]):
        visited = self.transitions.run(context["node"])
        self.gate.release()
        return visited

    def start_chef_client(self, app_settings: AppSettings, context: Dict[str, Any]) -> None:
        self.verifier.start_chef_client_service()

    def post_install_checks(self, app_settings: AppSettings, context: Dict[str, Any]) -> str:
        admin_ip = self.verifier.verify()
        self.store.set(static_config.INSTALLED_OK_KEY)
        context["admin_ip"] = admin_ip
        return admin_ip

    # --- pipeline -------------------------------------------------------

    def build_orchestrator(self) -> Orchestrator:
        orchestrator = Orchestrator(self.app_settings, self.logger, self.progress)
        development = self.app_settings.development_mode

        orchestrator.add_task("sanity_checks", self.sanity_checks, summary="Performing sanity checks")
        orchestrator.add_task("host_diagnostics", self.host_diagnostics, fatal=False)
        if development:
            orchestrator.add_task("dev_prerequisites", self.dev_prerequisites)
        orchestrator.add_task("validate_repositories", self.validate_repositories)
        if development:
            orchestrator.add_task(
                "dev_setup", self.dev_setup, summary="Performing additional setup for git"
            )
        orchestrator.add_task("start_services", self.start_services, summary="Starting required services")
        orchestrator.add_task(
            "initial_chef_run", self.initial_chef_run, summary="Performing initial chef-client run"
        )
        orchestrator.add_task("install_barclamps", self.install_barclamps, summary="Installing barclamps")
        orchestrator.add_task("bootstrap_crowbar", self.bootstrap_crowbar, summary="Bootstrapping Crowbar setup")
        orchestrator.add_task(
            "apply_proposal",
            self.apply_proposal,
            summary="Applying Crowbar configuration for administration server",
        )
        orchestrator.add_task(
            "transition_to_ready",
            self.transition_to_ready,
            summary='Transitioning administration server to "ready"',
        )
        orchestrator.add_task("start_chef_client", self.start_chef_client, summary="Starting chef-client")
        orchestrator.add_task(
            "post_install_checks",
            self.post_install_checks,
            summary="Performing post-installation sanity checks",
        )
        return orchestrator

    def warn_if_gate_held(self) -> bool:
        """Report a deployment gate left behind by an aborted run."""
        if not self.gate.is_held():
            return False
        log_installer(
            f"{self.symbols.get('warning', '⚠️')} Deployment gate {self.app_settings.paths.deploying_marker} "
            f"is still held from an earlier run (since {self.gate.held_since() or 'unknown'}). "
            "It stays in place until this run reaches \"ready\".",
            "warning",
            self.logger,
            self.app_settings,
        )
        return True

    def run(self) -> str:
        """
        Run every stage.

        Returns:
            The admin network IP of the deployed node.

        Raises:
            InstallerError: Or subprocess.CalledProcessError, from the failed stage.
        """
        self.warn_if_gate_held()
        orchestrator = self.build_orchestrator()
        orchestrator.run()
        return orchestrator.context["admin_ip"]
