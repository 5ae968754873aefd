# admin_setup/transitions.py
# -*- coding: utf-8 -*-
"""
Drives the admin node through the crowbar lifecycle states up to "ready".
"""

import logging
import subprocess
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.crowbar_client import CrowbarClient
from admin_setup.errors import TransitionError
from admin_setup.preflight import Node
from admin_setup.state_store import MarkerStore
from common.command_utils import log_installer

module_logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """Node lifecycle states, in the only order they may be entered."""

    DISCOVERING = "discovering"
    DISCOVERED = "discovered"
    HARDWARE_INSTALLING = "hardware-installing"
    HARDWARE_INSTALLED = "hardware-installed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    READYING = "readying"
    READY = "ready"


LIFECYCLE_ORDER: List[LifecycleState] = list(LifecycleState)

# A hook receives the node and returns False (or raises) to stop the run.
TransitionHook = Callable[[Node], bool]


class TransitionStateMachine:
    """
    Walks every lifecycle state in order; there is no resuming or skipping.

    For each state: wait until the chef-client lock is released, ask crowbar
    for the transition, run the state's hook (if any), then run chef-client
    once so the node converges before the next state.
    """

    def __init__(
        self,
        client: CrowbarClient,
        store: MarkerStore,
        app_settings: AppSettings,
        hooks: Optional[Dict[LifecycleState, TransitionHook]] = None,
        sleep_func: Callable[[float], None] = time.sleep,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.store = store
        self.app_settings = app_settings
        self.hooks: Dict[LifecycleState, TransitionHook] = dict(hooks or {})
        self.sleep_func = sleep_func
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols

    def register_hook(self, state: LifecycleState, hook: TransitionHook) -> None:
        self.hooks[state] = hook

    def _run_hook(self, state: LifecycleState, node: Node) -> None:
        hook = self.hooks.get(state)
        if hook is None:
            return
        try:
            passed = hook(node)
        except Exception as e:
            raise TransitionError(
                f"Sanity check for transitioning to {state.value} failed!",
                state.value,
                cause=str(e),
            ) from e
        if not passed:
            raise TransitionError(
                f"Sanity check for transitioning to {state.value} failed!",
                state.value,
            )

    def advance(self, node: Node, state: LifecycleState) -> None:
        """Enter a single state. Raises TransitionError on any failure."""
        self.store.wait_until_clear(
            static_config.CHEF_CLIENT_LOCK_KEY,
            self.app_settings.timing.lock_poll_interval,
            self.sleep_func,
        )
        log_installer(
            f"{self.symbols.get('step', '➡️')} {state.value}: transitioning {node.fqdn}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            self.client.transition(node.fqdn, state.value)
        except subprocess.CalledProcessError as e:
            raise TransitionError(
                f"Transition to {state.value} failed!", state.value, cause=str(e)
            ) from e

        self._run_hook(state, node)

        try:
            self.client.run_chef_client()
        except subprocess.CalledProcessError as e:
            raise TransitionError(
                f"Chef run for {state.value} transition failed!",
                state.value,
                cause=str(e),
            ) from e

    def run(self, node: Node) -> List[LifecycleState]:
        """
        Enter every state from the first to READY.

        Returns:
            The states entered, in order.

        Raises:
            TransitionError: Identifying the state that failed; no later
                state is attempted.
        """
        visited: List[LifecycleState] = []
        for state in LIFECYCLE_ORDER:
            self.advance(node, state)
            visited.append(state)
        log_installer(
            f"{self.symbols.get('success', '✅')} {node.fqdn} reached state {LifecycleState.READY.value}.",
            "info",
            self.logger,
            self.app_settings,
        )
        return visited
