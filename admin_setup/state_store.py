# admin_setup/state_store.py
# -*- coding: utf-8 -*-
"""
Marker-file backed shared state and the deployment gate.

The markers are shared with processes outside this installer (the looping
chef-client trigger reads the deploying marker and asserts the chef-client
lock), so nothing here caches state in memory: every query hits the file
system.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from common.command_utils import get_symbols, log_installer

module_logger = logging.getLogger(__name__)


class MarkerStore:
    """Maps state keys to marker files; a key is set while its file exists."""

    def __init__(
        self,
        markers: Dict[str, Path],
        app_settings: Optional[AppSettings] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.markers = dict(markers)
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger

    @classmethod
    def from_settings(
        cls,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ) -> "MarkerStore":
        paths = app_settings.paths
        return cls(
            {
                static_config.DEPLOYING_KEY: paths.deploying_marker,
                static_config.CHEF_CLIENT_LOCK_KEY: paths.chef_client_lock,
                static_config.INSTALLED_OK_KEY: paths.installed_ok_marker,
            },
            app_settings,
            current_logger,
        )

    def path_for(self, key: str) -> Path:
        try:
            return self.markers[key]
        except KeyError:
            raise KeyError(f"Unknown state key '{key}'") from None

    def is_set(self, key: str) -> bool:
        return self.path_for(key).exists()

    def set(self, key: str) -> None:
        """Create the marker, recording when it was set."""
        marker = self.path_for(key)
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text(
            datetime.now(timezone.utc).isoformat() + "\n", encoding="utf-8"
        )
        log_installer(
            f"{get_symbols(self.app_settings).get('gear', '⚙️')} Set state '{key}' ({marker})",
            "debug",
            self.logger,
            self.app_settings,
        )

    def timestamp(self, key: str) -> Optional[str]:
        """Return the recorded timestamp, or None when the key is not set."""
        marker = self.path_for(key)
        if not marker.exists():
            return None
        return marker.read_text(encoding="utf-8").strip() or None

    def clear(self, key: str) -> None:
        marker = self.path_for(key)
        marker.unlink(missing_ok=True)
        log_installer(
            f"{get_symbols(self.app_settings).get('gear', '⚙️')} Cleared state '{key}' ({marker})",
            "debug",
            self.logger,
            self.app_settings,
        )

    def wait_until_clear(
        self,
        key: str,
        poll_interval: float,
        sleep_func: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Block until the key is no longer set. There is no timeout.

        Returns:
            The number of polls that found the key still set.
        """
        polls = 0
        while self.is_set(key):
            if polls == 0:
                log_installer(
                    f"{get_symbols(self.app_settings).get('info', 'ℹ️')} Waiting for '{key}' to clear...",
                    "info",
                    self.logger,
                    self.app_settings,
                )
            polls += 1
            sleep_func(poll_interval)
        return polls


class DeploymentGate:
    """
    Tells the looping chef-client trigger to stand down while we deploy.

    acquire() and release() are deliberately not a context manager: a
    failed run leaves the gate held.
    """

    def __init__(self, store: MarkerStore, key: str = static_config.DEPLOYING_KEY):
        self.store = store
        self.key = key

    def acquire(self) -> None:
        self.store.set(self.key)

    def release(self) -> None:
        self.store.clear(self.key)

    def is_held(self) -> bool:
        return self.store.is_set(self.key)

    def held_since(self) -> Optional[str]:
        return self.store.timestamp(self.key)
