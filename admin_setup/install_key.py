# admin_setup/install_key.py
# -*- coding: utf-8 -*-
"""
Machine install credential used by crowbar clients.

The key file is written once and never regenerated; its secret replaces the
`machine_password` placeholder in the crowbar attributes document.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from admin_setup.config_models import AppSettings
from admin_setup.errors import ConfigurationError
from common.command_utils import log_installer
from common.file_utils import substitute_in_file
from common.json_utils import get_nested, load_json_document

module_logger = logging.getLogger(__name__)

INSTALL_KEY_USER = "machine-install"
PASSWORD_PLACEHOLDER = "machine_password"


def read_crowbar_realm(attributes_file: Path) -> Optional[str]:
    """Return attributes.crowbar.realm, or None when the document has none."""
    if not attributes_file.is_file():
        return None
    try:
        document = load_json_document(attributes_file)
    except ValueError as e:
        raise ConfigurationError(f"{attributes_file} is not a valid JSON object: {e}") from e
    realm = get_nested(document, "attributes.crowbar.realm")
    return str(realm) if realm else None


def generate_install_key() -> str:
    return f"{INSTALL_KEY_USER}:{hashlib.sha512(os.urandom(65536)).hexdigest()}"


def ensure_install_key(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Create the install key if crowbar uses a realm, and apply it.

    Returns:
        The full key ("machine-install:<secret>"), or None without a realm.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    attributes_file = app_settings.proposal_attributes_file
    key_file = app_settings.paths.install_key_file

    if not read_crowbar_realm(attributes_file):
        log_installer(
            f"{symbols.get('info', 'ℹ️')} No crowbar realm configured; no install key needed.",
            "info",
            logger_to_use,
            app_settings,
        )
        return None

    if not key_file.exists():
        key_file.parent.mkdir(parents=True, exist_ok=True)
        key_file.write_text(generate_install_key() + "\n", encoding="utf-8")
        key_file.chmod(0o600)
        log_installer(
            f"{symbols.get('success', '✅')} Generated install key in {key_file}",
            "info",
            logger_to_use,
            app_settings,
        )

    key = key_file.read_text(encoding="utf-8").strip()
    secret = key.split(":", 1)[-1]
    substitute_in_file(
        attributes_file, PASSWORD_PLACEHOLDER, secret, app_settings, logger_to_use
    )
    return key
