# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the admin node installer.

This module wraps the host queries the installer relies on: host naming,
the root account's password state, firewall rules and resolver
configuration.
"""

import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from admin_setup.config_models import AppSettings
from common.command_utils import get_symbols, log_installer, run_command

module_logger = logging.getLogger(__name__)

# `iptables -n -L` output of a fully open firewall only has blank lines,
# chain headers and column headers.
_OPEN_FIREWALL_LINE = re.compile(r"^$|^Chain [^ ]|^target     prot")


def _c_locale_env() -> Dict[str, str]:
    env = dict(os.environ)
    env["LANG"] = "C"
    env["LC_ALL"] = "C"
    return env


def _query_hostname(
    flag: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger],
) -> Optional[str]:
    try:
        result = run_command(
            ["hostname", flag],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=current_logger,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    return (result.stdout or "").strip() or None


def get_fqdn(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Return `hostname -f`, or None if it fails or is empty."""
    return _query_hostname("-f", app_settings, current_logger)


def get_dns_domain(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Return `hostname -d`, or None if it fails or is empty."""
    return _query_hostname("-d", app_settings, current_logger)


def get_password_field(
    user: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Return the encrypted password field of a user's shadow entry.

    Returns None when the user has no shadow entry or it cannot be read.
    """
    try:
        result = run_command(
            ["getent", "shadow", user],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=current_logger,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    fields = (result.stdout or "").strip().split(":")
    if len(fields) < 2:
        return None
    return fields[1]


def is_password_locked_or_unset(password_field: Optional[str]) -> bool:
    """A password of `*` or one starting with `!` cannot be used to log in."""
    if password_field is None:
        return True
    return password_field.startswith("*") or password_field.startswith("!")


def firewall_is_disabled(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    True only if iptables lists no rules at all.

    Any line other than blank lines, chain headers and the column header is
    a rule, and a rule means the firewall is not completely disabled.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["iptables", "-n", "-L"],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
            env=_c_locale_env(),
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        log_installer(
            f"{symbols.get('warning', '!')} Could not list firewall rules: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    for line in (result.stdout or "").splitlines():
        if not _OPEN_FIREWALL_LINE.search(line):
            log_installer(
                f"{symbols.get('debug', '🐛')} Firewall rule found: {line}",
                "debug",
                logger_to_use,
                app_settings,
            )
            return False
    return True


def read_nameservers(resolv_conf: Path) -> List[str]:
    """Return the nameserver entries of a resolv.conf, in order."""
    if not resolv_conf.is_file():
        return []
    nameservers = []
    for line in resolv_conf.read_text(encoding="utf-8").splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] == "nameserver":
            nameservers.append(fields[1])
    return nameservers


def log_host_diagnostics(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Write host details that help remote debugging into the install log.

    Nothing here is fatal: failing commands are logged and skipped.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    paths = app_settings.paths
    commands: List[List[str]] = [
        ["zypper", "lr", "-d"],
        ["rpm", "-qV", "crowbar"],
        ["lscpu"],
        ["df", "-h"],
        ["free", "-m"],
        [
            "ls", "-la",
            str(paths.repos_root),
            str(paths.repos_root / "Cloud"),
            str(paths.tftpboot_root / "suse-11.3" / "install"),
        ],
    ]
    # The autoyast profile might not exist yet in development mode.
    if paths.autoyast_template.is_file():
        commands.append(["grep", "media_url", str(paths.autoyast_template)])

    for command in commands:
        try:
            result = run_command(
                command,
                app_settings,
                check=False,
                capture_output=True,
                current_logger=logger_to_use,
            )
        except FileNotFoundError:
            continue
        output = "\n".join(
            part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
        )
        log_installer(
            f"{symbols.get('debug', '🐛')} $ {' '.join(command)}\n{output}",
            "info",
            logger_to_use,
            app_settings,
        )
