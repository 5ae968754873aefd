# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.
"""
import ipaddress
import logging
import re
from typing import List, Optional, Tuple

from admin_setup.config_models import AppSettings
from .command_utils import command_succeeds, get_symbols, log_installer, run_command

module_logger = logging.getLogger(__name__)


def resolve_host_addresses(
        hostname: str,
        app_settings: Optional[AppSettings],
        current_logger: Optional[logging.Logger] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Resolve a hostname the way the C library does (getent ahosts).

    Returns:
        A tuple (first IPv4 address, first IPv6 address); either may be None.

    Raises:
        subprocess.CalledProcessError: If the name does not resolve at all.
    """
    result = run_command(
        ["getent", "ahosts", hostname],
        app_settings,
        check=True,
        capture_output=True,
        current_logger=current_logger,
    )
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    for line in result.stdout.splitlines():
        fields = line.split()
        if not fields:
            continue
        address = fields[0]
        if ":" in address:
            ipv6 = ipv6 or address
        else:
            ipv4 = ipv4 or address
    return ipv4, ipv6


def is_loopback_address(address: str) -> bool:
    """True for any loopback address (127.0.0.0/8, ::1)."""
    try:
        return ipaddress.ip_address(address).is_loopback
    except ValueError:
        return False


def list_local_addresses(
        app_settings: Optional[AppSettings],
        current_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Return every address configured on a local interface (`ip addr`)."""
    result = run_command(
        ["ip", "addr"],
        app_settings,
        check=True,
        capture_output=True,
        current_logger=current_logger,
    )
    return re.findall(r"^\s*inet6?\s+([0-9a-fA-F.:]+)(?:/\d+)?", result.stdout, re.MULTILINE)


def is_local_address(
        address: str,
        app_settings: Optional[AppSettings],
        current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Check whether an address is configured on one of the local interfaces.

    Addresses are compared in canonical form so that differently written
    IPv6 addresses still match.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        wanted = ipaddress.ip_address(address)
    except ValueError:
        log_installer(
            f"{symbols.get('warning', '!')} '{address}' is not a valid IP address.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    for configured in list_local_addresses(app_settings, logger_to_use):
        try:
            if ipaddress.ip_address(configured) == wanted:
                return True
        except ValueError:
            continue
    return False


def address_in_range(address: str, start: str, end: str) -> bool:
    """True if start <= address <= end (same address family only)."""
    try:
        addr = ipaddress.ip_address(address)
        low = ipaddress.ip_address(start)
        high = ipaddress.ip_address(end)
    except ValueError:
        return False
    if not (addr.version == low.version == high.version):
        return False
    return low <= addr <= high


def ping_host(
        target: str,
        app_settings: Optional[AppSettings],
        current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Send a single ICMP echo request to the target."""
    return command_succeeds(
        ["ping", "-c", "1", target], app_settings, current_logger
    )

