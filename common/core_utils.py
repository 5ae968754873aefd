#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging setup for the installer.

Everything goes to the install log; the console only mirrors it when the
installer runs verbose, since the progress indicator owns the terminal
otherwise.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from admin_setup.config_models import SYMBOLS_DEFAULT

module_logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_SYMBOL_KEYS: Dict[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}


class SymbolFormatter(logging.Formatter):
    """Formatter exposing a per-level symbol as %(symbol)s."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        symbols: Optional[Dict[str, str]] = None,
    ):
        super().__init__(fmt, datefmt)
        self.symbols = symbols or SYMBOLS_DEFAULT

    def format(self, record):
        key = LEVEL_SYMBOL_KEYS.get(record.levelno)
        record.symbol = self.symbols.get(key, "") if key else ""
        return super().format(record)


def build_log_format(log_prefix: Optional[str] = None) -> str:
    """The record format, with the script's log prefix in front when set."""
    if log_prefix and log_prefix.strip():
        return f"{log_prefix.strip()} {LOG_FORMAT}"
    return LOG_FORMAT


def open_install_log(log_file: Path) -> Optional[logging.Handler]:
    """
    Open the install log for appending, creating its directory.

    Returns None (after a warning on stderr) when the log cannot be opened,
    e.g. when not running as root.
    """
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_file, mode="a")
    except OSError as e:
        print(
            f"Warning: Could not open install log {log_file}: {e}",
            file=sys.stderr,
        )
        return None


def setup_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    log_prefix: Optional[str] = None,
    symbols: Optional[Dict[str, str]] = None,
) -> None:
    """
    Configure the root logger for an installer run.

    Args:
        log_level: Level for the root logger.
        log_file: Install log to append to.
        log_to_console: Mirror records on stdout.
        log_prefix: Prefix for every record, e.g. the calling script's tag.
        symbols: Level symbols; defaults to SYMBOLS_DEFAULT.

    Without any usable handler, records go to stderr so errors are never
    dropped.
    """
    handlers: List[logging.Handler] = []
    if log_file:
        file_handler = open_install_log(Path(log_file))
        if file_handler is not None:
            handlers.append(file_handler)
    if log_to_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    log_format = build_log_format(log_prefix)
    formatter = SymbolFormatter(fmt=log_format, datefmt=LOG_DATE_FORMAT, symbols=symbols)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    module_logger.debug(
        f"Logging configured. Level: {logging.getLevelName(log_level)}. "
        f"Install log: {log_file or 'none'}"
    )
