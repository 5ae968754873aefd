# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: checksums, in-place edits and directories.
"""

import hashlib
import logging
import re
from pathlib import Path
from typing import Optional

from admin_setup.config_models import AppSettings

from .command_utils import get_symbols, log_installer

module_logger = logging.getLogger(__name__)

_CHUNK_SIZE = 65536


def md5_of_file(file_path: Path) -> str:
    """
    Compute the MD5 hex digest of a file, reading it in chunks.

    Raises:
        OSError: If the file cannot be read.
    """
    hasher = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def substitute_in_file(
    file_path: Path,
    pattern: str,
    replacement: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    flags: int = 0,
) -> int:
    """
    Apply a regular expression substitution to a file in place.

    The file is only rewritten when at least one substitution happened.

    Args:
        file_path: File to edit.
        pattern: Regular expression to search for.
        replacement: Replacement text. Backslash escapes are not expanded.
        app_settings: Settings used for log symbols.
        current_logger: Optional logger override.
        flags: Flags passed to re.subn.

    Returns:
        The number of substitutions made.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    original = file_path.read_text(encoding="utf-8")
    updated, count = re.subn(
        pattern, lambda _match: replacement, original, flags=flags
    )
    if count:
        file_path.write_text(updated, encoding="utf-8")
        log_installer(
            f"{symbols.get('gear', '⚙️')} Updated {count} occurrence(s) in {file_path}",
            "debug",
            logger_to_use,
            app_settings,
        )
    return count


def remove_matching_lines(
    file_path: Path,
    pattern: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """Delete every line of a file that matches a regular expression."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    regex = re.compile(pattern)

    lines = file_path.read_text(encoding="utf-8").splitlines(keepends=True)
    kept = [line for line in lines if not regex.search(line)]
    removed = len(lines) - len(kept)
    if removed:
        file_path.write_text("".join(kept), encoding="utf-8")
        log_installer(
            f"{symbols.get('gear', '⚙️')} Removed {removed} line(s) matching '{pattern}' from {file_path}",
            "info",
            logger_to_use,
            app_settings,
        )
    return removed


def ensure_directory(
    directory_path: Path,
    mode: Optional[int] = None,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Create a directory (and parents) if needed, optionally forcing its mode.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if not directory_path.is_dir():
        log_installer(
            f"{symbols.get('info', 'ℹ️')} Creating directory: {directory_path}",
            "info",
            logger_to_use,
            app_settings,
        )
        directory_path.mkdir(parents=True, exist_ok=True)
    if mode is not None:
        directory_path.chmod(mode)
    return directory_path
