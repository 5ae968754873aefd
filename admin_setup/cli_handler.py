# admin_setup/cli_handler.py
# -*- coding: utf-8 -*-
"""
Handles Command Line Interface (CLI) output for the admin node installer.
"""

import datetime
import logging
import sys
from typing import Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from common.command_utils import log_installer
from common.progress import ProgressIndicator

module_logger = logging.getLogger(__name__)

PREMATURE_TERMINATION_NOTICE = """
Crowbar installation terminated prematurely.  Please examine the above
output or {log_file} for clues as to what went wrong.
You should also check the SUSE Cloud Installation Manual, in
particular the Troubleshooting section.  Note that this script can
safely be re-run multiple times if required.
"""


def view_configuration(
    app_config: AppSettings, current_logger: Optional[logging.Logger] = None
) -> str:
    """
    Displays the current effective configuration values of the installer,
    as resolved from CLI, YAML configuration, environment variables and the
    model defaults.

    Parameters:
        app_config (AppSettings): The resolved configuration.
        current_logger (Optional[logging.Logger]): A logger instance to use for
            logging output. If not provided, the module's default logger is used.

    Returns:
        str: The rendered configuration text.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_config.symbols
    paths = app_config.paths

    config_text = f"{symbols.get('info', 'ℹ️')} Current effective configuration values (CLI > YAML > ENV > Defaults):\n\n"
    config_text += f"  Development Mode (--from-git):  {app_config.development_mode}\n"
    config_text += f"  Verbose:                        {app_config.verbose}\n"
    config_text += f"  Run Barclamp Tests:             {app_config.run_tests}\n"
    config_text += f"  Log Prefix (installer):         {app_config.log_prefix}\n"
    config_text += f"  Web UI Port:                    {app_config.web_ui_port}\n\n"

    config_text += "  Paths (paths.*):\n"
    config_text += f"    Barclamp Sources:             {paths.barclamp_src}\n"
    config_text += f"    Proposal Attributes File:     {app_config.proposal_attributes_file}\n"
    config_text += f"    Crowbar Framework:            {paths.framework_dir}\n"
    config_text += f"    Tftpboot Root:                {paths.tftpboot_root}\n"
    config_text += f"    Install Log:                  {paths.log_file}\n"
    config_text += f"    Deployment Gate Marker:       {paths.deploying_marker}\n"
    config_text += f"    Chef Client Lock:             {paths.chef_client_lock}\n\n"

    config_text += "  Repositories (repos.*):\n"
    config_text += f"    Skip Checks:                  {', '.join(app_config.repos.skip_checks) or '(none)'}\n"
    config_text += f"    PTF Repository:               {app_config.repos.ptf_repo}\n\n"

    config_text += "  Proposal (proposal.*):\n"
    config_text += f"    Name / Barclamp:              {app_config.proposal.name} / {app_config.proposal.barclamp}\n"
    config_text += f"    Create Attempts:              {app_config.proposal.create_attempts}\n\n"

    config_text += f"  Barclamps (after {app_config.framework_barclamp}): {' '.join(app_config.barclamps)}\n\n"

    config_text += f"  Script Version (static):        {static_config.SCRIPT_VERSION}\n"
    config_text += f"  Timestamp (current view):       {datetime.datetime.now().strftime('%Y-%m-%d-%H%M%S')}\n"

    log_installer(
        "Displaying current configuration:", "info", logger_to_use, app_config
    )
    log_installer(f"\n{config_text}\n", "info", logger_to_use, app_config)
    return config_text


def report_failure(
    message: str,
    app_settings: AppSettings,
    progress: Optional[ProgressIndicator] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Print a fatal error and the re-run notice; the spinner is stopped first."""
    logger_to_use = current_logger if current_logger else module_logger
    if progress is not None:
        progress.fail()
    notice = PREMATURE_TERMINATION_NOTICE.format(log_file=app_settings.paths.log_file)
    log_installer(
        f"{app_settings.symbols.get('error', '❌')} Error: {message}",
        "error",
        logger_to_use,
        app_settings,
    )
    log_installer(notice, "info", logger_to_use, app_settings)
    print(f"\nError: {message}\n{notice}", file=sys.stderr)
