# admin_setup/main_installer.py
# -*- coding: utf-8 -*-
"""
Main entry point for the admin node installer.

Handles argument parsing, configuration loading and logging setup, then
runs the installation pipeline. This is the only place that turns an error
into a process exit code.
"""

import argparse
import logging
import subprocess
import sys
from typing import List, Optional

from admin_setup import config as static_config
from admin_setup.cli_handler import report_failure, view_configuration
from admin_setup.config_loader import load_app_settings
from admin_setup.config_models import AppSettings
from admin_setup.errors import InstallerError
from admin_setup.installer import AdminNodeInstaller
from admin_setup.post_install import render_summary
from admin_setup.state_store import DeploymentGate, MarkerStore
from common.command_utils import log_installer
from common.core_utils import setup_logging
from common.progress import ProgressIndicator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crowbar admin node installer. Validates the host, installs the barclamps "
                    "and brings the admin server to the \"ready\" state.",
        epilog="Example: install-admin-node --verbose",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--from-git", action="store_true",
                        help="Development mode: install barclamps from git checkouts, relax repository checks.")
    parser.add_argument("--config", default=None, help="YAML configuration file.")
    parser.add_argument("--view-config", action="store_true", help="View current configuration settings and exit.")
    parser.add_argument("--release-gate", action="store_true",
                        help="Remove a deployment gate left behind by an aborted run and exit.")

    config_group = parser.add_argument_group("Configuration Overrides")
    config_group.add_argument("--proposal-file", default=None,
                              help="JSON attributes document for the default proposal.")
    config_group.add_argument("--barclamp-src", default=None, help="Directory containing the barclamp sources.")
    config_group.add_argument("--skip-repo-check", action="append", default=[], metavar="NAME",
                              help="Repository to exempt from strict validation (repeatable).")
    config_group.add_argument("--verbose", action="store_true", help="Mirror the install log on the console.")
    config_group.add_argument("--run-tests", action="store_true",
                              help="Run the barclamp self-test after installation.")
    config_group.add_argument("-l", "--log-prefix", default=None,
                              help="Prefix for log messages from this script.")
    return parser


def release_gate(app_settings: AppSettings) -> int:
    gate = DeploymentGate(MarkerStore.from_settings(app_settings, logger))
    if gate.is_held():
        gate.release()
        message = f"Deployment gate {app_settings.paths.deploying_marker} released."
    else:
        message = "Deployment gate is not held; nothing to do."
    log_installer(f"{app_settings.symbols.get('info', 'ℹ️')} {message}", "info", logger, app_settings)
    print(message)
    return 0


def main(args: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit as e:
        return e.code

    try:
        app_settings = load_app_settings(parsed_args, parsed_args.config)
    except SystemExit as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level=logging.DEBUG if app_settings.verbose else logging.INFO,
        log_file=str(app_settings.paths.log_file),
        log_to_console=app_settings.verbose,
        log_prefix=app_settings.log_prefix,
        symbols=app_settings.symbols,
    )
    log_installer(
        f"{app_settings.symbols.get('sparkles', '✨')} Starting admin node installer "
        f"(Script Version: {static_config.SCRIPT_VERSION}) with args: {' '.join(args if args is not None else sys.argv[1:])}",
        "info",
        logger,
        app_settings,
    )

    if parsed_args.view_config:
        print(view_configuration(app_settings, logger))
        return 0
    if parsed_args.release_gate:
        return release_gate(app_settings)

    progress = ProgressIndicator(verbose=app_settings.verbose)
    installer = AdminNodeInstaller(app_settings, progress=progress, current_logger=logger)
    try:
        admin_ip = installer.run()
    except InstallerError as e:
        report_failure(e.message, app_settings, progress, logger)
        return 1
    except subprocess.CalledProcessError as e:
        command = subprocess.list2cmdline(e.cmd) if isinstance(e.cmd, list) else str(e.cmd)
        report_failure(f"Command `{command}` failed (rc {e.returncode}).", app_settings, progress, logger)
        return 1
    except Exception as e:
        logger.critical(f"Unexpected error: {e}", exc_info=True)
        report_failure(str(e), app_settings, progress, logger)
        return 1

    summary = render_summary(admin_ip, app_settings.web_ui_port)
    log_installer(summary, "info", logger, app_settings)
    progress.message(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
