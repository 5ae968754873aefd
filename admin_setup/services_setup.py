# admin_setup/services_setup.py
# -*- coding: utf-8 -*-
"""
Bring up the services chef-server depends on: RabbitMQ, CouchDB and the
chef-server daemons themselves.
"""

import base64
import logging
import os
import re
from typing import Optional

from admin_setup import config as static_config
from admin_setup.config_models import AppSettings
from admin_setup.services import ServiceSupervisor
from common.command_utils import log_installer, run_command
from common.file_utils import substitute_in_file

module_logger = logging.getLogger(__name__)


def generate_amqp_password() -> str:
    """16 random bytes, base64 encoded, without slashes."""
    return base64.b64encode(os.urandom(16)).decode("ascii").replace("/", "")


def prepare_message_queue(
    supervisor: ServiceSupervisor,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Start RabbitMQ and make sure the chef vhost and user exist.

    A newly created chef user gets a random password, which is written to
    the amqp_pass setting of the chef server and solr configuration.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    vhost = static_config.RABBITMQ_VHOST
    user = static_config.RABBITMQ_USER

    supervisor.enable_and_ensure_running(
        static_config.RABBITMQ_SERVICE, static_config.RABBITMQ_HEALTHY_PATTERN
    )

    vhosts = run_command(
        ["rabbitmqctl", "list_vhosts"],
        app_settings,
        check=True,
        capture_output=True,
        current_logger=logger_to_use,
    ).stdout or ""
    if re.search(rf"^{re.escape(vhost)}$", vhosts, re.MULTILINE):
        log_installer(
            f"{symbols.get('info', 'ℹ️')} RabbitMQ vhost {vhost} already added.",
            "info",
            logger_to_use,
            app_settings,
        )
    else:
        run_command(
            ["rabbitmqctl", "add_vhost", vhost],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
        )

    users_result = run_command(
        ["rabbitmqctl", "list_users"],
        app_settings,
        check=True,
        capture_output=True,
        current_logger=logger_to_use,
    )
    users = (users_result.stdout or "") + (users_result.stderr or "")
    if re.search(rf"^{re.escape(user)}\t", users, re.MULTILINE):
        log_installer(
            f"{symbols.get('info', 'ℹ️')} RabbitMQ user {user} already added.",
            "info",
            logger_to_use,
            app_settings,
        )
    else:
        password = generate_amqp_password()
        run_command(
            ["rabbitmqctl", "add_user", user, password],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
        )
        for config_name in ("server.rb", "solr.rb"):
            config_file = app_settings.paths.chef_config_dir / config_name
            if config_file.is_file():
                substitute_in_file(
                    config_file,
                    r'amqp_pass ".*"',
                    f'amqp_pass "{password}"',
                    app_settings,
                    logger_to_use,
                )
            else:
                log_installer(
                    f"{symbols.get('warning', '⚠️')} {config_file} not found; amqp_pass not updated.",
                    "warning",
                    logger_to_use,
                    app_settings,
                )

    run_command(
        ["rabbitmqctl", "set_permissions", "-p", vhost, user, ".*", ".*", ".*"],
        app_settings,
        check=True,
        capture_output=True,
        current_logger=logger_to_use,
    )


def prepare_chef_server(
    supervisor: ServiceSupervisor,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Start CouchDB, lock down the chef config and start the chef-server daemons."""
    logger_to_use = current_logger if current_logger else module_logger
    paths = app_settings.paths

    supervisor.enable_and_ensure_running(static_config.COUCHDB_SERVICE)

    for restricted in (
        paths.chef_config_dir,
        paths.chef_config_dir / "server.rb",
        paths.chef_config_dir / "solr.rb",
    ):
        if restricted.exists():
            # o-rwx
            restricted.chmod(restricted.stat().st_mode & ~0o007)

    if paths.solr_config.is_file():
        substitute_in_file(
            paths.solr_config,
            r"<maxFieldLength>.*</maxFieldLength>",
            f"<maxFieldLength>{static_config.SOLR_MAX_FIELD_LENGTH}</maxFieldLength>",
            app_settings,
            logger_to_use,
        )

    for service in static_config.CHEF_SERVER_SERVICES:
        supervisor.enable(service)
    for service in static_config.CHEF_SERVER_SERVICES:
        supervisor.ensure_running(service)


def start_required_services(
    supervisor: ServiceSupervisor,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    prepare_message_queue(supervisor, app_settings, current_logger)
    prepare_chef_server(supervisor, app_settings, current_logger)
