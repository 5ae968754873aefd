# tests/admin_setup/test_main_installer.py
# -*- coding: utf-8 -*-
import subprocess

import pytest

from admin_setup import main_installer
from admin_setup.errors import ServiceStartError
from admin_setup.state_store import DeploymentGate, MarkerStore


@pytest.fixture
def patched_main(mocker, app_settings):
    mocker.patch("admin_setup.main_installer.load_app_settings", return_value=app_settings)
    mock_setup_logging = mocker.patch("admin_setup.main_installer.setup_logging")
    installer_cls = mocker.patch("admin_setup.main_installer.AdminNodeInstaller")
    return {"setup_logging": mock_setup_logging, "installer": installer_cls}


def test_build_parser_defaults():
    args = main_installer.build_parser().parse_args([])
    assert args.from_git is False
    assert args.skip_repo_check == []
    assert args.release_gate is False


def test_build_parser_repeatable_skip():
    args = main_installer.build_parser().parse_args(
        ["--skip-repo-check", "Cloud-PTF", "--skip-repo-check", "SLES11-SP3-Pool", "--from-git", "-l", "[X]"]
    )
    assert args.skip_repo_check == ["Cloud-PTF", "SLES11-SP3-Pool"]
    assert args.from_git is True
    assert args.log_prefix == "[X]"


def test_unknown_argument_returns_usage_error(capsys):
    assert main_installer.main(["--bogus"]) == 2


def test_success(patched_main, app_settings, capsys):
    patched_main["installer"].return_value.run.return_value = "192.168.124.10"

    assert main_installer.main([]) == 0

    patched_main["setup_logging"].assert_called_once()
    assert patched_main["setup_logging"].call_args.kwargs["log_to_console"] is False
    assert "Admin node deployed." in capsys.readouterr().out


def test_installer_error_exit_code(patched_main, capsys):
    patched_main["installer"].return_value.run.side_effect = ServiceStartError(
        "Could not start service couchdb", "couchdb"
    )

    assert main_installer.main([]) == 1
    assert "Error: Could not start service couchdb" in capsys.readouterr().err


def test_failed_command_exit_code(patched_main, capsys):
    patched_main["installer"].return_value.run.side_effect = subprocess.CalledProcessError(
        1, ["rabbitmqctl", "add_vhost", "/chef"]
    )

    assert main_installer.main([]) == 1
    assert "Command `rabbitmqctl add_vhost /chef` failed (rc 1)." in capsys.readouterr().err


def test_unexpected_error_exit_code(patched_main):
    patched_main["installer"].return_value.run.side_effect = RuntimeError("surprise")
    assert main_installer.main([]) == 1


def test_configuration_error(mocker, capsys):
    mocker.patch(
        "admin_setup.main_installer.load_app_settings",
        side_effect=SystemExit("Configuration error: bad"),
    )
    assert main_installer.main([]) == 1
    assert "Configuration error: bad" in capsys.readouterr().err


def test_view_config(patched_main, capsys):
    assert main_installer.main(["--view-config"]) == 0
    patched_main["installer"].assert_not_called()
    assert "Current effective configuration values" in capsys.readouterr().out


def test_release_gate(patched_main, app_settings, capsys):
    DeploymentGate(MarkerStore.from_settings(app_settings)).acquire()

    assert main_installer.main(["--release-gate"]) == 0

    assert not app_settings.paths.deploying_marker.exists()
    patched_main["installer"].assert_not_called()
    assert "released" in capsys.readouterr().out


def test_release_gate_not_held(patched_main, capsys):
    assert main_installer.main(["--release-gate"]) == 0
    assert "nothing to do" in capsys.readouterr().out
