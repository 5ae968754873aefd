# tests/admin_setup/test_chef_bootstrap.py
# -*- coding: utf-8 -*-
import json
import subprocess
from unittest.mock import MagicMock, call

import pytest

from admin_setup.chef_bootstrap import (
    CrowbarBootstrapper,
    build_dns_data_bag,
    configure_knife,
    render_node_role,
    run_initial_chef_client,
)
from admin_setup.errors import ChefBootstrapError
from admin_setup.preflight import Node

NODE = Node("admin.example.com", "example.com", "192.168.124.10")


@pytest.fixture
def client():
    client = MagicMock()
    client.knife.return_value = MagicMock(stdout="")
    return client


def test_configure_knife(client, app_settings):
    assert configure_knife(client, app_settings) is True
    client.knife.assert_called_once_with(["configure", "-i"], cmd_input="\n" * 32)


def test_configure_knife_already_configured(client, app_settings):
    app_settings.paths.knife_config.parent.mkdir(parents=True)
    app_settings.paths.knife_config.write_text("node_name 'admin'\n")
    assert configure_knife(client, app_settings) is False
    client.knife.assert_not_called()


def test_configure_knife_failure(client, app_settings):
    client.knife.side_effect = subprocess.CalledProcessError(1, ["knife"])
    with pytest.raises(ChefBootstrapError, match="knife configure failed"):
        configure_knife(client, app_settings)


def test_initial_chef_run(client, app_settings):
    client.knife.return_value = MagicMock(stdout="Node Name:   admin.example.com\nRun List:    \n")
    assert run_initial_chef_client(client, NODE, app_settings) is True
    client.knife.assert_called_once_with(["node", "show", "admin.example.com"], check=False)
    client.run_chef_client.assert_called_once_with()


def test_initial_chef_run_skipped_with_populated_run_list(client, app_settings):
    client.knife.return_value = MagicMock(stdout="Run List:    role[crowbar], role[deployer-client]\n")
    assert run_initial_chef_client(client, NODE, app_settings) is False
    client.run_chef_client.assert_not_called()


def test_initial_chef_run_failure(client, app_settings):
    client.run_chef_client.side_effect = subprocess.CalledProcessError(1, ["chef-client"])
    with pytest.raises(ChefBootstrapError, match="Initial chef-client run failed"):
        run_initial_chef_client(client, NODE, app_settings)


def test_build_dns_data_bag_does_not_modify_template():
    template = {"id": "bc-template-dns", "attributes": {"dns": {"ttl": 3600}}}
    data_bag = build_dns_data_bag(template, "example.com", ["10.0.0.1", "10.0.0.2"])
    assert data_bag["attributes"]["dns"] == {
        "ttl": 3600,
        "domain": "example.com",
        "forwarders": ["10.0.0.1", "10.0.0.2"],
    }
    assert "domain" not in template["attributes"]["dns"]


def test_render_node_role():
    role = render_node_role(NODE)
    assert 'name "crowbar-admin_example_com"' in role
    assert 'description "Role for admin.example.com"' in role


@pytest.fixture
def bootstrap_files(app_settings):
    paths = app_settings.paths
    paths.dns_template.parent.mkdir(parents=True)
    paths.dns_template.write_text(json.dumps({"id": "bc-template-dns", "attributes": {"dns": {}}}))
    paths.resolv_conf.parent.mkdir(parents=True)
    paths.resolv_conf.write_text("nameserver 10.0.0.1\n")


def test_bootstrap(client, app_settings, bootstrap_files):
    supervisor = MagicMock()
    bootstrapper = CrowbarBootstrapper(client, supervisor, app_settings)

    bootstrapper.bootstrap(NODE)

    work_dir = app_settings.paths.work_dir
    data_bag = json.loads((work_dir / "bc-template-dns.json").read_text())
    assert data_bag["attributes"]["dns"]["forwarders"] == ["10.0.0.1"]
    assert client.knife.call_args_list == [
        call(["data", "bag", "from", "file", "crowbar", str(work_dir / "bc-template-dns.json")]),
        call(["role", "from", "file", str(work_dir / "role.rb")]),
        call(["node", "run_list", "add", "admin.example.com", "role[crowbar]"]),
        call(["node", "run_list", "add", "admin.example.com", "role[deployer-client]"]),
        call(["node", "run_list", "add", "admin.example.com", "role[crowbar-admin_example_com]"]),
    ]
    client.run_chef_client.assert_called_once_with()
    supervisor.ensure_running.assert_called_once_with("crowbar")


def test_bootstrap_without_dns_template(client, app_settings):
    with pytest.raises(ChefBootstrapError, match="doesn't exist"):
        CrowbarBootstrapper(client, MagicMock(), app_settings).bootstrap(NODE)
    client.knife.assert_not_called()


def test_bootstrap_knife_failure(client, app_settings, bootstrap_files):
    client.knife.side_effect = [None, subprocess.CalledProcessError(1, ["knife"])]
    supervisor = MagicMock()
    with pytest.raises(ChefBootstrapError, match="knife role from file"):
        CrowbarBootstrapper(client, supervisor, app_settings).bootstrap(NODE)
    supervisor.ensure_running.assert_not_called()
