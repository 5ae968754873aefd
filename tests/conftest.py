# tests/conftest.py
# -*- coding: utf-8 -*-
"""
Shared fixtures: settings rooted in a temporary directory and a fake host
that answers the commands the installer runs.
"""

import hashlib
import json
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple
from unittest.mock import MagicMock

import pytest

from admin_setup.config_models import (
    AppSettings,
    PathSettings,
    ProposalSettings,
    RepositoryContentCheck,
    RepositoryProductCheck,
    RepositorySettings,
    TimingSettings,
)

ADMIN_FQDN = "admin.example.com"
ADMIN_DOMAIN = "example.com"
ADMIN_IPV4 = "192.168.124.10"
CONTENT_TEXT = "SLES 11 SP3 installation media\n"


def make_paths(root: Path) -> PathSettings:
    framework_dir = root / "opt/dell/crowbar_framework"
    log_dir = root / "var/log/crowbar"
    return PathSettings(
        barclamp_src=root / "opt/dell/barclamps",
        crowbar_file=root / "etc/crowbar/crowbar.json",
        framework_dir=framework_dir,
        bin_dir=root / "opt/dell/bin",
        chef_data_bags_dir=root / "opt/dell/chef/data_bags/crowbar",
        chef_config_dir=root / "etc/chef",
        solr_config=root / "var/lib/chef/solr/conf/solrconfig.xml",
        knife_config=root / "root/.chef/knife.rb",
        tftpboot_root=root / "srv/tftpboot",
        tftpboot_link=root / "tftpboot",
        autoyast_template=root / "opt/dell/chef/cookbooks/provisioner/templates/default/autoyast.xml.erb",
        zypp_repos_dir=root / "etc/zypp/repos.d",
        resolv_conf=root / "etc/resolv.conf",
        work_dir=root / "tmp",
        log_dir=log_dir,
        log_file=log_dir / "install.log",
        install_key_file=root / "etc/crowbar.install.key",
        deploying_marker=root / "tmp/deploying",
        chef_client_lock=root / "tmp/chef-client.lock",
        installed_ok_marker=framework_dir / ".crowbar-installed-ok",
    )


def make_settings(root: Path, **overrides) -> AppSettings:
    values = dict(
        paths=make_paths(root),
        timing=TimingSettings(service_grace_period=0, lock_poll_interval=0.01),
        proposal=ProposalSettings(retry_pause=0.5),
    )
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def app_settings(tmp_path):
    """AppSettings whose every host path lives below tmp_path."""
    return make_settings(tmp_path)


@pytest.fixture
def settings_factory(tmp_path) -> Callable[..., AppSettings]:
    return lambda **overrides: make_settings(tmp_path, **overrides)


def network_template(start: str = ADMIN_IPV4, end: str = "192.168.124.11") -> Dict:
    return {
        "id": "bc-template-network",
        "attributes": {
            "network": {
                "networks": {
                    "admin": {
                        "subnet": "192.168.124.0",
                        "ranges": {"admin": {"start": start, "end": end}},
                    }
                }
            }
        },
    }


class FakeHost:
    """
    Stands in for the host behind subprocess.run.

    It keeps just enough state (running services, installed barclamps,
    proposals, lifecycle transitions) for the installer to converge, and
    records every command it was asked to run.
    """

    def __init__(self, settings: AppSettings):
        self.settings = settings
        self.paths = settings.paths
        self.commands: List[List[str]] = []
        self.running: Set[str] = {"xinetd", "dhcpd", "apache2"}
        self.failing_services: Set[str] = set()
        self.proposals: List[str] = []
        self.proposal_create_failures = 0
        self.proposal_create_calls = 0
        self.commit_fails = False
        self.committed: List[str] = []
        self.transitions: List[str] = []
        self.failing_transitions: Set[str] = set()
        self.failing_barclamps: Set[str] = set()
        self.installed_barclamps: List[str] = []
        self.chef_client_runs = 0
        self.createrepo_dirs: List[Path] = []
        self.password_field = "$6$salt$hash"
        self.resolved = f"{ADMIN_IPV4}     STREAM {ADMIN_FQDN}\n{ADMIN_IPV4}     DGRAM\n"
        self.local_addresses = ["127.0.0.1/8", f"{ADMIN_IPV4}/24"]
        self.firewall_rules = ""
        self.ping_ok = True
        self.rabbit_vhosts = ["/"]
        self.rabbit_users: List[str] = []

    # --- host files ---------------------------------------------------

    def prepare_files(self, ptf_metadata: bool = True) -> None:
        paths = self.paths
        paths.chef_data_bags_dir.mkdir(parents=True, exist_ok=True)
        paths.network_template.write_text(json.dumps(network_template()), encoding="utf-8")
        paths.dns_template.write_text(
            json.dumps({"id": "bc-template-dns", "attributes": {"dns": {}}}), encoding="utf-8"
        )
        paths.resolv_conf.parent.mkdir(parents=True, exist_ok=True)
        paths.resolv_conf.write_text("search example.com\nnameserver 10.0.0.1\n", encoding="utf-8")
        paths.crowbar_file.parent.mkdir(parents=True, exist_ok=True)
        paths.crowbar_file.write_text(
            json.dumps({"attributes": {"crowbar": {"realm": "Crowbar", "users": {"machine-install": {"password": "machine_password"}}}}}),
            encoding="utf-8",
        )
        paths.chef_config_dir.mkdir(parents=True, exist_ok=True)
        for name in ("server.rb", "solr.rb"):
            (paths.chef_config_dir / name).write_text('amqp_pass "testing"\n', encoding="utf-8")

        for check in self.settings.repos.content_checks:
            repo_dir = paths.tftpboot_root / check.path
            repo_dir.mkdir(parents=True, exist_ok=True)
            (repo_dir / "content").write_text(CONTENT_TEXT, encoding="utf-8")
            (repo_dir / "content.asc").write_text("signature\n", encoding="utf-8")
        for check in self.settings.repos.product_checks:
            repodata = paths.repos_root / check.name / "repodata"
            repodata.mkdir(parents=True, exist_ok=True)
            (repodata / "products.xml").write_text(
                f"<products><product><summary>{check.summary}</summary></product></products>",
                encoding="utf-8",
            )
        if ptf_metadata:
            ptf = paths.repos_root / self.settings.repos.ptf_repo / "repodata"
            ptf.mkdir(parents=True, exist_ok=True)
            (ptf / "repomd.xml").write_text("<repomd/>", encoding="utf-8")

    # --- command dispatch ---------------------------------------------

    def run(self, command, check=False, shell=False, capture_output=False,
            text=True, input=None, cwd=None, env=None):
        argv = [str(part) for part in command]
        self.commands.append(argv)
        rc, stdout, stderr = self.respond(argv)
        if check and rc != 0:
            raise subprocess.CalledProcessError(rc, argv, output=stdout, stderr=stderr)
        return subprocess.CompletedProcess(argv, rc, stdout, stderr)

    def respond(self, argv: List[str]) -> Tuple[int, str, str]:
        program = Path(argv[0]).name
        args = argv[1:]
        handler = getattr(self, "_cmd_" + program.replace("-", "_").replace(".", "_"), None)
        if handler is None:
            return 0, "", ""
        return handler(args)

    def _cmd_getent(self, args):
        if args[0] == "shadow":
            return 0, f"root:{self.password_field}:19000:0:99999:7:::\n", ""
        if args[0] == "ahosts":
            return (0, self.resolved, "") if self.resolved else (2, "", "")
        return 2, "", ""

    def _cmd_hostname(self, args):
        return 0, (ADMIN_FQDN if args == ["-f"] else ADMIN_DOMAIN) + "\n", ""

    def _cmd_ip(self, args):
        lines = []
        for index, address in enumerate(self.local_addresses):
            family = "inet6" if ":" in address else "inet"
            lines.append(f"{index + 1}: eth{index}: <UP> mtu 1500")
            lines.append(f"    {family} {address} scope global eth{index}")
        return 0, "\n".join(lines) + "\n", ""

    def _cmd_iptables(self, args):
        output = (
            "Chain INPUT (policy ACCEPT)\n"
            "target     prot opt source               destination\n"
            f"{self.firewall_rules}\n"
            "Chain FORWARD (policy ACCEPT)\n"
            "target     prot opt source               destination\n"
        )
        return 0, output, ""

    def _cmd_ping(self, args):
        return (0, "", "") if self.ping_ok else (1, "", "unreachable")

    def _cmd_createrepo(self, args):
        repo_dir = Path(args[-1])
        (repo_dir / "repodata").mkdir(parents=True, exist_ok=True)
        (repo_dir / "repodata" / "repomd.xml").write_text("<repomd/>", encoding="utf-8")
        self.createrepo_dirs.append(repo_dir)
        return 0, "", ""

    def _cmd_zypper(self, args):
        if args[:3] == ["if", "-t", "pattern"]:
            return 0, f"Name: {args[3]}\nInstalled: Yes\n", ""
        return 0, "", ""

    def _cmd_service(self, args):
        name, action = args[0], args[1]
        if action == "status":
            if name not in self.running:
                return 3, f"Checking for service {name} unused\n", ""
            if name == "rabbitmq-server":
                return 0, "Status of node rabbit@admin ...\nNode rabbit@admin with Pid 4242: running\n", ""
            return 0, f"Checking for service {name} running\n", ""
        if action == "start":
            if name in self.failing_services:
                return 1, "", f"{name} failed to start"
            self.running.add(name)
        return 0, "", ""

    def _cmd_rabbitmqctl(self, args):
        if args[0] == "list_vhosts":
            return 0, "Listing vhosts ...\n" + "\n".join(self.rabbit_vhosts) + "\n...done.\n", ""
        if args[0] == "add_vhost":
            self.rabbit_vhosts.append(args[1])
        elif args[0] == "list_users":
            users = "".join(f"{user}\t[]\n" for user in self.rabbit_users)
            return 0, "Listing users ...\nguest\t[administrator]\n" + users + "...done.\n", ""
        elif args[0] == "add_user":
            self.rabbit_users.append(args[1])
        return 0, "", ""

    def _cmd_knife(self, args):
        if args[:2] == ["configure", "-i"]:
            self.paths.knife_config.parent.mkdir(parents=True, exist_ok=True)
            self.paths.knife_config.write_text("node_name 'admin'\n", encoding="utf-8")
        elif args[:2] == ["node", "show"]:
            return 0, f"Node Name:   {args[2]}\nRun List:    \n", ""
        return 0, "", ""

    def _cmd_chef_client(self, args):
        self.chef_client_runs += 1
        return 0, "", ""

    def _cmd_barclamp_install_rb(self, args):
        name = Path(args[-1]).name
        if name in self.failing_barclamps:
            return 1, "", f"{name} install failed"
        self.installed_barclamps.append(name)
        installed_dir = self.paths.barclamps_installed_dir
        installed_dir.mkdir(parents=True, exist_ok=True)
        (installed_dir / f"{name}.yml").write_text(f"barclamp: {name}\n", encoding="utf-8")
        return 0, "", ""

    def _cmd_barclamp_test_rb(self, args):
        return 0, "", ""

    def _cmd_crowbar(self, args):
        barclamp, rest = args[0], args[1:]
        if rest and rest[0] == "--file":
            rest = rest[2:]
        if barclamp == "network" and rest == ["show", "default"]:
            return 0, json.dumps(network_template()), ""
        if rest == ["proposal", "list"]:
            return 0, "".join(f"{name}\n" for name in self.proposals), ""
        if rest[:2] == ["proposal", "create"]:
            self.proposal_create_calls += 1
            if self.proposal_create_calls <= self.proposal_create_failures:
                return 1, "", "Failed to talk to service proposal create: 500"
            self.proposals.append(rest[2])
            return 0, "Created " + rest[2], ""
        if rest[:2] == ["proposal", "show"]:
            return 0, json.dumps({"id": f"bc-{barclamp}-{rest[2]}", "attributes": {}}), ""
        if rest[:2] == ["proposal", "commit"]:
            if self.commit_fails:
                return 1, "", "Failed to commit proposal"
            self.committed.append(rest[2])
            return 0, "", ""
        if rest[:1] == ["show"]:
            return 0, json.dumps({"id": f"bc-{barclamp}-{rest[1]}"}), ""
        if rest[:1] == ["transition"]:
            state = rest[2]
            self.transitions.append(state)
            if state in self.failing_transitions:
                return 1, "", f"Failed to transition to {state}"
            return 0, "", ""
        return 0, "", ""

    # --- queries used by assertions -----------------------------------

    def commands_named(self, program: str) -> List[List[str]]:
        return [argv for argv in self.commands if Path(argv[0]).name == program]


@pytest.fixture
def fake_host(mocker, tmp_path) -> FakeHost:
    """A healthy fake host; adjust its attributes to inject failures."""
    settings = make_settings(
        tmp_path,
        repos=RepositorySettings(
            skip_checks=[],
            content_checks=[
                RepositoryContentCheck(name="SLES11_SP3", path=Path("suse-11.3/install"), md5=hashlib.md5(CONTENT_TEXT.encode("utf-8")).hexdigest()),
            ],
            product_checks=[
                RepositoryProductCheck(name="SLES11-SP3-Pool", summary="SUSE Linux Enterprise Server 11 SP3"),
            ],
        ),
        barclamps=["deployer", "dns", "network", "provisioner"],
    )
    host = FakeHost(settings)
    mocker.patch("common.command_utils.subprocess.run", side_effect=host.run)
    mocker.patch(
        "admin_setup.post_install.requests.get",
        return_value=MagicMock(status_code=200),
    )
    return host


@pytest.fixture
def write_network_template(app_settings):
    """Write the network barclamp template with a given admin range."""

    def _write(start: str = ADMIN_IPV4, end: str = "192.168.124.11") -> Path:
        target = app_settings.paths.network_template
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(network_template(start, end)), encoding="utf-8")
        return target

    return _write
