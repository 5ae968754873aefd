# admin_setup/config.py
"""
Centralized constants and default values for the admin node installer.

These are the production defaults; AppSettings exposes each of them as an
overridable setting. Development-mode replacements are listed separately
and applied by the configuration loader.
"""

from pathlib import Path
from typing import Dict, List, Tuple

# Represents the version of the installer logic.
SCRIPT_VERSION: str = "2.0.0"
LOG_PREFIX_DEFAULT: str = "[ADMIN-SETUP]"
WEB_UI_PORT_DEFAULT: int = 3000

# --- Host paths (production) ---
BARCLAMP_SRC_DEFAULT: Path = Path("/opt/dell/barclamps")
# bc-template-crowbar.json is not usable here: crowbar rejects the hyphens in
# its "id" attribute.
CROWBAR_FILE_DEFAULT: Path = Path("/etc/crowbar/crowbar.json")
FRAMEWORK_DIR_DEFAULT: Path = Path("/opt/dell/crowbar_framework")
BIN_DIR_DEFAULT: Path = Path("/opt/dell/bin")
CHEF_DATA_BAGS_DIR_DEFAULT: Path = Path("/opt/dell/chef/data_bags/crowbar")
CHEF_CONFIG_DIR_DEFAULT: Path = Path("/etc/chef")
SOLR_CONFIG_DEFAULT: Path = Path("/var/lib/chef/solr/conf/solrconfig.xml")
TFTPBOOT_ROOT_DEFAULT: Path = Path("/srv/tftpboot")
TFTPBOOT_LINK_DEFAULT: Path = Path("/tftpboot")
AUTOYAST_TEMPLATE_DEFAULT: Path = Path(
    "/opt/dell/chef/cookbooks/provisioner/templates/default/autoyast.xml.erb"
)
ZYPP_REPOS_DIR_DEFAULT: Path = Path("/etc/zypp/repos.d")
RESOLV_CONF_DEFAULT: Path = Path("/etc/resolv.conf")
WORK_DIR_DEFAULT: Path = Path("/tmp")
LOG_DIR_DEFAULT: Path = Path("/var/log/crowbar")
LOG_FILE_DEFAULT: Path = LOG_DIR_DEFAULT / "install.log"
INSTALL_KEY_FILE_DEFAULT: Path = Path("/etc/crowbar.install.key")

# Shared markers. The deploying marker is read by looper_chef_client.sh,
# which exits immediately while it exists.
DEPLOYING_MARKER_DEFAULT: Path = Path("/tmp/deploying")
CHEF_CLIENT_LOCK_DEFAULT: Path = Path("/tmp/chef-client.lock")
INSTALLED_OK_MARKER_DEFAULT: Path = FRAMEWORK_DIR_DEFAULT / ".crowbar-installed-ok"

# --- Development mode (install from git checkouts) ---
DEV_PATH_DEFAULTS: Dict[str, Path] = {
    "barclamp_src": Path("/root/crowbar/barclamps"),
    "crowbar_file": Path("/root/crowbar/crowbar.json"),
}
# The network template is read from the source tree in development mode.
DEV_NETWORK_TEMPLATE_RELATIVE: Path = Path(
    "network/chef/data_bags/crowbar/bc-template-network.json"
)
DEV_REPOS_SKIP_CHECKS: List[str] = [
    "SLES11-SP1-Pool",
    "SLES11-SP1-Updates",
    "SLES11-SP2-Core",
    "SLES11-SP2-Updates",
    "SLES11-SP3-Pool",
    "SLES11-SP3-Updates",
    "SUSE-Cloud-2.0-Pool",
    "SUSE-Cloud-2.0-Updates",
]
DEV_TOOL_PACKAGES: List[str] = ["rubygems", "rubygem-json", "createrepo"]
DEV_CHEF_PACKAGES: List[str] = [
    "rubygem-chef-server",
    "rubygem-chef",
    "rabbitmq-server",
    "couchdb",
    "java-1_6_0-ibm",
    "rubygem-activesupport",
]
DEV_CROWBAR_PACKAGES: List[str] = [
    "rubygem-cstruct",
    "rubygem-kwalify",
    "rubygem-ruby-shadow",
    "rubygem-sass",
    "rubygem-i18n",
    "sleshammer",
    "tcpdump",
]
# Barclamps that are not part of the product and are dropped from the
# attributes document in development mode.
DEV_STRIPPED_ATTRIBUTE_KEYS: List[str] = ["nagios", "ganglia"]
DEV_PXELINUX_DEFAULT: str = """\
DEFAULT pxeboot
TIMEOUT 20
PROMPT 0
LABEL pxeboot
        KERNEL vmlinuz0
        APPEND initrd=initrd0.img root=/sledgehammer.iso rootfstype=iso9660 rootflags=loop
ONERROR LOCALBOOT 0
"""

# --- Repository validation ---
# Repositories that cannot be checked yet: SP3-Updates lacks products.xml,
# Cloud has no final checksum, SUSE-Cloud-2.0-* do not exist yet.
REPOS_SKIP_CHECKS_DEFAULT: List[str] = [
    "Cloud",
    "SLES11-SP3-Updates",
    "SUSE-Cloud-2.0-Pool",
    "SUSE-Cloud-2.0-Updates",
]
# Content check paths are relative to the tftpboot root.
REPOSITORY_CONTENT_CHECKS: List[Dict[str, object]] = [
    {
        "name": "SLES11_SP3",
        "path": Path("suse-11.3/install"),
        "md5": "f9a7aa4950fbee8079844f5973169db8",
    },
    {
        "name": "Cloud",
        "path": Path("repos/Cloud"),
        "md5": "1558be86e7354d31e71e7c8c2574031a",
    },
]
REPOSITORY_PRODUCT_CHECKS: List[Tuple[str, str]] = [
    ("SLES11-SP1-Pool", "SUSE Linux Enterprise Server 11 SP1"),
    ("SLES11-SP1-Updates", "SUSE Linux Enterprise Server 11 SP1"),
    ("SLES11-SP1-Updates", "SUSE_SLES Service Pack 2 Migration Product"),
    ("SLES11-SP2-Core", "SUSE Linux Enterprise Server 11 SP2"),
    ("SLES11-SP2-Updates", "SUSE Linux Enterprise Server 11 SP2"),
    ("SLES11-SP3-Pool", "SUSE Linux Enterprise Server 11 SP3"),
    ("SLES11-SP3-Updates", "SUSE Linux Enterprise Server 11 SP3"),
    ("SUSE-Cloud-2.0-Pool", "SUSE Cloud 2.0"),
    ("SUSE-Cloud-2.0-Updates", "SUSE Cloud 2.0"),
]
PTF_REPO_NAME: str = "Cloud-PTF"
ADMIN_PATTERN_NAME: str = "cloud_admin"

# --- Services ---
RABBITMQ_SERVICE: str = "rabbitmq-server"
RABBITMQ_HEALTHY_PATTERN: str = r"^Node .+ with Pid [0-9]+: running"
RABBITMQ_VHOST: str = "/chef"
RABBITMQ_USER: str = "chef"
COUCHDB_SERVICE: str = "couchdb"
CHEF_SERVER_SERVICES: List[str] = ["chef-solr", "chef-expander", "chef-server"]
CHEF_CLIENT_SERVICE: str = "chef-client"
CROWBAR_SERVICE: str = "crowbar"
DEFAULT_HEALTHY_PATTERN: str = "running"
REQUIRED_POST_INSTALL_SERVICES: List[str] = ["xinetd", "dhcpd", "apache2"]
SOLR_MAX_FIELD_LENGTH: int = 200000

# --- Barclamps ---
FRAMEWORK_BARCLAMP: str = "crowbar"
# Order matters: with a full OpenStack set, e.g. nagios has to be installed
# before keystone.
BARCLAMP_INSTALL_ORDER: List[str] = [
    "deployer", "dns", "ipmi", "logging", "nagios", "network", "ntp",
    "provisioner", "database", "rabbitmq", "ceph", "keystone", "glance",
    "cinder", "quantum", "nova", "nova_dashboard", "swift", "openstack",
]
ADMIN_RUN_LIST_ROLES: List[str] = ["crowbar", "deployer-client"]

# --- Proposal negotiation ---
PROPOSAL_NAME_DEFAULT: str = "default"
PROPOSAL_BARCLAMP_DEFAULT: str = "crowbar"
PROPOSAL_CREATE_ATTEMPTS: int = 5
PROPOSAL_RETRY_PAUSE: float = 1.0

# --- Timing ---
SERVICE_GRACE_PERIOD: float = 4.0
LOCK_POLL_INTERVAL: float = 1.0

# --- Shared state keys ---
DEPLOYING_KEY: str = "deploying"
CHEF_CLIENT_LOCK_KEY: str = "chef_client_lock"
INSTALLED_OK_KEY: str = "installed_ok"
