# admin_setup/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the admin node installer,
including defaults, type annotations, and descriptions. Every host path the
installer touches lives in PathSettings so a run can be rooted anywhere.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from admin_setup import config as static_config

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅", "error": "❌", "warning": "⚠️", "info": "ℹ️",
    "step": "➡️", "gear": "⚙️", "package": "📦", "rocket": "🚀",
    "sparkles": "✨", "critical": "🔥", "debug": "🐛",
}


class RepositoryContentCheck(BaseModel):
    """A repository whose content file must match a known checksum."""

    name: str = Field(description="Repository name, as used in the skip list.")
    path: Path = Field(description="Directory holding content and content.asc, relative to the tftpboot root.")
    md5: str = Field(description="Expected MD5 of the content file.")


class RepositoryProductCheck(BaseModel):
    """A repository whose products.xml must mention a product summary."""

    name: str = Field(description="Repository name below the repos root.")
    summary: str = Field(description="Expected <summary> text in products.xml.")


class PathSettings(BaseSettings):
    """Host paths used by the installer."""
    model_config = SettingsConfigDict(env_prefix="CROWBAR_PATH_", extra="ignore")

    barclamp_src: Path = Field(
        default=static_config.BARCLAMP_SRC_DEFAULT,
        validation_alias=AliasChoices("barclamp_src", "BARCLAMP_SRC"),
        description="Directory containing the barclamp source trees.",
    )
    crowbar_file: Path = Field(
        default=static_config.CROWBAR_FILE_DEFAULT,
        validation_alias=AliasChoices("crowbar_file", "CROWBAR_FILE"),
        description="JSON attributes document for the default proposal.",
    )
    framework_dir: Path = Field(default=static_config.FRAMEWORK_DIR_DEFAULT)
    bin_dir: Path = Field(default=static_config.BIN_DIR_DEFAULT)
    chef_data_bags_dir: Path = Field(default=static_config.CHEF_DATA_BAGS_DIR_DEFAULT)
    chef_config_dir: Path = Field(default=static_config.CHEF_CONFIG_DIR_DEFAULT)
    solr_config: Path = Field(default=static_config.SOLR_CONFIG_DEFAULT)
    knife_config: Path = Field(default_factory=lambda: Path.home() / ".chef" / "knife.rb")
    tftpboot_root: Path = Field(default=static_config.TFTPBOOT_ROOT_DEFAULT)
    tftpboot_link: Path = Field(default=static_config.TFTPBOOT_LINK_DEFAULT)
    autoyast_template: Path = Field(default=static_config.AUTOYAST_TEMPLATE_DEFAULT)
    zypp_repos_dir: Path = Field(default=static_config.ZYPP_REPOS_DIR_DEFAULT)
    resolv_conf: Path = Field(default=static_config.RESOLV_CONF_DEFAULT)
    work_dir: Path = Field(default=static_config.WORK_DIR_DEFAULT)
    log_dir: Path = Field(default=static_config.LOG_DIR_DEFAULT)
    log_file: Path = Field(default=static_config.LOG_FILE_DEFAULT)
    install_key_file: Path = Field(default=static_config.INSTALL_KEY_FILE_DEFAULT)
    deploying_marker: Path = Field(default=static_config.DEPLOYING_MARKER_DEFAULT)
    chef_client_lock: Path = Field(default=static_config.CHEF_CLIENT_LOCK_DEFAULT)
    installed_ok_marker: Path = Field(default=static_config.INSTALLED_OK_MARKER_DEFAULT)

    @property
    def repos_root(self) -> Path:
        return self.tftpboot_root / "repos"

    @property
    def barclamps_installed_dir(self) -> Path:
        return self.framework_dir / "barclamps"

    @property
    def network_template(self) -> Path:
        return self.chef_data_bags_dir / "bc-template-network.json"

    @property
    def dns_template(self) -> Path:
        return self.chef_data_bags_dir / "bc-template-dns.json"


class RepositorySettings(BaseSettings):
    """Repository validation settings."""
    model_config = SettingsConfigDict(env_prefix="CROWBAR_REPOS_", extra="ignore")

    skip_checks: List[str] = Field(
        default_factory=lambda: list(static_config.REPOS_SKIP_CHECKS_DEFAULT),
        description="Repositories exempt from strict validation.",
    )
    content_checks: List[RepositoryContentCheck] = Field(
        default_factory=lambda: [
            RepositoryContentCheck(**entry)
            for entry in static_config.REPOSITORY_CONTENT_CHECKS
        ]
    )
    product_checks: List[RepositoryProductCheck] = Field(
        default_factory=lambda: [
            RepositoryProductCheck(name=name, summary=summary)
            for name, summary in static_config.REPOSITORY_PRODUCT_CHECKS
        ]
    )
    ptf_repo: str = Field(default=static_config.PTF_REPO_NAME)
    admin_pattern: str = Field(default=static_config.ADMIN_PATTERN_NAME)


class ProposalSettings(BaseSettings):
    """Default proposal negotiation settings."""
    model_config = SettingsConfigDict(env_prefix="CROWBAR_PROPOSAL_", extra="ignore")

    name: str = Field(default=static_config.PROPOSAL_NAME_DEFAULT)
    barclamp: str = Field(default=static_config.PROPOSAL_BARCLAMP_DEFAULT)
    create_attempts: int = Field(default=static_config.PROPOSAL_CREATE_ATTEMPTS, ge=1)
    retry_pause: float = Field(default=static_config.PROPOSAL_RETRY_PAUSE, ge=0)
    attributes_file: Optional[Path] = Field(
        default=None,
        description="Overrides paths.crowbar_file as the proposal attributes document.",
    )


class TimingSettings(BaseSettings):
    """Fixed waits used while driving the host."""
    model_config = SettingsConfigDict(env_prefix="CROWBAR_TIMING_", extra="ignore")

    service_grace_period: float = Field(default=static_config.SERVICE_GRACE_PERIOD, ge=0)
    lock_poll_interval: float = Field(default=static_config.LOCK_POLL_INTERVAL, gt=0)


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(env_prefix="CROWBAR_", extra="ignore")

    development_mode: bool = Field(
        default=False,
        description="Install from local source trees with relaxed repository checks.",
    )
    verbose: bool = Field(default=False, description="Mirror the install log on the console.")
    run_tests: bool = Field(default=False, description="Run the barclamp self-test after installation.")
    web_ui_port: int = Field(default=static_config.WEB_UI_PORT_DEFAULT)
    log_prefix: str = Field(default=static_config.LOG_PREFIX_DEFAULT)

    framework_barclamp: str = Field(default=static_config.FRAMEWORK_BARCLAMP)
    barclamps: List[str] = Field(
        default_factory=lambda: list(static_config.BARCLAMP_INSTALL_ORDER),
        description="Barclamps installed after the framework, in dependency order.",
    )
    dev_repositories: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra zypper repositories (alias -> URL) added in development mode.",
    )

    paths: PathSettings = Field(default_factory=PathSettings)
    repos: RepositorySettings = Field(default_factory=RepositorySettings)
    proposal: ProposalSettings = Field(default_factory=ProposalSettings)
    timing: TimingSettings = Field(default_factory=TimingSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @property
    def barclamp_install_opts(self) -> List[str]:
        return ["--force"] if self.development_mode else ["--rpm"]

    @property
    def proposal_attributes_file(self) -> Path:
        return self.proposal.attributes_file or self.paths.crowbar_file
