# admin_setup/repositories.py
# -*- coding: utf-8 -*-
"""
Validation of the package repositories served to client nodes.

Repositories are checked, never repaired, with one exception: a
repository in the skip list whose metadata is missing gets an empty
skeleton so AutoYaST does not fail on the absent repository.
"""

import logging
import os
import re
import subprocess
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from admin_setup.config_models import (
    AppSettings,
    RepositoryContentCheck,
    RepositoryProductCheck,
)
from admin_setup.errors import (
    ContentMismatchError,
    PreflightError,
    ProductMismatchError,
    RepositoryError,
    RepositoryNotSetUpError,
)
from common.command_utils import log_installer, run_command
from common.file_utils import md5_of_file

module_logger = logging.getLogger(__name__)

_PATTERN_INSTALLED = re.compile(r"^Installed: Yes$", re.MULTILINE)


class RepositoryCheckResult(str, Enum):
    """Outcome of a single repository check that did not fail the run."""

    VERIFIED = "verified"
    SKIPPED = "skipped"
    SKELETON_CREATED = "skeleton_created"


def read_product_summaries(products_xml: Path) -> List[str]:
    """
    Return every <summary> text in a products.xml file.

    A missing or unparsable file yields an empty list.
    """
    try:
        root = ET.parse(products_xml).getroot()
    except (OSError, ET.ParseError):
        return []
    return [(element.text or "").strip() for element in root.iter("summary")]


class RepositoryValidator:
    """Checks repository content checksums and product metadata."""

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.symbols = app_settings.symbols
        self.skip_set: Set[str] = set(app_settings.repos.skip_checks)

    def is_skipped(self, repository: str) -> bool:
        return repository in self.skip_set

    def repository_path(self, repository: str) -> Path:
        return self.app_settings.paths.repos_root / repository

    def check_content(self, check: RepositoryContentCheck) -> RepositoryCheckResult:
        """
        Verify that a repository is set up and carries the expected content file.

        Raises:
            RepositoryNotSetUpError: content.asc is missing.
            ContentMismatchError: The content file checksum differs.
        """
        if self.is_skipped(check.name):
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} Skipping check for {check.name} (in skip list)",
                "info",
                self.logger,
                self.app_settings,
            )
            return RepositoryCheckResult.SKIPPED

        repo_path = self.app_settings.paths.tftpboot_root / check.path
        if not (repo_path / "content.asc").exists():
            if self.app_settings.development_mode:
                message = (
                    f"{check.name} has not been set up yet; please see "
                    "https://github.com/SUSE/cloud/wiki/Crowbar"
                )
            else:
                message = (
                    f"{check.name} has not been set up yet; please check you "
                    "didn't miss a step in the installation guide."
                )
            raise RepositoryNotSetUpError(message, check.name)

        if self.app_settings.development_mode:
            log_installer(
                f"{self.symbols.get('info', 'ℹ️')} Skipping md5 check for {check.name} in development mode",
                "info",
                self.logger,
                self.app_settings,
            )
            return RepositoryCheckResult.VERIFIED

        content_file = repo_path / "content"
        try:
            actual = md5_of_file(content_file)
        except OSError:
            actual = None
        if actual != check.md5:
            raise ContentMismatchError(
                f"{check.name} does not contain the expected repository "
                f"({content_file} failed MD5 checksum)",
                check.name,
            )
        return RepositoryCheckResult.VERIFIED

    def check_product(self, repository: str, expected_summary: str) -> RepositoryCheckResult:
        """
        Verify that products.xml of a repository names the expected product.

        Raises:
            ProductMismatchError: The summary is missing and the repository
                is not in the skip list.
        """
        products_xml = self.repository_path(repository) / "repodata" / "products.xml"
        if expected_summary in read_product_summaries(products_xml):
            return RepositoryCheckResult.VERIFIED

        if not self.is_skipped(repository):
            raise ProductMismatchError(
                f"{repository} does not contain the right repository "
                f"({products_xml} is missing summary '{expected_summary}')",
                repository,
            )

        log_installer(
            f"{self.symbols.get('warning', '⚠️')} Ignoring failed repo check for {repository} "
            f"(in skip list; {products_xml} is missing summary '{expected_summary}')",
            "warning",
            self.logger,
            self.app_settings,
        )
        if self.create_skeleton(repository):
            return RepositoryCheckResult.SKELETON_CREATED
        return RepositoryCheckResult.SKIPPED

    def create_skeleton(self, repository: str) -> bool:
        """
        Give a repository empty but valid metadata if it has none.

        Returns:
            True if metadata was generated, False if it already existed.
        """
        repo_path = self.repository_path(repository)
        if (repo_path / "repodata" / "repomd.xml").exists():
            return False

        log_installer(
            f"{self.symbols.get('gear', '⚙️')} Creating repo skeleton for {repository} to make AutoYaST happy.",
            "info",
            self.logger,
            self.app_settings,
        )
        repo_path.mkdir(parents=True, exist_ok=True)
        try:
            run_command(
                ["createrepo", str(repo_path)],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise RepositoryError(
                f"Could not create repository metadata for {repository}: {e}",
                repository,
            ) from e
        return True

    def ensure_ptf_repository(self) -> RepositoryCheckResult:
        """
        The PTF repository must have metadata; it is normally generated by
        the crowbar package, so only skip-listed or development setups get a
        skeleton.
        """
        repository = self.app_settings.repos.ptf_repo
        if (self.repository_path(repository) / "repodata" / "repomd.xml").exists():
            return RepositoryCheckResult.VERIFIED
        if self.is_skipped(repository) or self.app_settings.development_mode:
            self.create_skeleton(repository)
            return RepositoryCheckResult.SKELETON_CREATED
        raise RepositoryNotSetUpError(
            f"{repository} has not been set up correctly; did the crowbar rpm "
            "fail to install correctly?",
            repository,
        )

    def check_admin_pattern(self) -> None:
        """The admin software pattern must be installed (production only)."""
        if self.app_settings.development_mode:
            return
        pattern = self.app_settings.repos.admin_pattern
        env = dict(os.environ)
        env["LANG"] = "C"
        try:
            result = run_command(
                ["zypper", "if", "-t", "pattern", pattern],
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
                env=env,
            )
            installed = bool(_PATTERN_INSTALLED.search(result.stdout or ""))
        except FileNotFoundError:
            installed = False
        if not installed:
            raise PreflightError(
                f"{pattern} pattern is not installed; please install with "
                f'"zypper in -t pattern {pattern}". Aborting.'
            )

    def validate_all(self) -> Dict[str, RepositoryCheckResult]:
        """Run every configured repository check; the first failure is raised."""
        results: Dict[str, RepositoryCheckResult] = {}
        for content_check in self.app_settings.repos.content_checks:
            results[content_check.name] = self.check_content(content_check)

        results[self.app_settings.repos.ptf_repo] = self.ensure_ptf_repository()

        product_check: RepositoryProductCheck
        for product_check in self.app_settings.repos.product_checks:
            outcome = self.check_product(product_check.name, product_check.summary)
            # A repository listed twice keeps its least favourable outcome.
            if results.get(product_check.name) in (None, RepositoryCheckResult.VERIFIED):
                results[product_check.name] = outcome

        self.check_admin_pattern()
        return results
