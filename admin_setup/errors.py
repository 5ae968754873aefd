# admin_setup/errors.py
# -*- coding: utf-8 -*-
"""
Exception taxonomy for the admin node installer.

Every fatal condition is raised as an InstallerError subclass. Components
never exit the process themselves; the entry point renders the message and
chooses the exit code.
"""

from typing import Optional


class InstallerError(Exception):
    """Base class for all fatal installer conditions."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(InstallerError):
    """Invalid or unreadable configuration input."""


class PreflightError(InstallerError):
    """A host precondition does not hold; nothing has been changed yet."""


class RepositoryError(InstallerError):
    """Base class for repository validation failures."""

    def __init__(self, message: str, repository: str):
        super().__init__(message)
        self.repository = repository


class RepositoryNotSetUpError(RepositoryError):
    """The repository has not been set up on disk."""


class ContentMismatchError(RepositoryError):
    """The repository content file does not match the expected checksum."""


class ProductMismatchError(RepositoryError):
    """products.xml does not describe the expected product."""


class ServiceStartError(InstallerError):
    """A service could not be started."""

    def __init__(self, message: str, service: str):
        super().__init__(message)
        self.service = service


class InstallError(InstallerError):
    """A barclamp failed to install; later barclamps were not attempted."""

    def __init__(self, message: str, unit: str):
        super().__init__(message)
        self.unit = unit


class ProposalCreateError(InstallerError):
    """The proposal could not be created within the attempt budget."""

    def __init__(self, message: str, proposal: str, attempts: int):
        super().__init__(message)
        self.proposal = proposal
        self.attempts = attempts


class ProposalCommitError(InstallerError):
    """Committing the proposal failed."""

    def __init__(self, message: str, proposal: str):
        super().__init__(message)
        self.proposal = proposal


class TransitionError(InstallerError):
    """The node could not be moved to a lifecycle state."""

    def __init__(self, message: str, state: str, cause: Optional[str] = None):
        super().__init__(message)
        self.state = state
        self.cause = cause


class ChefBootstrapError(InstallerError):
    """Preparing chef for the admin node failed."""


class PostInstallError(InstallerError):
    """A post-installation sanity check failed."""
