"""
Repository provisioning across GitHub, Hugging Face Spaces and disk.

Example:
    >>> from twinsync.core.provision import ProvisionService, AutoPrompter
    >>> service = ProvisionService(backends, prompter=AutoPrompter())
    >>> outcome = service.reconcile("demo", force=True)
"""

from twinsync.core.provision.models import (
    AutoPrompter,
    ExistenceState,
    Prompter,
    ProvisionAction,
    ProvisionOutcome,
    ProvisionStatus,
    validate_name,
)
from twinsync.core.provision.rollback import RollbackStack
from twinsync.core.provision.service import ProvisionService
from twinsync.core.provision.templates import (
    Flavor,
    StarterFile,
    render_starter_files,
    write_starter_files,
)

__all__ = [
    "AutoPrompter",
    "ExistenceState",
    "Flavor",
    "Prompter",
    "ProvisionAction",
    "ProvisionOutcome",
    "ProvisionService",
    "ProvisionStatus",
    "RollbackStack",
    "StarterFile",
    "render_starter_files",
    "validate_name",
    "write_starter_files",
]
