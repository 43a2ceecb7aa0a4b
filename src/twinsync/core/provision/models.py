"""
Data models for provisioning.

Defines the existence matrix, the action chosen for it and the outcome
reported back to the CLI.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from twinsync.core.exceptions import InvalidNameError
from twinsync.core.sync.gate import GateChoice, LargeFile
from twinsync.core.sync.models import SyncResult

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_name(name: str) -> str:
    """
    Check a repository name.

    Only ASCII letters, digits, hyphen and underscore are allowed; the
    result is safe as a folder name, a GitHub repository name and a Space
    name.

    Raises:
        InvalidNameError: If ``name`` contains anything else or is empty
    """
    if not NAME_PATTERN.fullmatch(name):
        raise InvalidNameError(name)
    return name


class ProvisionAction(str, Enum):
    """What `reconcile()` does for a given existence state."""

    CREATE = "create"
    """Nothing exists: create every backend and the local folder."""

    CLONE = "clone"
    """No local folder but a backend has the repository: clone it."""

    LINK = "link"
    """Local folder exists, some backend is missing: create and link it."""

    MANAGE = "manage"
    """Everything exists: edit (fill gaps) or remove."""


class ProvisionStatus(str, Enum):
    CREATED = "created"
    CLONED = "cloned"
    LINKED = "linked"
    UPDATED = "updated"
    REMOVED = "removed"
    PARTIAL_FAILURE = "partial_failure"
    CANCELLED = "cancelled"


class ExistenceState(BaseModel):
    """Presence of the repository locally and on each enabled backend."""

    local: bool
    backends: dict[str, bool] = Field(
        default_factory=dict,
        description="Backend name -> present, in registration order",
    )

    @property
    def present(self) -> list[str]:
        return [name for name, exists in self.backends.items() if exists]

    @property
    def missing(self) -> list[str]:
        return [name for name, exists in self.backends.items() if not exists]

    def plan_action(self) -> ProvisionAction:
        if not self.local:
            return ProvisionAction.CLONE if self.present else ProvisionAction.CREATE
        return ProvisionAction.LINK if self.missing else ProvisionAction.MANAGE


class ProvisionOutcome(BaseModel):
    """Result of a `reconcile()` call."""

    name: str
    action: ProvisionAction
    status: ProvisionStatus
    local_path: Path
    message: str = ""
    created: list[str] = Field(default_factory=list, description="Backends created")
    deleted: list[str] = Field(default_factory=list, description="Backends deleted")
    failures: dict[str, str] = Field(
        default_factory=dict,
        description="Backend name -> error for operations that failed",
    )
    files_written: list[str] = Field(default_factory=list)
    cloned_from: str | None = None
    local_deleted: bool = False
    sync_result: SyncResult | None = None

    @property
    def success(self) -> bool:
        if self.status is ProvisionStatus.PARTIAL_FAILURE or self.failures:
            return False
        return self.sync_result is None or self.sync_result.success


class Prompter(Protocol):
    """Interactive operator interface used by provisioning and the upload gate."""

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def ask(self, message: str, default: str = "") -> str: ...

    def choose(self, message: str, choices: list[str], default: str) -> str: ...

    def ask_large_file(self, candidate: LargeFile) -> GateChoice: ...


class AutoPrompter:
    """
    Non-interactive prompter used with --force.

    Confirms everything and takes the default of every question. Large
    files are still skipped: forcing provisioning never uploads unexpectedly
    large content.
    """

    def confirm(self, message: str, default: bool = False) -> bool:
        return True

    def ask(self, message: str, default: str = "") -> str:
        return default

    def choose(self, message: str, choices: list[str], default: str) -> str:
        return default

    def ask_large_file(self, candidate: LargeFile) -> GateChoice:
        return GateChoice.SKIP
