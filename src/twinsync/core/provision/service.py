"""
Repository provisioning.

Looks the repository up on every enabled backend and on disk, then acts
on the combination:

    local  backends      action
    -----  ------------  -------------------------------------------------
    no     none          CREATE every backend, the folder, starter files
    no     some or all   CLONE from the first present backend
    yes    some missing  LINK: create the missing backends, add remotes
    yes    all           MANAGE: edit (fill gaps) or remove everything

Backend creation is all-or-nothing within a run: each successful create
pushes a compensating delete onto a `RollbackStack`, which is unwound when
a later step fails.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from functools import partial
from pathlib import Path

from twinsync.core.backends.base import Backend
from twinsync.core.exceptions import (
    BackendError,
    ConfirmationMismatchError,
    GitError,
    ProvisionError,
    TwinsyncError,
)
from twinsync.core.git import GitRepo
from twinsync.core.provision.models import (
    ExistenceState,
    Prompter,
    ProvisionAction,
    ProvisionOutcome,
    ProvisionStatus,
    validate_name,
)
from twinsync.core.provision.rollback import RollbackStack
from twinsync.core.provision.templates import Flavor, render_starter_files, write_starter_files
from twinsync.core.sync.models import RemoteIdentity
from twinsync.core.sync.service import SyncService

logger = logging.getLogger(__name__)


class ProvisionService:
    """
    Drives create / clone / link / edit / remove for one repository name.

    Example:
        >>> service = ProvisionService(backends, prompter=CliPrompter())
        >>> outcome = service.reconcile("demo", description="Notes")
        >>> outcome.status
        <ProvisionStatus.CREATED: 'created'>

    Args:
        backends: Enabled backends in remote registration order
        prompter: Operator interface for confirmations and the upload gate
        parent_dir: Directory that holds the working copy (defaults to cwd)
        flavor: Starter file set for new working copies
        sync_factory: Builds the SyncService for a working copy (tests
            override it)
    """

    def __init__(
        self,
        backends: list[Backend],
        *,
        prompter: Prompter,
        parent_dir: Path | None = None,
        flavor: Flavor = Flavor.STATIC,
        sync_factory: Callable[[Path], SyncService] | None = None,
    ) -> None:
        if not backends:
            raise ValueError("At least one backend is required")
        self.backends = backends
        self.prompter = prompter
        self.parent_dir = (parent_dir or Path.cwd()).resolve()
        self.flavor = flavor
        self._sync_factory = sync_factory or self._default_sync_service

    def _default_sync_service(self, path: Path) -> SyncService:
        return SyncService(project_dir=path, ask_large_file=self.prompter.ask_large_file)

    def local_path(self, name: str) -> Path:
        return self.parent_dir / name

    def remotes_for(self, name: str) -> list[RemoteIdentity]:
        return [
            RemoteIdentity(name=backend.name, url=backend.authenticated_url(name))
            for backend in self.backends
        ]

    def _labels(self, names: list[str] | None = None) -> str:
        return " and ".join(b.label for b in self.backends if names is None or b.name in names)

    # ------------------------------------------------------------------
    # State detection
    # ------------------------------------------------------------------

    def detect_state(self, name: str) -> ExistenceState:
        """Check the local folder and every backend; failed checks count as absent."""
        backends: dict[str, bool] = {}
        for backend in self.backends:
            try:
                backends[backend.name] = backend.exists(name)
            except BackendError as e:
                logger.warning(
                    "Cannot check %s on %s, treating as absent: %s", name, backend.label, e
                )
                backends[backend.name] = False

        state = ExistenceState(local=self.local_path(name).exists(), backends=backends)
        logger.info("State for %s: local=%s backends=%s", name, state.local, state.backends)
        return state

    def reconcile(
        self,
        name: str,
        description: str = "",
        private: bool = False,
        force: bool = False,
    ) -> ProvisionOutcome:
        """
        Bring ``name`` to a consistent state across the backends and disk.

        Raises:
            InvalidNameError: Before any remote contact if ``name`` is invalid
            ConfirmationMismatchError: If removal was not confirmed by name
            ProvisionError: If creation failed (after rollback)
        """
        validate_name(name)
        state = self.detect_state(name)
        action = state.plan_action()

        if action is ProvisionAction.CREATE:
            return self.create(name, description=description, private=private, force=force)
        if action is ProvisionAction.CLONE:
            return self.clone(name, state, description=description, private=private, force=force)
        if action is ProvisionAction.LINK:
            return self.link(name, state, description=description, private=private, force=force)
        return self.manage(name, state, description=description, force=force)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _create_backends(
        self,
        name: str,
        backends: list[Backend],
        rollback: RollbackStack,
        *,
        description: str,
        private: bool,
    ) -> list[str]:
        created: list[str] = []
        for backend in backends:
            try:
                url = backend.create(name, description=description, private=private)
            except BackendError as e:
                failed_rollbacks = rollback.unwind()
                message = f"Creating {name} on {backend.label} failed: {e}"
                if created:
                    message += f" (rolled back {', '.join(created)})"
                if failed_rollbacks:
                    message += f"; rollback failed for: {', '.join(failed_rollbacks)}"
                raise ProvisionError(
                    message,
                    backend=backend.name,
                    rolled_back=created,
                    rollback_failures=failed_rollbacks,
                ) from e

            logger.info("Created %s on %s: %s", name, backend.label, url)
            created.append(backend.name)
            rollback.push(f"delete {name} on {backend.label}", partial(backend.delete, name))
        return created

    def create(
        self,
        name: str,
        *,
        description: str = "",
        private: bool = False,
        force: bool = False,
    ) -> ProvisionOutcome:
        """Create every backend, then the local working copy, then push."""
        path = self.local_path(name)
        outcome = ProvisionOutcome(
            name=name,
            action=ProvisionAction.CREATE,
            status=ProvisionStatus.CANCELLED,
            local_path=path,
        )

        question = f"'{name}' does not exist. Create it on {self._labels()} and locally?"
        if not force and not self.prompter.confirm(question, default=True):
            outcome.message = "Nothing created"
            return outcome

        rollback = RollbackStack()
        outcome.created = self._create_backends(
            name, self.backends, rollback, description=description, private=private
        )

        try:
            path.mkdir(parents=True)
            outcome.files_written = write_starter_files(
                path, render_starter_files(name, description, self.flavor)
            )
            outcome.sync_result = self._sync_factory(path).setup(self.remotes_for(name))
        except (TwinsyncError, OSError) as e:
            failed_rollbacks = rollback.unwind()
            shutil.rmtree(path, ignore_errors=True)
            raise ProvisionError(
                f"Setting up the local working copy failed: {e}",
                rollback_failures=failed_rollbacks,
            ) from e

        rollback.clear()
        if outcome.sync_result.success:
            outcome.status = ProvisionStatus.CREATED
            outcome.message = f"Created {name} on {self._labels()}"
        else:
            outcome.status = ProvisionStatus.PARTIAL_FAILURE
            outcome.failures.update(outcome.sync_result.push_failures)
            outcome.message = f"Created {name}, but some pushes failed"
        return outcome

    def clone(
        self,
        name: str,
        state: ExistenceState,
        *,
        description: str = "",
        private: bool = False,
        force: bool = False,
    ) -> ProvisionOutcome:
        """Clone from the first backend that has the repository."""
        path = self.local_path(name)
        present = [b for b in self.backends if state.backends.get(b.name)]
        outcome = ProvisionOutcome(
            name=name,
            action=ProvisionAction.CLONE,
            status=ProvisionStatus.CANCELLED,
            local_path=path,
        )

        question = f"'{name}' exists on {present[0].label}. Clone it to {path}?"
        if not force and not self.prompter.confirm(question, default=True):
            outcome.message = "Nothing cloned"
            return outcome

        for backend in present:
            try:
                GitRepo.clone(backend.authenticated_url(name), path)
            except GitError as e:
                logger.warning("Cloning from %s failed: %s", backend.label, e.stderr or e)
                shutil.rmtree(path, ignore_errors=True)
                continue
            outcome.cloned_from = backend.name
            logger.info("Cloned %s from %s", name, backend.label)
            break

        if outcome.cloned_from is None:
            logger.warning("Every clone failed, creating an empty folder at %s", path)
            path.mkdir(parents=True, exist_ok=True)

        # The clone drops its origin; register what already exists before
        # link() offers to create the rest, so declining still leaves remotes.
        present_names = {b.name for b in present}
        self._sync_factory(path).ensure_repo(
            r for r in self.remotes_for(name) if r.name in present_names
        )

        linked = self.link(
            name,
            ExistenceState(local=True, backends=state.backends),
            description=description,
            private=private,
            force=force,
        )
        linked.action = ProvisionAction.CLONE
        linked.cloned_from = outcome.cloned_from
        if linked.status is not ProvisionStatus.PARTIAL_FAILURE:
            linked.status = ProvisionStatus.CLONED
            linked.message = f"Cloned {name}" + (
                f" from {outcome.cloned_from}" if outcome.cloned_from else " (empty folder)"
            )
        return linked

    def link(
        self,
        name: str,
        state: ExistenceState,
        *,
        description: str = "",
        private: bool = False,
        force: bool = False,
    ) -> ProvisionOutcome:
        """Create missing backends for an existing folder and sync to all of them."""
        path = self.local_path(name)
        missing = [b for b in self.backends if b.name in state.missing]
        outcome = ProvisionOutcome(
            name=name,
            action=ProvisionAction.LINK,
            status=ProvisionStatus.CANCELLED,
            local_path=path,
        )

        if missing:
            question = f"Create '{name}' on {self._labels(state.missing)} and link {path}?"
            if not force and not self.prompter.confirm(question, default=True):
                outcome.message = "Nothing linked"
                return outcome

            rollback = RollbackStack()
            outcome.created = self._create_backends(
                name, missing, rollback, description=description, private=private
            )
            rollback.clear()

        outcome.files_written = write_starter_files(
            path, render_starter_files(name, description, self.flavor)
        )
        sync_service = self._sync_factory(path)
        sync_service.ensure_repo(self.remotes_for(name))
        outcome.sync_result = sync_service.sync()

        if outcome.sync_result.success:
            outcome.status = ProvisionStatus.LINKED
            outcome.message = f"Linked {path} to {self._labels()}"
        else:
            outcome.status = ProvisionStatus.PARTIAL_FAILURE
            outcome.failures.update(outcome.sync_result.push_failures)
            outcome.message = "Linked, but some pushes failed"
        return outcome

    # ------------------------------------------------------------------
    # Existing repositories
    # ------------------------------------------------------------------

    def manage(
        self,
        name: str,
        state: ExistenceState,
        *,
        description: str = "",
        force: bool = False,
    ) -> ProvisionOutcome:
        """Everything exists: offer to fill gaps or to remove it all."""
        choice = "edit"
        if not force:
            choice = self.prompter.choose(
                f"'{name}' exists locally and on {self._labels()}. What now?",
                ["edit", "remove", "cancel"],
                default="edit",
            )

        if choice == "remove":
            return self.remove(name, state, force=force)
        if choice == "edit":
            return self.edit(name, description=description)
        return ProvisionOutcome(
            name=name,
            action=ProvisionAction.MANAGE,
            status=ProvisionStatus.CANCELLED,
            local_path=self.local_path(name),
            message="Nothing changed",
        )

    def edit(self, name: str, *, description: str = "") -> ProvisionOutcome:
        """Write missing starter files and re-register remotes. Never overwrites."""
        path = self.local_path(name)
        written = write_starter_files(
            path, render_starter_files(name, description, self.flavor), fill_missing=True
        )
        self._sync_factory(path).ensure_repo(self.remotes_for(name))

        return ProvisionOutcome(
            name=name,
            action=ProvisionAction.MANAGE,
            status=ProvisionStatus.UPDATED,
            local_path=path,
            files_written=written,
            message=(
                f"Added {', '.join(written)}" if written else "Working copy already complete"
            ),
        )

    def remove(self, name: str, state: ExistenceState, *, force: bool = False) -> ProvisionOutcome:
        """
        Delete the repository everywhere it exists.

        Backend deletions are best-effort: a failure on one is recorded and
        the others are still attempted. The local folder is removed only
        after its own confirmation.

        Raises:
            ConfirmationMismatchError: If the typed name does not match
        """
        path = self.local_path(name)
        if not force:
            typed = self.prompter.ask(f"Type '{name}' to delete it from {self._labels()}")
            if typed.strip() != name:
                raise ConfirmationMismatchError(name, typed.strip())

        outcome = ProvisionOutcome(
            name=name,
            action=ProvisionAction.MANAGE,
            status=ProvisionStatus.REMOVED,
            local_path=path,
        )

        for backend in self.backends:
            if not state.backends.get(backend.name):
                continue
            try:
                backend.delete(name)
            except BackendError as e:
                logger.error("Deleting %s on %s failed: %s", name, backend.label, e)
                outcome.failures[backend.name] = str(e)
                continue
            logger.info("Deleted %s on %s", name, backend.label)
            outcome.deleted.append(backend.name)

        if path.exists():
            question = f"Also delete the local folder {path}?"
            if force or self.prompter.confirm(question, default=False):
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    logger.error("Deleting local folder %s failed: %s", path, e)
                    outcome.failures["local"] = str(e)
                else:
                    outcome.local_deleted = True

        if outcome.failures:
            outcome.status = ProvisionStatus.PARTIAL_FAILURE
            outcome.message = f"Deletion failed on {', '.join(outcome.failures)}"
        else:
            outcome.message = f"Removed {name}"
        return outcome
