"""
Tests for ProvisionService.

Backends are FakeBackend instances backed by local bare repositories, so
every path runs real git end to end.

Tests cover:
- State detection and action planning
- Create on both backends, with rollback when one fails
- Clone, link, edit and remove
- Typed confirmation for removal
- Name validation before any remote contact
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeBackend, commit_to_remote

from twinsync.core.exceptions import ConfirmationMismatchError, InvalidNameError, ProvisionError
from twinsync.core.git import GitRepo
from twinsync.core.provision import (
    AutoPrompter,
    ExistenceState,
    Flavor,
    ProvisionAction,
    ProvisionService,
    ProvisionStatus,
    validate_name,
)
from twinsync.core.sync import SyncService
from twinsync.core.sync.gate import GateChoice, LargeFile


class ScriptedPrompter:
    """
    Prompter that replays fixed answers and records the questions.

    ``confirm`` is either one answer for every confirmation or a list
    consumed in order.
    """

    def __init__(
        self,
        *,
        confirm: bool | list[bool] = True,
        answer: str = "",
        choice: str = "edit",
    ) -> None:
        self._confirm = confirm
        self._answer = answer
        self._choice = choice
        self.questions: list[str] = []

    def confirm(self, message: str, default: bool = False) -> bool:
        self.questions.append(message)
        if isinstance(self._confirm, list):
            return self._confirm.pop(0)
        return self._confirm

    def ask(self, message: str, default: str = "") -> str:
        self.questions.append(message)
        return self._answer

    def choose(self, message: str, choices: list[str], default: str) -> str:
        self.questions.append(message)
        return self._choice

    def ask_large_file(self, candidate: LargeFile) -> GateChoice:
        return GateChoice.SKIP


@pytest.fixture
def parent(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


def make_service(
    backends: list[FakeBackend],
    parent: Path,
    prompter: object | None = None,
    flavor: Flavor = Flavor.STATIC,
) -> ProvisionService:
    return ProvisionService(
        backends,  # type: ignore[arg-type]
        prompter=prompter or AutoPrompter(),  # type: ignore[arg-type]
        parent_dir=parent,
        flavor=flavor,
    )


class TestValidation:
    @pytest.mark.parametrize("name", ["demo", "my-space_2", "A1"])
    def test_valid_names(self, name: str) -> None:
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", "has space", "a/b", "dots.not.ok", "ünï"])
    def test_invalid_names(self, name: str) -> None:
        with pytest.raises(InvalidNameError):
            validate_name(name)

    def test_invalid_name_contacts_no_backend(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        with pytest.raises(InvalidNameError):
            make_service(fake_backends, parent).reconcile("bad name")

        assert all(b.calls == [] for b in fake_backends)

    def test_requires_a_backend(self, parent: Path) -> None:
        with pytest.raises(ValueError):
            ProvisionService([], prompter=AutoPrompter(), parent_dir=parent)


class TestExistenceState:
    @pytest.mark.parametrize(
        ("local", "backends", "expected"),
        [
            (False, {"github": False, "space": False}, ProvisionAction.CREATE),
            (False, {"github": True, "space": False}, ProvisionAction.CLONE),
            (False, {"github": True, "space": True}, ProvisionAction.CLONE),
            (True, {"github": False, "space": False}, ProvisionAction.LINK),
            (True, {"github": True, "space": False}, ProvisionAction.LINK),
            (True, {"github": True, "space": True}, ProvisionAction.MANAGE),
        ],
    )
    def test_plan_action(
        self, local: bool, backends: dict[str, bool], expected: ProvisionAction
    ) -> None:
        assert ExistenceState(local=local, backends=backends).plan_action() is expected

    def test_failed_existence_check_counts_as_absent(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        fake_backends[1].fail_exists = True

        state = make_service(fake_backends, parent).detect_state("demo")

        assert state.backends == {"github": False, "space": False}
        assert state.local is False


class TestCreate:
    def test_create_on_both(self, fake_backends: list[FakeBackend], parent: Path) -> None:
        github, space = fake_backends

        outcome = make_service(fake_backends, parent).reconcile(
            "demo", description="Notes", force=True
        )

        path = parent / "demo"
        repo = GitRepo(path)
        assert outcome.status is ProvisionStatus.CREATED
        assert outcome.success
        assert outcome.created == ["github", "space"]
        assert github.repos == {"demo"} and space.repos == {"demo"}
        assert github.head("demo") == repo.head()
        assert space.head("demo") == repo.head()
        assert [name for name, _ in repo.remotes()] == ["github", "space"]
        for filename in ("README.md", "index.html", "manifest.json", ".twinsync.json"):
            assert (path / filename).exists()
        assert outcome.sync_result is not None
        assert outcome.sync_result.commit_sha == repo.head()

    def test_declined_creates_nothing(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        prompter = ScriptedPrompter(confirm=False)

        outcome = make_service(fake_backends, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.CANCELLED
        assert not (parent / "demo").exists()
        assert all(b.repos == set() for b in fake_backends)

    def test_second_backend_failure_rolls_back_first(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        github, space = fake_backends
        space.fail_create = True

        with pytest.raises(ProvisionError) as exc_info:
            make_service(fake_backends, parent).reconcile("demo", force=True)

        assert github.repos == set()
        assert ("delete", "demo") in github.calls
        assert not (parent / "demo").exists()
        assert "rolled back github" in str(exc_info.value)

    def test_rollback_failure_is_reported(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        github, space = fake_backends
        space.fail_create = True
        github.fail_delete = True

        with pytest.raises(ProvisionError) as exc_info:
            make_service(fake_backends, parent).reconcile("demo", force=True)

        assert exc_info.value.context["rollback_failures"] == ["delete demo on GitHub"]

    def test_gradio_flavor(self, fake_backends: list[FakeBackend], parent: Path) -> None:
        outcome = make_service(fake_backends, parent, flavor=Flavor.GRADIO).reconcile(
            "demo", force=True
        )

        assert "app.py" in outcome.files_written
        assert "sdk: gradio" in (parent / "demo" / "README.md").read_text()


class TestClone:
    def test_clone_from_github_and_create_space(
        self, fake_backends: list[FakeBackend], parent: Path, tmp_path: Path
    ) -> None:
        github, space = fake_backends
        github.create("demo")
        sha = commit_to_remote(
            github._path("demo"), tmp_path / "seed", {"README.md": "# demo\n"}, "Seed"
        )

        outcome = make_service(fake_backends, parent).reconcile("demo", force=True)

        path = parent / "demo"
        assert outcome.action is ProvisionAction.CLONE
        assert outcome.status is ProvisionStatus.CLONED
        assert outcome.cloned_from == "github"
        assert outcome.created == ["space"]
        assert (path / "README.md").read_text() == "# demo\n"
        assert GitRepo(path).is_ancestor(sha, GitRepo(path).head() or "")
        assert space.head("demo") == GitRepo(path).head()

    def test_declined_create_keeps_clone_linked_to_its_source(
        self, fake_backends: list[FakeBackend], parent: Path, tmp_path: Path
    ) -> None:
        github, space = fake_backends
        github.create("demo")
        commit_to_remote(
            github._path("demo"), tmp_path / "seed", {"README.md": "# demo\n"}, "Seed"
        )
        prompter = ScriptedPrompter(confirm=[True, False])

        outcome = make_service(fake_backends, parent, prompter).reconcile("demo")

        path = parent / "demo"
        assert len(prompter.questions) == 2
        assert outcome.status is ProvisionStatus.CLONED
        assert outcome.created == []
        assert space.repos == set()
        assert [name for name, _ in GitRepo(path).remotes()] == ["github"]

        (path / "notes.txt").write_text("edit\n")
        result = SyncService(project_dir=path).sync()

        assert result.pushed == ["github"]
        assert github.head("demo") == GitRepo(path).head()

    def test_every_clone_failing_leaves_empty_folder(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        github, space = fake_backends
        github.repos.add("demo")  # listed by the API, but no git repository behind it

        outcome = make_service(fake_backends, parent).reconcile("demo", force=True)

        assert outcome.cloned_from is None
        assert (parent / "demo" / "README.md").exists()
        assert outcome.created == ["space"]


class TestLink:
    def test_link_existing_folder(self, fake_backends: list[FakeBackend], parent: Path) -> None:
        github, space = fake_backends
        path = parent / "demo"
        (path / "chapter").mkdir(parents=True)
        (path / "chapter" / "one.html").write_text("<p>one</p>")

        outcome = make_service(fake_backends, parent).reconcile("demo", force=True)

        assert outcome.action is ProvisionAction.LINK
        assert outcome.status is ProvisionStatus.LINKED
        assert outcome.created == ["github", "space"]
        assert "README.md" in outcome.files_written
        head = GitRepo(path).head()
        assert github.head("demo") == head
        assert space.head("demo") == head
        assert "chapter/one.html" in (path / "manifest.json").read_text()

    def test_link_keeps_existing_readme(
        self, fake_backends: list[FakeBackend], parent: Path
    ) -> None:
        path = parent / "demo"
        path.mkdir()
        (path / "README.md").write_text("# already here\n")

        outcome = make_service(fake_backends, parent).reconcile("demo", force=True)

        assert outcome.files_written == []
        assert (path / "README.md").read_text() == "# already here\n"


class TestManage:
    @pytest.fixture
    def existing(self, fake_backends: list[FakeBackend], parent: Path) -> list[FakeBackend]:
        outcome = make_service(fake_backends, parent).reconcile("demo", force=True)
        assert outcome.status is ProvisionStatus.CREATED
        return fake_backends

    def test_force_means_edit(self, existing: list[FakeBackend], parent: Path) -> None:
        (parent / "demo" / "index.html").unlink()

        outcome = make_service(existing, parent).reconcile("demo", force=True)

        assert outcome.status is ProvisionStatus.UPDATED
        assert outcome.files_written == ["index.html"]
        assert all(b.repos == {"demo"} for b in existing)

    def test_cancel(self, existing: list[FakeBackend], parent: Path) -> None:
        prompter = ScriptedPrompter(choice="cancel")

        outcome = make_service(existing, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.CANCELLED
        assert all(b.repos == {"demo"} for b in existing)

    def test_remove_everything(self, existing: list[FakeBackend], parent: Path) -> None:
        prompter = ScriptedPrompter(choice="remove", answer="demo", confirm=True)

        outcome = make_service(existing, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.REMOVED
        assert outcome.deleted == ["github", "space"]
        assert outcome.local_deleted
        assert not (parent / "demo").exists()
        assert all(b.repos == set() for b in existing)

    def test_remove_keeps_local_folder_when_declined(
        self, existing: list[FakeBackend], parent: Path
    ) -> None:
        prompter = ScriptedPrompter(choice="remove", answer="demo", confirm=False)

        outcome = make_service(existing, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.REMOVED
        assert not outcome.local_deleted
        assert (parent / "demo").exists()

    def test_remove_is_best_effort(self, existing: list[FakeBackend], parent: Path) -> None:
        github, space = existing
        github.fail_delete = True
        prompter = ScriptedPrompter(choice="remove", answer="demo", confirm=True)

        outcome = make_service(existing, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.PARTIAL_FAILURE
        assert not outcome.success
        assert set(outcome.failures) == {"github"}
        assert outcome.deleted == ["space"]
        assert space.repos == set()
        assert outcome.local_deleted

    def test_local_delete_failure_is_recorded(
        self, existing: list[FakeBackend], parent: Path
    ) -> None:
        prompter = ScriptedPrompter(choice="remove", answer="demo", confirm=True)

        with patch(
            "twinsync.core.provision.service.shutil.rmtree",
            side_effect=OSError("Device or resource busy"),
        ):
            outcome = make_service(existing, parent, prompter).reconcile("demo")

        assert outcome.status is ProvisionStatus.PARTIAL_FAILURE
        assert outcome.deleted == ["github", "space"]
        assert "busy" in outcome.failures["local"]
        assert not outcome.local_deleted
        assert (parent / "demo").exists()

    def test_confirmation_mismatch_deletes_nothing(
        self, existing: list[FakeBackend], parent: Path
    ) -> None:
        prompter = ScriptedPrompter(choice="remove", answer="dmeo")

        with pytest.raises(ConfirmationMismatchError):
            make_service(existing, parent, prompter).reconcile("demo")

        assert all(b.repos == {"demo"} for b in existing)
        assert (parent / "demo").exists()
