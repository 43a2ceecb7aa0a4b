"""
Pytest configuration and shared fixtures.

Provides isolated git identities, local bare repositories standing in for
the hosted remotes, and in-memory backends for provisioning tests.
"""

from __future__ import annotations

import os
from shutil import rmtree
import subprocess
from pathlib import Path

import pytest

from twinsync.core.backends.base import Backend
from twinsync.core.exceptions import BackendError
from twinsync.core.sync.models import RemoteIdentity

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def git_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Give every test a predictable git identity and an empty global config.

    The user's own git configuration (signing, hooks, default branch) must
    not leak into the tests.
    """
    home = tmp_path_factory.mktemp("home")
    global_config = home / ".gitconfig"
    global_config.write_text("")

    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    for var in ("GITHUB_TOKEN", "HF_TOKEN", "GITHUB_USER", "HF_USER"):
        monkeypatch.delenv(var, raising=False)


# ==============================================================================
# Git Helpers
# ==============================================================================


def git(*args: str, cwd: Path, date: str | None = None) -> str:
    """Run git in ``cwd`` and return stripped stdout."""
    env = dict(os.environ)
    if date is not None:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env=env,
    )
    return result.stdout.strip()


def make_bare(path: Path) -> Path:
    """Create an empty bare repository whose default branch is main."""
    path.mkdir(parents=True)
    git("init", "-q", "--bare", "-b", "main", cwd=path)
    return path


def commit_to_remote(
    remote: Path,
    scratch: Path,
    files: dict[str, str],
    message: str,
    date: str | None = None,
) -> str:
    """Clone ``remote``, write ``files``, commit and push back. Returns the new SHA."""
    if not scratch.exists():
        git("clone", "-q", str(remote), str(scratch), cwd=remote.parent)
    else:
        git("pull", "-q", "origin", "main", cwd=scratch)
    for rel_path, content in files.items():
        target = scratch / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    git("add", "-A", cwd=scratch)
    git("commit", "-q", "-m", message, cwd=scratch, date=date)
    git("push", "-q", "origin", "HEAD:refs/heads/main", cwd=scratch)
    return git("rev-parse", "HEAD", cwd=scratch)


def remote_main(remote: Path) -> str | None:
    """SHA of main in a bare repository, or None if it has no commits."""
    result = subprocess.run(
        ["git", "rev-parse", "--verify", "-q", "refs/heads/main"],
        cwd=remote,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip() or None


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def bare_remotes(tmp_path: Path) -> dict[str, Path]:
    """Two empty bare repositories named after the backends."""
    return {
        "github": make_bare(tmp_path / "remotes" / "github.git"),
        "space": make_bare(tmp_path / "remotes" / "space.git"),
    }


@pytest.fixture
def remote_identities(bare_remotes: dict[str, Path]) -> list[RemoteIdentity]:
    """Remote identities in registration order (github first)."""
    return [
        RemoteIdentity(name=name, url=str(path)) for name, path in bare_remotes.items()
    ]


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on main with no commits."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git("init", "-q", "-b", "main", cwd=repo)
    return repo


# ==============================================================================
# Backend Fixtures
# ==============================================================================


class FakeBackend(Backend):
    """
    In-memory backend whose repositories are local bare git repositories.

    Set `fail_create` / `fail_delete` / `fail_exists` to simulate API errors.
    """

    def __init__(self, name: str, label: str, root: Path) -> None:
        super().__init__("t" * 20, owner="tester", base_url=f"https://{name}.invalid")
        self.name = name
        self.label = label
        self.root = root
        self.repos: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.fail_create = False
        self.fail_delete = False
        self.fail_exists = False

    def _path(self, repo_name: str) -> Path:
        return self.root / self.name / f"{repo_name}.git"

    def whoami(self) -> str:
        return "tester"

    def exists(self, repo_name: str) -> bool:
        self.calls.append(("exists", repo_name))
        if self.fail_exists:
            raise BackendError(self.name, "API down")
        return repo_name in self.repos

    def create(self, repo_name: str, *, description: str = "", private: bool = False) -> str:
        self.calls.append(("create", repo_name))
        if self.fail_create:
            raise BackendError(self.name, "quota exceeded", status_code=403)
        make_bare(self._path(repo_name))
        self.repos.add(repo_name)
        return self.clone_url(repo_name)

    def delete(self, repo_name: str) -> None:
        self.calls.append(("delete", repo_name))
        if self.fail_delete:
            raise BackendError(self.name, "forbidden", status_code=403)
        self.repos.discard(repo_name)
        rmtree(self._path(repo_name), ignore_errors=True)

    def clone_url(self, repo_name: str) -> str:
        return str(self._path(repo_name))

    def authenticated_url(self, repo_name: str) -> str:
        return self.clone_url(repo_name)

    def head(self, repo_name: str) -> str | None:
        return remote_main(self._path(repo_name))


@pytest.fixture
def fake_backends(tmp_path: Path) -> list[FakeBackend]:
    """A GitHub-like and a Space-like backend, in registration order."""
    root = tmp_path / "hosted"
    return [
        FakeBackend("github", "GitHub", root),
        FakeBackend("space", "Hugging Face", root),
    ]
