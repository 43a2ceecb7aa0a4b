"""
Git engine wrapper.

Every interaction with history storage, merge, diff and transport goes
through `GitRepo`, which runs the `git` binary via subprocess. Command
lines and stderr are passed through `redact_text()` before they are
logged or attached to a `GitError`, because remote URLs carry tokens.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from twinsync.core.exceptions import GitError
from twinsync.core.redact import redact_text

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"

# Local plumbing should be instant; network operations may block for as
# long as the transfer takes.
LOCAL_TIMEOUT = 60


class GitRepo:
    """
    A local working copy driven through the git CLI.

    Example:
        >>> repo = GitRepo(Path("my-space"))
        >>> repo.init()
        >>> repo.add_all()
        >>> sha = repo.commit("Initial commit")
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).resolve()

    @property
    def git_dir(self) -> Path:
        return self.path / ".git"

    def _run_git(
        self,
        args: list[str],
        *,
        check: bool = True,
        timeout: float | None = LOCAL_TIMEOUT,
        cwd: Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """
        Run a git command.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.
            timeout: Seconds before the command is killed (None = wait forever).
            cwd: Directory to run in (defaults to the working copy).

        Returns:
            The completed process with text stdout/stderr.

        Raises:
            GitError: If the command fails and check=True.
        """
        cmd = ["git", *args]
        logger.debug("Running git command: %s", redact_text(" ".join(cmd)))

        env = dict(os.environ)
        # Never block on a credential prompt; a bad token must fail the command.
        env["GIT_TERMINAL_PROMPT"] = "0"

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.path,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found in PATH", command=cmd) from e

        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise GitError(
                f"Git command failed: {' '.join(cmd)}",
                command=cmd,
                stderr=stderr,
                returncode=result.returncode,
            )
        return result

    def _output(self, args: list[str], **kwargs: object) -> str:
        result = self._run_git(args, **kwargs)  # type: ignore[arg-type]
        return result.stdout.strip() if result.stdout else ""

    # ------------------------------------------------------------------
    # Repository state
    # ------------------------------------------------------------------

    def is_repo(self) -> bool:
        """Check if the path is the root of a git working copy."""
        if not self.path.is_dir():
            return False
        result = self._run_git(["rev-parse", "--show-toplevel"], check=False)
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == self.path

    def init(self, branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a repository whose first branch is ``branch``."""
        self.path.mkdir(parents=True, exist_ok=True)
        self._run_git(["init", "-q", "-b", branch])

    def head(self) -> str | None:
        """Commit SHA of HEAD, or None before the first commit."""
        result = self._run_git(["rev-parse", "--verify", "-q", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def current_branch(self) -> str | None:
        result = self._run_git(["symbolic-ref", "--short", "-q", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def commit_timestamp(self, ref: str) -> int:
        """Committer time of ``ref`` as a Unix timestamp."""
        return int(self._output(["log", "-1", "--format=%ct", ref]))

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._run_git(
            ["merge-base", "--is-ancestor", ancestor, descendant], check=False
        )
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def add_all(self) -> None:
        """Stage every change in the working copy, deletions included."""
        self._run_git(["add", "-A"])

    def staged_paths(self) -> list[str]:
        """Paths added, modified or changed in type in the index relative to HEAD."""
        output = self._run_git(
            ["diff", "--cached", "--name-only", "-z", "--no-renames", "--diff-filter=AMT"]
        ).stdout
        return [p for p in output.split("\0") if p]

    def has_staged_changes(self) -> bool:
        result = self._run_git(["diff", "--cached", "--quiet"], check=False)
        return result.returncode != 0

    def unstage(self, path: str) -> None:
        """Remove ``path`` from the index without touching the file on disk."""
        if self.head() is None:
            self._run_git(["rm", "--cached", "-q", "--", path])
        else:
            self._run_git(["reset", "-q", "HEAD", "--", path])

    def commit(self, message: str) -> str:
        """Commit the index and return the new HEAD SHA."""
        self._run_git(["commit", "-q", "-m", message])
        head = self.head()
        if head is None:
            raise GitError("Commit did not produce a HEAD", command=["git", "commit"])
        return head

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------

    def remotes(self) -> list[tuple[str, str]]:
        """
        Configured remotes as (name, url) in registration order.

        `git remote` sorts by name; the config file keeps the order in which
        remotes were added, which is what merge tie-breaking relies on.
        """
        result = self._run_git(
            ["config", "--local", "--get-regexp", r"^remote\..*\.url$"], check=False
        )
        if result.returncode != 0:
            return []

        remotes: list[tuple[str, str]] = []
        for line in result.stdout.splitlines():
            key, _, url = line.partition(" ")
            name = key[len("remote."):-len(".url")]
            if name and (name, url) not in remotes:
                remotes.append((name, url))
        return remotes

    def set_remote(self, name: str, url: str) -> None:
        """Add remote ``name`` or point it at ``url`` if it already exists."""
        existing = dict(self.remotes())
        if name not in existing:
            self._run_git(["remote", "add", name, url])
        elif existing[name] != url:
            self._run_git(["remote", "set-url", name, url])

    def fetch(self, remote: str, branch: str = DEFAULT_BRANCH) -> None:
        self._run_git(["fetch", "-q", remote, branch], timeout=None)

    def remote_head(self, remote: str, branch: str = DEFAULT_BRANCH) -> str | None:
        """SHA of the remote-tracking ref, or None if it was never fetched."""
        result = self._run_git(
            ["rev-parse", "--verify", "-q", f"refs/remotes/{remote}/{branch}"],
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def merge(self, ref: str) -> bool:
        """
        Merge ``ref`` into HEAD.

        Returns:
            True if the merge completed. False if it failed, in which case any
            half-done merge has been aborted and the tree is back to HEAD.
        """
        result = self._run_git(
            ["merge", "--no-edit", "--allow-unrelated-histories", ref],
            check=False,
        )
        if result.returncode == 0:
            return True

        logger.debug("Merge of %s failed: %s", ref, redact_text(result.stderr.strip()))
        if (self.git_dir / "MERGE_HEAD").exists():
            self._run_git(["merge", "--abort"])
        return False

    def push(self, remote: str, branch: str = DEFAULT_BRANCH, *, force: bool = False) -> None:
        args = ["push", "-q"]
        if force:
            args.append("--force")
        args += [remote, f"HEAD:refs/heads/{branch}"]
        self._run_git(args, timeout=None)

    @classmethod
    def clone(cls, url: str, dest: Path, branch: str = DEFAULT_BRANCH) -> GitRepo:
        """Clone ``url`` into ``dest`` and return the new working copy."""
        dest = Path(dest)
        repo = cls(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        repo._run_git(
            ["clone", "-q", "--origin", "tmp-origin", url, str(dest)],
            cwd=dest.parent,
            timeout=None,
        )
        # Remote names are assigned by the caller; drop git's default.
        repo._run_git(["remote", "remove", "tmp-origin"])
        if repo.current_branch() != branch and repo.head() is not None:
            repo._run_git(["branch", "-M", branch])
        elif repo.head() is None:
            repo._run_git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"])
        return repo
