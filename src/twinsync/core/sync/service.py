"""
Working copy synchronization service.

Reconciles a local git history with up to two remote histories:

1. Rebuild the manifest (abort before touching anything if that fails).
2. Stage everything.
3. Run the large-file gate and unstage what the operator skips.
4. Fetch every remote; unreachable or never-pushed remotes are ignored.
5. Order the remotes that differ from local head by head commit time,
   newest first (ties keep registration order).
6. Merge each one. A merge that fails is aborted and its changes are
   dropped for this run: local content always wins.
7. Report "already in sync" when every reachable remote equals local head.
8. Stop here for pull-only runs.
9. Commit pending changes.
10. Push to every remote, retrying once with --force when rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

from twinsync.core.config.loader import get_sync_config_path, load_sync_config, save_sync_config
from twinsync.core.config.models import SyncConfig
from twinsync.core.exceptions import GitError
from twinsync.core.git import GitRepo
from twinsync.core.manifest import write_manifest
from twinsync.core.sync.gate import GateChoice, LargeFile, find_large_files, run_gate
from twinsync.core.sync.models import RemoteHead, RemoteIdentity, SyncResult, SyncStatus

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = "Initial commit"


def auto_commit_message(now: datetime | None = None) -> str:
    """Default commit message: "Update " plus local time to the second."""
    now = now or datetime.now()
    return f"Update {now.strftime('%Y-%m-%d %H:%M:%S')}"


def merge_order(local_head: str | None, heads: Iterable[RemoteHead]) -> list[RemoteHead]:
    """
    Remotes to merge, newest head commit first.

    Remotes already at ``local_head`` are left out. `sorted` is stable, so
    equal timestamps keep the order in which remotes were registered.

    Example:
        >>> heads = [RemoteHead(remote="github", sha="a", timestamp=1),
        ...          RemoteHead(remote="space", sha="b", timestamp=2)]
        >>> [h.remote for h in merge_order("c", heads)]
        ['space', 'github']
    """
    pending = [h for h in heads if h.sha != local_head]
    return sorted(pending, key=lambda h: h.timestamp, reverse=True)


def _skip_everything(candidate: LargeFile) -> GateChoice:
    return GateChoice.SKIP


class SyncService:
    """
    Service that keeps a working copy and its remotes in step.

    Example:
        >>> service = SyncService(project_dir=Path("my-space"))
        >>> result = service.sync()
        >>> print(result.summary())

    Args:
        project_dir: Root of the working copy (defaults to cwd)
        ask_large_file: Called once per large staged file while the gate is
            undecided. Without it every large file is skipped, which keeps
            non-interactive runs from uploading anything unexpectedly big.
        config: Sync settings; read from `.twinsync.json` when omitted
        now: Clock used for the auto-generated commit message
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        *,
        ask_large_file: Callable[[LargeFile], GateChoice] | None = None,
        config: SyncConfig | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.repo = GitRepo(self.project_dir)
        self.ask_large_file = ask_large_file or _skip_everything
        self._config = config
        self._now = now

    @property
    def config(self) -> SyncConfig:
        if self._config is None:
            self._config = load_sync_config(self.project_dir)
        return self._config

    def remotes(self) -> list[RemoteIdentity]:
        """Configured remotes in registration order."""
        return [RemoteIdentity(name=name, url=url) for name, url in self.repo.remotes()]

    # ------------------------------------------------------------------
    # Working copy preparation
    # ------------------------------------------------------------------

    def ensure_repo(self, remotes: Iterable[RemoteIdentity] = ()) -> None:
        """
        Make the directory a working copy on `main` with the given remotes.

        Also writes the default `.twinsync.json` when the working copy has
        none. Existing settings are never overwritten.
        """
        if not self.repo.is_repo():
            logger.info("Initializing git repository in %s", self.project_dir)
            self.repo.init()

        for remote in remotes:
            logger.info("Registering remote %s -> %s", remote.name, remote.display_url)
            self.repo.set_remote(remote.name, remote.url)

        if not get_sync_config_path(self.project_dir).exists():
            save_sync_config(SyncConfig(), self.project_dir)

    def stage(self) -> list[LargeFile]:
        """
        Rebuild the manifest, stage all changes and apply the upload gate.

        Returns:
            Large files that were unstaged by the gate.

        Raises:
            ManifestBuildError: If the working copy cannot be scanned. Nothing
                has been staged at that point.
        """
        write_manifest(self.project_dir)
        self.repo.add_all()

        if not self.config.ask_before_upload:
            return []

        candidates = find_large_files(
            self.project_dir,
            self.repo.staged_paths(),
            self.config.max_file_size_bytes,
        )
        if not candidates:
            return []

        decision = run_gate(candidates, self.ask_large_file)
        for skipped in decision.skip:
            self.repo.unstage(skipped.path)
        return decision.skip

    # ------------------------------------------------------------------
    # Remote reconciliation
    # ------------------------------------------------------------------

    def discover(self, remotes: Iterable[RemoteIdentity]) -> tuple[list[RemoteHead], list[str]]:
        """
        Fetch every remote and read its head.

        Returns:
            (reachable heads in registration order, names of unreachable remotes)
        """
        heads: list[RemoteHead] = []
        unreachable: list[str] = []

        for remote in remotes:
            try:
                self.repo.fetch(remote.name, remote.branch)
            except GitError as e:
                logger.warning(
                    "Remote %s is unreachable or empty, nothing to merge from it: %s",
                    remote.name,
                    e.stderr or e,
                )
                unreachable.append(remote.name)
                continue

            sha = self.repo.remote_head(remote.name, remote.branch)
            if sha is None:
                logger.warning("Remote %s has no %s branch yet", remote.name, remote.branch)
                unreachable.append(remote.name)
                continue

            ref = f"refs/remotes/{remote.name}/{remote.branch}"
            heads.append(
                RemoteHead(remote=remote.name, sha=sha, timestamp=self.repo.commit_timestamp(ref))
            )

        return heads, unreachable

    def merge_remotes(
        self,
        heads: list[RemoteHead],
        remotes: dict[str, RemoteIdentity],
        result: SyncResult,
    ) -> None:
        """Merge remotes newest-first, abandoning any merge that fails."""
        for remote_head in merge_order(self.repo.head(), heads):
            local_head = self.repo.head()
            if local_head is not None and self.repo.is_ancestor(remote_head.sha, local_head):
                logger.debug("Remote %s is already contained in local head", remote_head.remote)
                continue

            if self.repo.has_staged_changes():
                self.repo.commit(f"Save local changes before merging {remote_head.remote}")

            branch = remotes[remote_head.remote].branch
            ref = f"refs/remotes/{remote_head.remote}/{branch}"
            logger.info("Merging %s", remote_head.remote)
            if self.repo.merge(ref):
                result.merged.append(remote_head.remote)
            else:
                logger.warning(
                    "Merge with %s failed; changes from remote %s were discarded "
                    "(still available in its history at %s)",
                    remote_head.remote,
                    remote_head.remote,
                    remote_head.sha[:8],
                )
                result.discarded.append(remote_head.remote)

    def push_all(self, remotes: Iterable[RemoteIdentity], result: SyncResult) -> None:
        """Push to every remote independently, forcing once on rejection."""
        for remote in remotes:
            try:
                self.repo.push(remote.name, remote.branch)
                result.pushed.append(remote.name)
                logger.info("Pushed to %s", remote.name)
                continue
            except GitError as e:
                logger.warning(
                    "Push to %s rejected, retrying with --force: %s", remote.name, e.stderr or e
                )

            try:
                self.repo.push(remote.name, remote.branch, force=True)
                result.pushed.append(remote.name)
                result.force_pushed.append(remote.name)
                logger.info("Force-pushed to %s", remote.name)
            except GitError as e:
                logger.error("Push to %s failed: %s", remote.name, e.stderr or e)
                result.push_failures[remote.name] = e.stderr or str(e)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def sync(self, message: str | None = None, pull_only: bool = False) -> SyncResult:
        """
        Run one full reconciliation.

        Args:
            message: Commit message for pending changes (empty = auto)
            pull_only: Stop after merging; never commit or push

        Raises:
            GitError: If the directory is not a working copy or a local git
                operation fails
            ManifestBuildError: If the manifest cannot be rebuilt
        """
        result = SyncResult(started_at=datetime.now())

        if not self.repo.is_repo():
            raise GitError(f"Not a git repository: {self.project_dir}")

        remotes = self.remotes()
        by_name = {remote.name: remote for remote in remotes}

        # 1-3: manifest, staging, upload gate
        result.skipped_files = [f.path for f in self.stage()]

        # 4-6: discover and merge
        heads, result.unreachable = self.discover(remotes)
        self.merge_remotes(heads, by_name, result)

        # 7: convergence
        local_head = self.repo.head()
        result.in_sync = bool(heads) and all(h.sha == local_head for h in heads)
        if result.in_sync:
            logger.info("Local head already in sync with all reachable remotes")

        # 8: pull-only stops here
        if pull_only:
            result.status = SyncStatus.PULLED
            result.head = local_head
            if result.in_sync and not result.merged:
                result.message = "Already in sync"
            else:
                result.message = "Pull complete"
            return self._finish(result)

        # 9: commit
        if self.repo.has_staged_changes():
            commit_message = message or auto_commit_message(self._now())
            result.commit_sha = self.repo.commit(commit_message)
            logger.info("Committed %s: %s", result.commit_sha[:8], commit_message)
        else:
            local_head = self.repo.head()
            if local_head is None:
                result.status = SyncStatus.UP_TO_DATE
                result.message = "Nothing to commit"
                return self._finish(result)
            reachable = {h.remote: h.sha for h in heads}
            if remotes and all(reachable.get(r.name) == local_head for r in remotes):
                result.status = SyncStatus.UP_TO_DATE
                result.head = local_head
                result.message = "Already up to date"
                return self._finish(result)

        # 10: push
        if not remotes:
            logger.warning("No remotes configured for %s, nothing pushed", self.project_dir)
            result.status = SyncStatus.LOCAL_ONLY
            result.head = self.repo.head()
            result.message = (
                "No remotes configured; committed locally only"
                if result.commit_sha
                else "No remotes configured; nothing pushed"
            )
            return self._finish(result)

        self.push_all(remotes, result)
        result.head = self.repo.head()
        result.status = SyncStatus.PARTIAL if result.push_failures else SyncStatus.SYNCED
        return self._finish(result)

    def setup(
        self,
        remotes: Iterable[RemoteIdentity],
        message: str = INITIAL_COMMIT_MESSAGE,
    ) -> SyncResult:
        """
        First-time setup of a freshly provisioned working copy.

        Initializes git on `main`, registers the remotes, commits everything
        as ``message`` and pushes to every remote.
        """
        remotes = list(remotes)
        result = SyncResult(started_at=datetime.now())

        self.ensure_repo(remotes)
        write_manifest(self.project_dir)
        self.repo.add_all()

        if self.repo.has_staged_changes():
            result.commit_sha = self.repo.commit(message)
            logger.info("Committed %s: %s", result.commit_sha[:8], message)

        if self.repo.head() is None:
            result.status = SyncStatus.UP_TO_DATE
            result.message = "Nothing to commit"
            return self._finish(result)

        self.push_all(remotes, result)
        result.head = self.repo.head()
        result.status = SyncStatus.PARTIAL if result.push_failures else SyncStatus.SYNCED
        return self._finish(result)

    @staticmethod
    def _finish(result: SyncResult) -> SyncResult:
        result.completed_at = datetime.now()
        return result
