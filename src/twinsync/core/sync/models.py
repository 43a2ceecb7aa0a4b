"""
Data models for the sync service.

Defines Pydantic models for remotes and sync results.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from twinsync.core.git import DEFAULT_BRANCH
from twinsync.core.redact import redact_url


class SyncStatus(str, Enum):
    """How a sync run ended."""

    SYNCED = "synced"
    """Changes were committed and/or pushed to every remote."""

    UP_TO_DATE = "up_to_date"
    """Nothing to commit and every remote already had local head."""

    PULLED = "pulled"
    """Pull-only run finished (remotes merged, nothing pushed)."""

    PARTIAL = "partial"
    """At least one remote could not be pushed to."""

    LOCAL_ONLY = "local_only"
    """No remote is configured; changes stayed in the working copy."""


class RemoteIdentity(BaseModel):
    """
    A remote registered on the working copy.

    The URL may carry credentials; only `display_url` is safe to show.
    """

    name: str = Field(description="Remote name (e.g. 'github', 'space')")
    url: str = Field(repr=False, description="Fetch/push URL, possibly credential-bearing")
    branch: str = Field(default=DEFAULT_BRANCH)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_url(self) -> str:
        return redact_url(self.url)


class RemoteHead(BaseModel):
    """A reachable remote's head after fetch."""

    remote: str
    sha: str
    timestamp: int = Field(description="Committer time of the head commit (Unix seconds)")


class SyncResult(BaseModel):
    """
    Result of a sync run.

    Partial outcomes are first-class: a run can merge one remote, discard
    another, push to one and fail on the other.
    """

    status: SyncStatus = Field(default=SyncStatus.SYNCED)

    head: str | None = Field(default=None, description="Local head at the end of the run")

    commit_sha: str | None = Field(
        default=None,
        description="SHA of the commit created for pending changes (if any)",
    )

    message: str = Field(default="", description="Human-readable result message")

    in_sync: bool = Field(
        default=False,
        description="Local head equalled every reachable remote after merging",
    )

    unreachable: list[str] = Field(default_factory=list)
    merged: list[str] = Field(default_factory=list)
    discarded: list[str] = Field(
        default_factory=list,
        description="Remotes whose changes were dropped because the merge failed",
    )
    skipped_files: list[str] = Field(
        default_factory=list,
        description="Large files left out of this commit by the upload gate",
    )

    pushed: list[str] = Field(default_factory=list)
    force_pushed: list[str] = Field(default_factory=list)
    push_failures: dict[str, str] = Field(default_factory=dict)

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def success(self) -> bool:
        return not self.push_failures and self.status is not SyncStatus.LOCAL_ONLY

    @property
    def duration_seconds(self) -> float | None:
        """Calculate operation duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        parts = [self.message or self.status.value.replace("_", " ")]

        if self.commit_sha:
            parts.append(f"commit {self.commit_sha[:8]}")
        if self.merged:
            parts.append(f"merged {', '.join(self.merged)}")
        if self.discarded:
            parts.append(f"discarded changes from {', '.join(self.discarded)}")
        if self.pushed:
            parts.append(f"pushed to {', '.join(self.pushed)}")
        if self.push_failures:
            parts.append(f"push failed for {', '.join(self.push_failures)}")

        return ", ".join(parts)
