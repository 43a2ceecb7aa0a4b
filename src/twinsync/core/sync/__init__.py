"""
Working copy synchronization.

Regenerates the manifest, gates large files, merges the remotes newest
first (local wins on conflict), commits and pushes to every remote.

Example:
    >>> from twinsync.core.sync import SyncService
    >>> result = SyncService(project_dir=Path(".")).sync(pull_only=True)
    >>> if result.discarded:
    ...     print(f"Dropped changes from {', '.join(result.discarded)}")
"""

from twinsync.core.sync.gate import (
    GateChoice,
    GateDecision,
    GateMode,
    LargeFile,
    find_large_files,
    parse_gate_answer,
    run_gate,
)
from twinsync.core.sync.models import RemoteHead, RemoteIdentity, SyncResult, SyncStatus
from twinsync.core.sync.service import (
    INITIAL_COMMIT_MESSAGE,
    SyncService,
    auto_commit_message,
    merge_order,
)

__all__ = [
    "GateChoice",
    "GateDecision",
    "GateMode",
    "INITIAL_COMMIT_MESSAGE",
    "LargeFile",
    "RemoteHead",
    "RemoteIdentity",
    "SyncResult",
    "SyncService",
    "SyncStatus",
    "auto_commit_message",
    "find_large_files",
    "merge_order",
    "parse_gate_answer",
    "run_gate",
]
