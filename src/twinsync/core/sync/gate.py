"""
Large-file upload gate.

Before committing, every staged file above the configured size threshold
is offered to the operator: upload it, skip it, or upload/skip all the
remaining ones without further questions. The "all" answers are carried as
an accumulator through a fold over the candidates, so the gate has no
state outside a single call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class GateChoice(str, Enum):
    """Operator answer for one large file."""

    UPLOAD = "upload"
    SKIP = "skip"
    UPLOAD_ALL = "upload_all"
    SKIP_ALL = "skip_all"


class GateMode(str, Enum):
    """Accumulated decision carried across the candidates."""

    UNDECIDED = "undecided"
    UPLOAD_ALL = "upload_all"
    SKIP_ALL = "skip_all"


# Prompt answers accepted by parse_gate_answer()
GATE_ANSWERS: dict[str, GateChoice] = {
    "y": GateChoice.UPLOAD,
    "yes": GateChoice.UPLOAD,
    "u": GateChoice.UPLOAD,
    "n": GateChoice.SKIP,
    "no": GateChoice.SKIP,
    "s": GateChoice.SKIP,
    "a": GateChoice.UPLOAD_ALL,
    "all": GateChoice.UPLOAD_ALL,
    "x": GateChoice.SKIP_ALL,
    "none": GateChoice.SKIP_ALL,
}


@dataclass(frozen=True)
class LargeFile:
    """A staged path whose size exceeds the threshold."""

    path: str
    size: int

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)


@dataclass
class GateDecision:
    """Outcome of the gate: which candidates stay staged and which are dropped."""

    upload: list[LargeFile] = field(default_factory=list)
    skip: list[LargeFile] = field(default_factory=list)


def parse_gate_answer(answer: str) -> GateChoice | None:
    """
    Map a typed answer to a choice.

    An empty answer means "skip this one" so that pressing Enter never
    uploads something unexpectedly large.

    Returns:
        The choice, or None if the answer is not recognised.
    """
    answer = answer.strip().lower()
    if not answer:
        return GateChoice.SKIP
    return GATE_ANSWERS.get(answer)


def find_large_files(root: Path, paths: Iterable[str], threshold_bytes: int) -> list[LargeFile]:
    """Return the staged ``paths`` whose on-disk size exceeds ``threshold_bytes``."""
    large: list[LargeFile] = []
    for rel_path in paths:
        full_path = root / rel_path
        try:
            size = full_path.stat().st_size
        except FileNotFoundError:
            continue
        if size > threshold_bytes:
            large.append(LargeFile(path=rel_path, size=size))
    return large


def run_gate(
    candidates: Iterable[LargeFile],
    ask: Callable[[LargeFile], GateChoice],
) -> GateDecision:
    """
    Decide upload/skip for every candidate.

    ``ask`` is only called while the accumulated mode is UNDECIDED; after an
    "all" answer the remaining candidates follow that answer silently.

    Example:
        >>> files = [LargeFile("a.bin", 11 << 20), LargeFile("b.bin", 12 << 20)]
        >>> decision = run_gate(files, lambda f: GateChoice.SKIP_ALL)
        >>> [f.path for f in decision.skip]
        ['a.bin', 'b.bin']
    """
    decision = GateDecision()
    mode = GateMode.UNDECIDED

    for candidate in candidates:
        if mode is GateMode.UPLOAD_ALL:
            choice = GateChoice.UPLOAD
        elif mode is GateMode.SKIP_ALL:
            choice = GateChoice.SKIP
        else:
            choice = ask(candidate)
            if choice is GateChoice.UPLOAD_ALL:
                mode = GateMode.UPLOAD_ALL
            elif choice is GateChoice.SKIP_ALL:
                mode = GateMode.SKIP_ALL

        if choice in (GateChoice.UPLOAD, GateChoice.UPLOAD_ALL):
            decision.upload.append(candidate)
        else:
            logger.warning(
                "Skipping large file %s (%.1f MB)", candidate.path, candidate.size_mb
            )
            decision.skip.append(candidate)

    return decision
