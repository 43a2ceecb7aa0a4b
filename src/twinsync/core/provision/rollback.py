"""Compensating actions for multi-backend provisioning."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RollbackStack:
    """
    Stack of compensating actions.

    Every successful creation step pushes the action that undoes it. When a
    later step fails, `unwind()` runs them newest first. A compensation that
    fails is logged and the rest still run.

    Example:
        >>> stack = RollbackStack()
        >>> stack.push("delete demo on GitHub", lambda: github.delete("demo"))
        >>> failures = stack.unwind()
    """

    _actions: list[tuple[str, Callable[[], object]]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._actions)

    def push(self, description: str, action: Callable[[], object]) -> None:
        self._actions.append((description, action))

    def clear(self) -> None:
        """Forget all compensations once the whole operation succeeded."""
        self._actions.clear()

    def unwind(self) -> list[str]:
        """
        Run compensations in reverse order.

        Returns:
            Descriptions of the compensations that failed.
        """
        failed: list[str] = []
        while self._actions:
            description, action = self._actions.pop()
            logger.info("Rolling back: %s", description)
            try:
                action()
            except Exception as e:
                logger.error("Rollback step failed (%s): %s", description, e)
                failed.append(description)
        return failed
