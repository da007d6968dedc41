"""Undo log for a single plugin installation.

Every change the installer makes to the project is recorded as an undo
action as soon as it has happened. On failure the actions are replayed
newest first. A failing action is logged and collected, and the remaining
actions still run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from bifrost_plugin.utils.filesystem import remove_empty_directory, remove_file, write_text_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UndoAction:
    """A committed change and how to revert it."""

    description: str
    undo: Callable[[], None]


class RollbackFailure(Exception):
    """An undo action that could not be completed."""

    def __init__(self, action: UndoAction, error: Exception):
        self.action = action
        self.error = error
        super().__init__(f"Failed to {action.description}: {error}")


class InstallTransaction:
    """Ordered log of undo actions for one install attempt."""

    def __init__(self) -> None:
        self._actions: list[UndoAction] = []

    @property
    def actions(self) -> list[UndoAction]:
        return list(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def record(self, description: str, undo: Callable[[], None]) -> None:
        """Record a change that has already been made."""
        self._actions.append(UndoAction(description, undo))
        logger.debug("Recorded undo action: %s", description)

    def record_created_file(self, path: Path) -> None:
        self.record(f"remove {path}", lambda: remove_file(path))

    def record_created_directory(self, path: Path) -> None:
        self.record(f"remove directory {path}", lambda: remove_empty_directory(path))

    def record_modified_file(self, path: Path, previous_content: str) -> None:
        self.record(f"restore {path}", lambda: write_text_file(path, previous_content))

    def commit(self) -> None:
        """Forget all recorded actions after a successful install."""
        self._actions.clear()

    def rollback(self) -> list[RollbackFailure]:
        """Undo every recorded change, newest first.

        Returns:
            Failures of individual actions, in the order they occurred
        """
        failures: list[RollbackFailure] = []

        for action in reversed(self._actions):
            try:
                action.undo()
                logger.debug("Rolled back: %s", action.description)
            except Exception as e:
                failure = RollbackFailure(action, e)
                logger.error("%s", failure)
                failures.append(failure)

        self._actions.clear()
        return failures
