"""Exceptions raised by reconciliation.

Conflicts are outcomes, not errors; nothing here is raised for them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deltamerge.reconcile.batch import SkippedUnit


class ReconcileError(Exception):
    """Base class for errors that make a run unusable."""


class PreconditionFailure(ReconcileError):
    """Input is unusable: nothing to reconcile."""

    def __init__(self, message: str, skipped: list[SkippedUnit] | None = None):
        super().__init__(message)
        self.skipped = list(skipped or [])


class CollaboratorError(ReconcileError):
    """An external command (git, target CLI) failed."""

    def __init__(self, message: str, command: str = "", output: str = ""):
        super().__init__(message)
        self.command = command
        self.output = output
