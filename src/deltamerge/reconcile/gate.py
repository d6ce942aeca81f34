"""Go/no-go decision for publishing a reconciliation."""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, Field

from deltamerge.reconcile.batch import ReconciliationResult


class PublishMode(str, Enum):
    PREVIEW = "preview"
    PUBLISH = "publish"
    DRY_RUN = "dry-run"


class ExitStatus(IntEnum):
    """Process exit codes of a reconciliation run."""

    SUCCESS = 0
    CONFLICTS = 1
    PRECONDITION_FAILURE = 2


class PublishDecision(BaseModel):
    mode: PublishMode
    proceed: bool
    units_to_publish: list[str] = Field(default_factory=list)
    reason: str = ""


def decide(result: ReconciliationResult, mode: PublishMode) -> PublishDecision:
    """Decide whether to publish and which units.

    Publishing is all-or-nothing: while any unit is in conflict,
    nothing is published, not even the clean units.
    """
    clean = list(result.clean)

    if mode is PublishMode.PREVIEW:
        return PublishDecision(
            mode=mode,
            proceed=False,
            units_to_publish=clean,
            reason="preview only",
        )

    if result.has_conflicts:
        return PublishDecision(
            mode=mode,
            proceed=False,
            reason=(
                f"{len(result.conflicts)} unit(s) in conflict; "
                "resolve conflicts before publishing"
            ),
        )

    if not clean:
        return PublishDecision(
            mode=mode, proceed=False, reason="no changes to publish"
        )

    if mode is PublishMode.DRY_RUN:
        return PublishDecision(
            mode=mode,
            proceed=False,
            units_to_publish=clean,
            reason="dry run, nothing published",
        )

    return PublishDecision(
        mode=mode,
        proceed=True,
        units_to_publish=clean,
        reason=f"publishing {len(clean)} unit(s)",
    )


def exit_status(result: ReconciliationResult) -> ExitStatus:
    if result.has_conflicts:
        return ExitStatus.CONFLICTS
    return ExitStatus.SUCCESS
