"""Reconcile every unit of a delta and bucket the outcomes."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from deltamerge.core.log import logger
from deltamerge.reconcile.classify import (
    Classification,
    Outcome,
    WhitespaceRule,
    classify,
)
from deltamerge.reconcile.engine import MergeOptions, merge
from deltamerge.reconcile.errors import PreconditionFailure
from deltamerge.reconcile.snapshot import Unit


class SkippedUnit(BaseModel):
    """A unit left out of reconciliation because a snapshot is absent."""

    name: str
    missing: list[str]

    @property
    def reason(self) -> str:
        if "target" in self.missing:
            return "not in target"
        return "not in delta"


class ReconciliationResult(BaseModel):
    """Outcome of one reconciliation run.

    Every processed unit name appears in exactly one of ``clean``,
    ``no_real_change`` or ``conflicts``; skipped units appear in none
    of them.
    """

    clean: list[str] = Field(default_factory=list)
    no_real_change: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    skipped: list[SkippedUnit] = Field(default_factory=list)
    final_texts: dict[str, str] = Field(
        default_factory=dict,
        description="Final text of every non-skipped unit",
    )
    conflict_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Conflict blocks per conflicting unit",
    )

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def processed(self) -> list[str]:
        """Names of all classified units, in run order."""
        return list(self.final_texts)

    def outcome_of(self, name: str) -> Outcome | None:
        if name in self.clean:
            return Outcome.CLEAN
        if name in self.no_real_change:
            return Outcome.NO_REAL_CHANGE
        if name in self.conflicts:
            return Outcome.CONFLICT
        return None


class ReconciliationBuilder:
    """Accumulates outcomes for a single run."""

    def __init__(self):
        self._buckets: dict[Outcome, list[str]] = {
            outcome: [] for outcome in Outcome
        }
        self._skipped: list[SkippedUnit] = []
        self._final_texts: dict[str, str] = {}
        self._conflict_counts: dict[str, int] = {}

    def _seen(self, name: str) -> bool:
        return name in self._final_texts or any(
            s.name == name for s in self._skipped
        )

    def record(
        self,
        name: str,
        classification: Classification,
        conflicts: int = 0,
    ) -> None:
        if self._seen(name):
            raise ValueError(f"Unit already recorded: {name}")
        self._buckets[classification.outcome].append(name)
        self._final_texts[name] = classification.final_text
        if classification.outcome is Outcome.CONFLICT:
            self._conflict_counts[name] = conflicts

    def skip(self, name: str, missing: list[str]) -> None:
        if self._seen(name):
            raise ValueError(f"Unit already recorded: {name}")
        self._skipped.append(SkippedUnit(name=name, missing=missing))

    def build(self) -> ReconciliationResult:
        return ReconciliationResult(
            clean=list(self._buckets[Outcome.CLEAN]),
            no_real_change=list(self._buckets[Outcome.NO_REAL_CHANGE]),
            conflicts=list(self._buckets[Outcome.CONFLICT]),
            skipped=list(self._skipped),
            final_texts=dict(self._final_texts),
            conflict_counts=dict(self._conflict_counts),
        )


def reconcile_unit(
    unit: Unit,
    options: MergeOptions | None = None,
    rule: WhitespaceRule = WhitespaceRule.IGNORE_ALL,
) -> tuple[Classification, int]:
    """Merge and classify a single unit with all snapshots present.

    Returns:
        The classification and the number of conflict blocks
    """
    result = merge(
        unit.target.lines, unit.before.lines, unit.after.lines, options
    )
    return classify(unit.target.lines, result, rule), result.conflicts


def run_all(
    units: Iterable[Unit],
    options: MergeOptions | None = None,
    rule: WhitespaceRule = WhitespaceRule.IGNORE_ALL,
) -> ReconciliationResult:
    """Reconcile units (and their companions) in the given order.

    Raises:
        PreconditionFailure: If no units were given, or all were
            skipped
    """
    builder = ReconciliationBuilder()
    seen_any = False

    for unit in units:
        for member in unit.members():
            seen_any = True
            missing = member.missing_roles()
            if missing:
                logger.info(
                    "Skipping unit",
                    unit=member.name,
                    missing=",".join(missing),
                )
                builder.skip(member.name, missing)
                continue

            with logger.span("Reconciling {unit}", unit=member.name):
                classification, conflicts = reconcile_unit(
                    member, options, rule
                )
                logger.debug(
                    "Unit classified",
                    unit=member.name,
                    outcome=classification.outcome.value,
                    conflicts=conflicts,
                )
            builder.record(member.name, classification, conflicts)

    if not seen_any:
        raise PreconditionFailure("No units to reconcile")

    result = builder.build()
    if not result.processed:
        raise PreconditionFailure(
            "Every unit was skipped; nothing to reconcile",
            skipped=result.skipped,
        )
    return result
