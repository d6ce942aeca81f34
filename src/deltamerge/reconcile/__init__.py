"""Three-way reconciliation of a delta onto a deployment target."""

from deltamerge.reconcile.batch import (
    ReconciliationBuilder,
    ReconciliationResult,
    SkippedUnit,
    run_all,
)
from deltamerge.reconcile.classify import (
    Classification,
    Outcome,
    WhitespaceRule,
    classify,
    whitespace_equivalent,
)
from deltamerge.reconcile.engine import (
    ConflictStyle,
    MergeOptions,
    MergeResult,
    merge,
)
from deltamerge.reconcile.errors import (
    CollaboratorError,
    PreconditionFailure,
    ReconcileError,
)
from deltamerge.reconcile.gate import (
    ExitStatus,
    PublishDecision,
    PublishMode,
    decide,
    exit_status,
)
from deltamerge.reconcile.normalize import normalize_line_endings
from deltamerge.reconcile.snapshot import Snapshot, Unit

__all__ = [
    "Classification",
    "CollaboratorError",
    "ConflictStyle",
    "ExitStatus",
    "MergeOptions",
    "MergeResult",
    "Outcome",
    "PreconditionFailure",
    "PublishDecision",
    "PublishMode",
    "ReconcileError",
    "ReconciliationBuilder",
    "ReconciliationResult",
    "SkippedUnit",
    "Snapshot",
    "Unit",
    "WhitespaceRule",
    "classify",
    "decide",
    "exit_status",
    "merge",
    "normalize_line_endings",
    "run_all",
    "whitespace_equivalent",
]
