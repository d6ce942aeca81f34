"""Tests for running a whole delta through reconciliation."""

import pytest

from deltamerge.reconcile.batch import (
    ReconciliationBuilder,
    reconcile_unit,
    run_all,
)
from deltamerge.reconcile.classify import Classification, Outcome
from deltamerge.reconcile.errors import PreconditionFailure
from deltamerge.reconcile.gate import PublishMode, decide
from deltamerge.reconcile.snapshot import Snapshot, Unit

BODY = "".join(f"line {n}\n" for n in range(1, 9))


def unit(name, before, after, target, companion=None):
    def snap(text):
        return Snapshot.absent() if text is None else Snapshot.from_text(text)

    return Unit(
        name=name,
        before=snap(before),
        after=snap(after),
        target=snap(target),
        companion=companion,
    )


@pytest.fixture
def three_units():
    """A: no-op delta, B: one added line, C: competing edit of line 5."""
    a = unit("A.cls", BODY, BODY, BODY.replace("line 2\n", "line 2   \n"))
    b = unit("B.cls", BODY, BODY + "line 9\n", BODY)
    c = unit(
        "C.cls",
        BODY,
        BODY.replace("line 5\n", "line five\n"),
        BODY.replace("line 5\n", "line 5 (hotfix)\n"),
    )
    return [a, b, c]


def test_mixed_outcomes(three_units):
    """Test bucketing of a no-op, a clean and a conflicting unit."""
    result = run_all(three_units)

    assert result.no_real_change == ["A.cls"]
    assert result.clean == ["B.cls"]
    assert result.conflicts == ["C.cls"]
    assert result.skipped == []
    assert result.has_conflicts
    assert result.conflict_counts["C.cls"] >= 1


def test_final_texts(three_units):
    """Test the final text of every processed unit."""
    a, b, _ = three_units
    result = run_all(three_units)

    assert result.final_texts["A.cls"] == a.target.text
    assert result.final_texts["B.cls"] == b.after.text
    assert "<<<<<<< target\n" in result.final_texts["C.cls"]
    assert result.processed == ["A.cls", "B.cls", "C.cls"]


def test_conflict_blocks_publishing_clean_units(three_units):
    """Test that one conflict holds back publishing of every unit."""
    result = run_all(three_units)

    assert not decide(result, PublishMode.PUBLISH).proceed


def test_every_unit_in_exactly_one_bucket(three_units):
    """Test that buckets partition the processed units."""
    result = run_all(three_units)
    buckets = result.clean + result.no_real_change + result.conflicts

    assert sorted(buckets) == sorted(result.processed)
    assert len(buckets) == len(set(buckets))
    for name in buckets:
        assert result.outcome_of(name) is not None


def test_missing_target_is_skipped():
    """Test that a unit absent from the target is skipped, not failed."""
    units = [
        unit("New.cls", None, "class New {}\n", None),
        unit("B.cls", BODY, BODY + "line 9\n", BODY),
    ]
    result = run_all(units)

    assert result.clean == ["B.cls"]
    assert [s.name for s in result.skipped] == ["New.cls"]
    assert result.skipped[0].reason == "not in target"
    assert result.outcome_of("New.cls") is None
    assert "New.cls" not in result.final_texts


def test_missing_delta_snapshot_is_skipped():
    """Test the skip reason when the delta lacks a snapshot."""
    units = [
        unit("Gone.cls", BODY, None, BODY),
        unit("B.cls", BODY, BODY + "line 9\n", BODY),
    ]
    result = run_all(units)

    assert result.skipped[0].missing == ["after"]
    assert result.skipped[0].reason == "not in delta"


def test_skip_does_not_affect_other_units():
    """Test that results are the same with or without a skipped unit."""
    b = unit("B.cls", BODY, BODY + "line 9\n", BODY)
    alone = run_all([b])
    with_skip = run_all([unit("X.cls", None, BODY, None), b])

    assert with_skip.clean == alone.clean
    assert with_skip.final_texts == alone.final_texts


def test_companion_reconciled_separately():
    """Test that a companion is reported under its own name."""
    meta = unit(
        "B.cls-meta.xml",
        "<apiVersion>58.0</apiVersion>\n",
        "<apiVersion>59.0</apiVersion>\n",
        "<apiVersion>58.0</apiVersion>\n",
    )
    b = unit("B.cls", BODY, BODY, BODY, companion=meta)

    result = run_all([b])

    assert result.no_real_change == ["B.cls"]
    assert result.clean == ["B.cls-meta.xml"]
    assert result.processed == ["B.cls", "B.cls-meta.xml"]


def test_empty_input_is_precondition_failure():
    """Test that nothing to reconcile is an error, not a success."""
    with pytest.raises(PreconditionFailure, match="No units"):
        run_all([])


def test_all_skipped_is_precondition_failure():
    """Test that a run where every unit was skipped fails."""
    units = [
        unit("A.cls", None, BODY, None),
        unit("B.cls", BODY, None, BODY),
    ]
    with pytest.raises(PreconditionFailure) as exc_info:
        run_all(units)

    assert [s.name for s in exc_info.value.skipped] == ["A.cls", "B.cls"]


def test_empty_file_is_present():
    """Test that an empty snapshot is reconciled, not skipped."""
    result = run_all([unit("Empty.cls", "", "x\n", "")])

    assert result.clean == ["Empty.cls"]
    assert result.final_texts["Empty.cls"] == "x\n"


@pytest.mark.parametrize("text, lines", [
    ("int a\r= 1;\n", ("int a\r= 1;\n",)),
    ("a\x0cb\n", ("a\x0cb\n",)),
    ("a\u2028b\nc", ("a\u2028b\n", "c")),
    ("", ()),
])
def test_snapshot_splits_on_newline_only(text, lines):
    assert Snapshot.from_text(text).lines == lines


def test_carriage_return_inside_line_is_whitespace():
    """Test that a stray CR is whitespace within a line, not a line break."""
    result = run_all([
        unit("A.cls", "int a\r= 1;\n", "int a = 1;\n", "int a\r= 1;\n"),
    ])

    assert result.no_real_change == ["A.cls"]
    assert result.final_texts["A.cls"] == "int a\r= 1;\n"


def test_reconcile_unit_reports_conflict_count():
    """Test reconciling a single unit."""
    u = unit("U.cls", "a\nb\nc\n", "A\nb\nC\n", "1\nb\n3\n")

    classification, conflicts = reconcile_unit(u)

    assert classification.outcome is Outcome.CONFLICT
    assert conflicts == 2


def test_builder_rejects_duplicate_names():
    """Test that a unit cannot land in two buckets."""
    builder = ReconciliationBuilder()
    builder.record("A.cls", Classification(Outcome.CLEAN, "x\n"))

    with pytest.raises(ValueError, match="A.cls"):
        builder.record("A.cls", Classification(Outcome.CONFLICT, "x\n"))
    with pytest.raises(ValueError):
        builder.skip("A.cls", ["target"])


def test_builder_keeps_insertion_order():
    """Test that bucket order follows recording order."""
    builder = ReconciliationBuilder()
    for name in ("Z.cls", "A.cls", "M.cls"):
        builder.record(name, Classification(Outcome.CLEAN, ""))

    assert builder.build().clean == ["Z.cls", "A.cls", "M.cls"]
