"""Tests for the run report."""

from pathlib import Path

import pytest

from deltamerge.reconcile.batch import ReconciliationResult, SkippedUnit
from deltamerge.reconcile.gate import PublishMode, decide
from deltamerge.reconcile.report import render_report, unified_diff

CONFLICTED = (
    "a\n<<<<<<< target\nhotfix\n=======\nfeature\n>>>>>>> delta\nb\n"
)


@pytest.fixture
def result():
    return ReconciliationResult(
        clean=["A.cls"],
        no_real_change=["B.cls"],
        conflicts=["C.cls"],
        skipped=[SkippedUnit(name="D.cls", missing=["target"])],
        final_texts={
            "A.cls": "x\ny\n",
            "B.cls": "b\n",
            "C.cls": CONFLICTED,
        },
        conflict_counts={"C.cls": 1},
    )


def render(result, mode, **kwargs):
    return render_report(
        result, decide(result, mode), change="42", target="uat", **kwargs
    )


def test_report_sections(result):
    """Test that every bucket is listed with its marker."""
    report = render(result, PublishMode.PREVIEW)

    assert "MERGE REPORT: change #42 -> uat" in report
    assert "CLEAN MERGES (ready to publish):\n  + A.cls\n" in report
    assert "NO REAL CHANGE (whitespace only, skipped):\n  ~ B.cls\n" in report
    assert "CONFLICTS (need manual review):\n  ! C.cls (1 conflicts)\n" in report
    assert "SKIPPED:\n  - D.cls (not in target)\n" in report
    assert "Resolve conflicts before publishing." in report


def test_report_diff_of_clean_units(result):
    """Test that clean units are shown as a diff against the target."""
    report = render(
        result, PublishMode.PREVIEW, target_texts={"A.cls": "x\n"}
    )

    assert "--- Changes to be applied ---" in report
    assert "=== A.cls ===" in report
    assert "+y" in report


def test_report_without_clean_units():
    """Test the report when nothing would change."""
    result = ReconciliationResult(
        no_real_change=["B.cls"], final_texts={"B.cls": "b\n"}
    )
    report = render(result, PublishMode.PREVIEW)

    assert "No changes to apply." in report
    assert "CLEAN MERGES" not in report
    assert "CONFLICTS" not in report


def test_dry_run_lists_conflict_hunks(result):
    """Test that dry-run shows both sides of every conflict."""
    report = render(result, PublishMode.DRY_RUN)

    assert "--- Conflicts ---" in report
    assert "=== C.cls:2 ===" in report
    assert "[target]\nhotfix\n[delta]\nfeature" in report
    assert "DRY RUN: no changes published" in report


def test_dry_run_tolerates_markers_from_the_target(result):
    """Test that a bare start marker already in the target is not a hunk."""
    result.final_texts["C.cls"] = "<<<<<<< old note\n" + CONFLICTED

    report = render(result, PublishMode.DRY_RUN)

    assert "=== C.cls:3 ===" in report
    assert "C.cls:1" not in report


def test_dry_run_would_publish():
    """Test that dry-run names the units a publish would deploy."""
    result = ReconciliationResult(
        clean=["A.cls", "B.cls"],
        final_texts={"A.cls": "a\n", "B.cls": "b\n"},
    )
    report = render(result, PublishMode.DRY_RUN)

    assert "Would publish: A.cls, B.cls" in report


def test_publish_footer(result):
    """Test the footer of a refused and an accepted publish."""
    refused = render(result, PublishMode.PUBLISH)
    assert "Not publishing: 1 unit(s) in conflict" in refused

    clean = ReconciliationResult(
        clean=["A.cls"], final_texts={"A.cls": "a\n"}
    )
    assert "Publishing: A.cls" in render(clean, PublishMode.PUBLISH)


def test_report_names_merged_directory(result):
    """Test that the merged file location is printed."""
    report = render(result, PublishMode.PREVIEW, workdir=Path("/tmp/pr-merge-42"))

    assert "Merged files available in: /tmp/pr-merge-42/merged" in report


def test_unified_diff():
    """Test the diff header and body."""
    diff = unified_diff("A.cls", "a\nb\n", "a\nc\n")

    assert diff.startswith("--- target/A.cls\n+++ merged/A.cls\n")
    assert "-b\n+c\n" in diff
    assert unified_diff("A.cls", "a\n", "a\n") == ""


def test_unified_diff_splits_on_newline_only():
    """Test that a form feed inside a line is a change to that one line."""
    diff = unified_diff("A.cls", "a b\n", "a\x0cb\n")

    assert "-a b\n+a\x0cb\n" in diff
    assert diff.count("\n+") == 2
