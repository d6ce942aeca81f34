"""Human-readable report of a reconciliation run."""

from __future__ import annotations

import difflib
from collections.abc import Mapping
from pathlib import Path

from deltamerge.reconcile.batch import ReconciliationResult
from deltamerge.reconcile.gate import PublishDecision, PublishMode
from deltamerge.reconcile.markers import parse
from deltamerge.reconcile.snapshot import split_lines

RULE = "=" * 44


def unified_diff(name: str, before: str, after: str) -> str:
    """Unified diff of one unit from its target text to its final text."""
    return "".join(difflib.unified_diff(
        split_lines(before),
        split_lines(after),
        fromfile=f"target/{name}",
        tofile=f"merged/{name}",
    ))


def _section(title: str, sign: str, entries: list[str]) -> list[str]:
    if not entries:
        return []
    return [title] + [f"  {sign} {entry}" for entry in entries] + [""]


def render_report(
    result: ReconciliationResult,
    decision: PublishDecision,
    *,
    change: str,
    target: str,
    target_texts: Mapping[str, str] | None = None,
    workdir: Path | None = None,
    marker_size: int = 7,
) -> str:
    """Render the run report.

    Args:
        result: Reconciliation outcome
        decision: Publish gate decision for the requested mode
        change: Change set identifier the delta came from
        target: Deployment target name
        target_texts: Original target text per unit, used for diffs of
            clean units
        workdir: Working directory holding the merged files
        marker_size: Conflict marker width, for listing conflict hunks

    Returns:
        The report as a single string
    """
    target_texts = target_texts or {}
    out = [
        RULE,
        f"  MERGE REPORT: change #{change} -> {target}",
        RULE,
        "",
    ]

    out += _section(
        "CLEAN MERGES (ready to publish):", "+", result.clean
    )
    out += _section(
        "NO REAL CHANGE (whitespace only, skipped):", "~",
        result.no_real_change,
    )
    out += _section(
        "CONFLICTS (need manual review):", "!",
        [
            f"{name} ({result.conflict_counts.get(name, 0)} conflicts)"
            for name in result.conflicts
        ],
    )
    out += _section(
        "SKIPPED:", "-",
        [f"{s.name} ({s.reason})" for s in result.skipped],
    )

    if result.clean:
        out.append("--- Changes to be applied ---")
        for name in result.clean:
            diff = unified_diff(
                name, target_texts.get(name, ""), result.final_texts[name]
            )
            if diff:
                out += ["", f"=== {name} ===", diff.rstrip("\n")]
    else:
        out.append("No changes to apply.")

    if decision.mode is PublishMode.DRY_RUN and result.conflicts:
        out += ["", "--- Conflicts ---"]
        for name in result.conflicts:
            hunks = parse(
                result.final_texts[name], marker_size=marker_size, strict=False
            )
            for hunk in hunks:
                out += [
                    "",
                    f"=== {name}:{hunk.line} ===",
                    f"[{hunk.target_label}]",
                    hunk.target_content.rstrip("\n"),
                    f"[{hunk.delta_label}]",
                    hunk.delta_content.rstrip("\n"),
                ]

    out.append("")
    if decision.mode is PublishMode.DRY_RUN:
        out.append("DRY RUN: no changes published")
        if decision.units_to_publish:
            out.append(
                "Would publish: " + ", ".join(decision.units_to_publish)
            )
    elif decision.mode is PublishMode.PUBLISH:
        out.append(
            "Publishing: " + ", ".join(decision.units_to_publish)
            if decision.proceed
            else f"Not publishing: {decision.reason}"
        )
    elif result.has_conflicts:
        out.append("Resolve conflicts before publishing.")
    else:
        out.append("Run with --mode publish to publish, or --mode dry-run.")

    if workdir is not None:
        out.append(f"Merged files available in: {workdir / 'merged'}")

    return "\n".join(out) + "\n"
