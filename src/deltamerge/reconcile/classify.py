"""Outcome classification of a merge against the original target."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from deltamerge.reconcile.engine import MergeResult

_WHITESPACE = re.compile(r"\s+")


class Outcome(str, Enum):
    """Exactly one of these is assigned to every reconciled unit."""

    CLEAN = "clean"
    NO_REAL_CHANGE = "no_real_change"
    CONFLICT = "conflict"


class WhitespaceRule(str, Enum):
    """How lines are compared when deciding NO_REAL_CHANGE.

    IGNORE_ALL drops every whitespace character (``diff -w``).
    COLLAPSE squeezes runs to a single space and strips both ends, so
    "ab" and "a b" still differ.
    """

    IGNORE_ALL = "ignore-all"
    COLLAPSE = "collapse"


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    final_text: str


def _canonical(line: str, rule: WhitespaceRule) -> str:
    if rule is WhitespaceRule.IGNORE_ALL:
        return _WHITESPACE.sub("", line)
    return _WHITESPACE.sub(" ", line).strip()


def whitespace_equivalent(
    a: Sequence[str],
    b: Sequence[str],
    rule: WhitespaceRule = WhitespaceRule.IGNORE_ALL,
) -> bool:
    """Compare two line sequences ignoring whitespace within lines.

    Line terminators are whitespace, so CRLF and LF lines compare
    equal. Blank lines are still lines: adding or removing one is a
    real change.
    """
    if len(a) != len(b):
        return False
    return all(
        _canonical(x, rule) == _canonical(y, rule) for x, y in zip(a, b)
    )


def classify(
    target: Sequence[str],
    result: MergeResult,
    rule: WhitespaceRule = WhitespaceRule.IGNORE_ALL,
) -> Classification:
    """Decide the outcome of one merge.

    A conflict-free merge that only differs from the target in
    whitespace is NO_REAL_CHANGE, and its final text is the target
    verbatim so no formatting drift is ever introduced.
    """
    if result.has_conflicts:
        return Classification(Outcome.CONFLICT, result.text)

    if whitespace_equivalent(result.lines, target, rule):
        return Classification(Outcome.NO_REAL_CHANGE, "".join(target))

    return Classification(Outcome.CLEAN, result.text)
