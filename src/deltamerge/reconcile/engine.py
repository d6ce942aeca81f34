"""Three-way line merge of a delta onto an independently evolved target.

The delta is the change from ``before`` to ``after``. The target is
treated as "ours": it drifted from ``before`` on its own, and the
delta is replayed on top of it the same way ``git merge-file target
before after`` would, without calling git.

Both sides are synchronised against ``before`` with
:class:`difflib.SequenceMatcher`. Stretches of ``before`` that survive
unchanged on both sides split the files into stable and unstable
regions; each unstable region is then taken from whichever side
changed it, or emitted as a conflict block when both sides changed it
differently.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum


class ConflictStyle(str, Enum):
    """Layout of conflict blocks in the merged text."""

    MERGE = "merge"
    DIFF3 = "diff3"


@dataclass(frozen=True)
class MergeOptions:
    """Marker layout for conflict blocks."""

    target_label: str = "target"
    delta_label: str = "delta"
    base_label: str = "before"
    marker_size: int = 7
    style: ConflictStyle = ConflictStyle.MERGE


@dataclass(frozen=True)
class MergeResult:
    """Merged lines plus the number of conflict blocks they contain."""

    lines: tuple[str, ...]
    conflicts: int = 0

    @property
    def text(self) -> str:
        return "".join(self.lines)

    @property
    def has_conflicts(self) -> bool:
        return self.conflicts > 0


@dataclass(frozen=True)
class _Sync:
    """A stretch of ``before`` that both sides kept unchanged."""

    base_start: int
    base_end: int
    ours_start: int
    theirs_start: int


def _sync_regions(
    base: Sequence[str], ours: Sequence[str], theirs: Sequence[str]
) -> list[_Sync]:
    ours_blocks = SequenceMatcher(
        None, base, ours, autojunk=False
    ).get_matching_blocks()
    theirs_blocks = SequenceMatcher(
        None, base, theirs, autojunk=False
    ).get_matching_blocks()

    regions = []
    i = j = 0
    while i < len(ours_blocks) and j < len(theirs_blocks):
        o_base, o_start, o_len = ours_blocks[i]
        t_base, t_start, t_len = theirs_blocks[j]

        lo = max(o_base, t_base)
        hi = min(o_base + o_len, t_base + t_len)
        if lo < hi:
            regions.append(_Sync(
                base_start=lo,
                base_end=hi,
                ours_start=o_start + (lo - o_base),
                theirs_start=t_start + (lo - t_base),
            ))

        if o_base + o_len < t_base + t_len:
            i += 1
        else:
            j += 1

    # Sentinel so the trailing unstable region gets flushed
    regions.append(_Sync(len(base), len(base), len(ours), len(theirs)))
    return regions


def _regions(
    base: Sequence[str], ours: Sequence[str], theirs: Sequence[str]
) -> Iterator[tuple[str, list[str], list[str], list[str]]]:
    """Yield (kind, ours, base, theirs) chunks in output order.

    kind is one of: unchanged, same, ours, theirs, conflict.
    """
    b = o = t = 0
    for sync in _sync_regions(base, ours, theirs):
        ours_chunk = list(ours[o:sync.ours_start])
        theirs_chunk = list(theirs[t:sync.theirs_start])
        base_chunk = list(base[b:sync.base_start])

        # Both sides deleting the same base lines leaves nothing to emit
        if ours_chunk or theirs_chunk:
            if ours_chunk == theirs_chunk:
                yield "same", ours_chunk, base_chunk, theirs_chunk
            elif ours_chunk == base_chunk:
                yield "theirs", ours_chunk, base_chunk, theirs_chunk
            elif theirs_chunk == base_chunk:
                yield "ours", ours_chunk, base_chunk, theirs_chunk
            else:
                yield "conflict", ours_chunk, base_chunk, theirs_chunk

        length = sync.base_end - sync.base_start
        if length:
            stable = list(base[sync.base_start:sync.base_end])
            yield "unchanged", stable, stable, stable

        b = sync.base_end
        o = sync.ours_start + length
        t = sync.theirs_start + length


def _terminate(out: list[str]) -> None:
    if out and not out[-1].endswith("\n"):
        out[-1] += "\n"


def _marker(out: list[str], char: str, size: int, label: str = "") -> None:
    _terminate(out)
    marker = char * size
    out.append(f"{marker} {label}\n" if label else f"{marker}\n")


def _common_affixes(a: list[str], b: list[str]) -> tuple[int, int]:
    limit = min(len(a), len(b))
    prefix = 0
    while prefix < limit and a[prefix] == b[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < limit - prefix
        and a[len(a) - 1 - suffix] == b[len(b) - 1 - suffix]
    ):
        suffix += 1
    return prefix, suffix


def _emit_conflict(
    out: list[str],
    ours: list[str],
    base: list[str],
    theirs: list[str],
    options: MergeOptions,
) -> None:
    size = options.marker_size

    if options.style is ConflictStyle.DIFF3:
        _marker(out, "<", size, options.target_label)
        out.extend(ours)
        _marker(out, "|", size, options.base_label)
        out.extend(base)
        _marker(out, "=", size)
        out.extend(theirs)
        _marker(out, ">", size, options.delta_label)
        return

    # Lines both sides agree on at the edges stay outside the markers
    prefix, suffix = _common_affixes(ours, theirs)
    out.extend(ours[:prefix])
    _marker(out, "<", size, options.target_label)
    out.extend(ours[prefix:len(ours) - suffix])
    _marker(out, "=", size)
    out.extend(theirs[prefix:len(theirs) - suffix])
    _marker(out, ">", size, options.delta_label)
    out.extend(ours[len(ours) - suffix:])


def merge(
    target: Sequence[str],
    before: Sequence[str],
    after: Sequence[str],
    options: MergeOptions | None = None,
) -> MergeResult:
    """Apply the ``before`` -> ``after`` delta onto ``target``.

    Args:
        target: Current target lines (the base being updated)
        before: Lines at the delta's parent
        after: Lines at the delta's result
        options: Conflict marker layout

    Returns:
        MergeResult with the merged lines and the number of conflict
        blocks. A result without conflicts contains no markers.
    """
    options = options or MergeOptions()
    out: list[str] = []
    conflicts = 0

    for kind, ours_chunk, base_chunk, theirs_chunk in _regions(
        before, target, after
    ):
        if kind in ("unchanged", "same", "ours"):
            out.extend(ours_chunk)
        elif kind == "theirs":
            out.extend(theirs_chunk)
        else:
            conflicts += 1
            _emit_conflict(out, ours_chunk, base_chunk, theirs_chunk, options)

    return MergeResult(lines=tuple(out), conflicts=conflicts)
