"""Parse conflict blocks back out of a merged text."""

from dataclasses import dataclass

from deltamerge.reconcile.snapshot import split_lines


@dataclass
class ConflictHunk:
    """One conflict block found in a merged text."""

    line: int
    target_content: str
    delta_content: str
    base_content: str | None
    context_before: list[str]
    context_after: list[str]
    target_label: str
    delta_label: str


def _find(lines: list[str], prefix: str, start: int, stop: str | None = None):
    for j in range(start, len(lines)):
        if lines[j].startswith(prefix):
            return j
        if stop and lines[j].startswith(stop):
            return None
    return None


def parse(
    text: str,
    context_lines: int = 3,
    marker_size: int = 7,
    strict: bool = True,
) -> list[ConflictHunk]:
    """Parse merge or diff3 style conflict blocks.

    Args:
        text: Merged text containing conflict markers
        context_lines: Lines of context to keep before/after a block
        marker_size: Width of the marker runs
        strict: Raise on an unclosed block; otherwise its start marker
            is read as an ordinary line

    Returns:
        One ConflictHunk per block, in file order

    Raises:
        ValueError: If strict and a block is not closed properly
    """
    start_marker = "<" * marker_size
    base_marker = "|" * marker_size
    sep_marker = "=" * marker_size
    end_marker = ">" * marker_size

    hunks = []
    lines = split_lines(text)
    i = 0

    while i < len(lines):
        if not lines[i].startswith(start_marker):
            i += 1
            continue

        target_label = lines[i][marker_size:].strip()
        # A block ends before the next start marker
        block = lines[:_find(lines, start_marker, i + 1) or len(lines)]
        base_idx = _find(block, base_marker, i + 1, stop=sep_marker)
        sep_idx = _find(block, sep_marker, (base_idx or i) + 1)
        end_idx = None
        if sep_idx is not None:
            end_idx = _find(block, end_marker, sep_idx + 1)
        if end_idx is None and not strict:
            i += 1
            continue
        if sep_idx is None:
            raise ValueError(
                f"Malformed conflict at line {i + 1}: no separator"
            )
        if end_idx is None:
            raise ValueError(
                f"Malformed conflict at line {i + 1}: no end marker"
            )

        target_end = base_idx if base_idx is not None else sep_idx
        base_content = None
        if base_idx is not None:
            base_content = "".join(lines[base_idx + 1:sep_idx])

        first_context = max(0, i - context_lines)
        hunks.append(ConflictHunk(
            line=i + 1,
            target_content="".join(lines[i + 1:target_end]),
            delta_content="".join(lines[sep_idx + 1:end_idx]),
            base_content=base_content,
            context_before=[
                line.rstrip("\r\n") for line in lines[first_context:i]
            ],
            context_after=[
                line.rstrip("\r\n")
                for line in lines[end_idx + 1:end_idx + 1 + context_lines]
            ],
            target_label=target_label or "target",
            delta_label=lines[end_idx][marker_size:].strip() or "delta",
        ))
        i = end_idx + 1

    return hunks
