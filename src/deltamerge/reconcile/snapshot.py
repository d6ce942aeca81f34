"""Snapshots of one mergeable unit."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

REQUIRED_ROLES = ("before", "after", "target")

_LINE = re.compile(r"[^\n]*\n|[^\n]+")


def split_lines(text: str) -> list[str]:
    """Split on LF only, keeping terminators.

    Unlike str.splitlines, CR, form feed and the Unicode separators
    stay inside their line.
    """
    return _LINE.findall(text)


@dataclass(frozen=True)
class Snapshot:
    """Ordered text lines of one unit at one point in time.

    Lines keep their terminators so that joining them reproduces the
    original text exactly. ``lines`` is None when the snapshot is
    absent, which is different from an empty file.
    """

    lines: tuple[str, ...] | None

    @classmethod
    def from_text(cls, text: str) -> Snapshot:
        return cls(tuple(split_lines(text)))

    @classmethod
    def absent(cls) -> Snapshot:
        return cls(None)

    @property
    def present(self) -> bool:
        return self.lines is not None

    @property
    def text(self) -> str:
        if self.lines is None:
            raise ValueError("Absent snapshot has no text")
        return "".join(self.lines)


@dataclass(frozen=True)
class Unit:
    """One named artifact with its before/after/target snapshots.

    A companion (e.g. a metadata sidecar) is reconciled exactly like
    the unit itself and reported under its own name.
    """

    name: str
    before: Snapshot
    after: Snapshot
    target: Snapshot
    companion: Unit | None = None

    def missing_roles(self) -> list[str]:
        """Required roles whose snapshot is absent."""
        return [
            role for role in REQUIRED_ROLES
            if not getattr(self, role).present
        ]

    def members(self) -> Iterator[Unit]:
        """Yield this unit, then its companion."""
        yield self
        if self.companion is not None:
            yield from self.companion.members()
