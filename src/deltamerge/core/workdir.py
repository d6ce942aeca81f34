"""Per-change working directory management."""

import shutil
from pathlib import Path

ROLES = ("before", "after", "target", "merged")


class WorkDir:
    """Working directory of one change.

    Holds one subdirectory per snapshot role plus ``merged`` for the
    final texts, so operators can inspect every input and output of a
    run after it finishes.
    """

    def __init__(self, root: Path, change: str, prefix: str = "pr-merge-"):
        self.path = Path(root) / f"{prefix}{change}"

    def create(self, fresh: bool = True) -> "WorkDir":
        """Create the directory tree, emptying it first if fresh."""
        if fresh:
            self.remove()
        for role in ROLES:
            (self.path / role).mkdir(parents=True, exist_ok=True)
        return self

    def remove(self) -> bool:
        """Remove the directory tree.

        Returns:
            True if something was removed
        """
        if not self.path.exists():
            return False
        shutil.rmtree(self.path)
        return True

    def role_dir(self, role: str) -> Path:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        return self.path / role

    def write(self, role: str, name: str, text: str) -> Path:
        path = self.role_dir(role) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps LF-only text byte-identical on every platform
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        return path

    def read(self, role: str, name: str) -> str | None:
        path = self.role_dir(role) / name
        if not path.is_file():
            return None
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
