"""Extract a delta's units and snapshots from git history."""

from __future__ import annotations

import shlex
from fnmatch import fnmatchcase
from pathlib import PurePosixPath

from deltamerge.core.log import logger
from deltamerge.core.runner import Runner
from deltamerge.reconcile.errors import CollaboratorError, PreconditionFailure


class GitDeltaSource:
    """Reads change sets from a git working copy.

    All git invocations come from the ``git`` command templates in the
    configuration, so they can be adjusted without code changes.
    """

    def __init__(self, config, runner: Runner | None = None):
        """Initialize the source.

        Args:
            config: Config with source settings and command templates
            runner: Command runner (a new Runner if omitted)
        """
        self.config = config
        self.repo = config.source.repo
        self.runner = runner or Runner()

    def _git(self, name: str, check: bool = True, **params) -> str | None:
        template = self.config.command("git", name)
        command = template.format(
            **{k: shlex.quote(str(v)) for k, v in params.items()}
        )
        result = self.runner.execute(command, cwd=self.repo, check=False)
        if result.exited != 0:
            if check:
                raise CollaboratorError(
                    f"git {name} failed (exit {result.exited})",
                    command=command,
                    output=result.stderr,
                )
            return None
        return result.stdout

    def find_merge_commit(self, change: str) -> str:
        """Find the commit that merged a change.

        Raises:
            PreconditionFailure: If no commit message references the
                change
        """
        output = self._git("find_merge_commit", change=change)
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if not lines:
            raise PreconditionFailure(
                f"Could not find merge commit for change #{change}; "
                f"the commit message must contain '(#{change})'"
            )
        commit = lines[0].split()[0]
        logger.info("Found merge commit {commit}", commit=commit, change=change)
        return commit

    def is_companion(self, path: str) -> bool:
        suffix = self.config.source.companion_suffix
        return bool(suffix) and path.endswith(suffix)

    def changed_paths(self, commit: str) -> list[str]:
        """Unit paths the commit touched, in git's order.

        Companion files are not units of their own; they travel with
        the unit they belong to.
        """
        output = self._git("changed_files", commit=commit)
        glob = self.config.source.unit_glob
        paths = []
        for line in output.splitlines():
            path = line.strip()
            if (
                path
                and fnmatchcase(path, glob)
                and not self.is_companion(path)
                and path not in paths
            ):
                paths.append(path)
        return paths

    def companion_path(self, path: str) -> str | None:
        suffix = self.config.source.companion_suffix
        return f"{path}{suffix}" if suffix else None

    def show(self, ref: str, path: str) -> str | None:
        """File content at a ref, or None if it does not exist there."""
        return self._git("show_file", check=False, ref=ref, path=path)

    def snapshots(self, commit: str, path: str) -> tuple[str | None, str | None]:
        """Before/after texts of a path around a commit."""
        return self.show(f"{commit}^", path), self.show(commit, path)

    @staticmethod
    def unit_name(path: str) -> str:
        return PurePosixPath(path).name
