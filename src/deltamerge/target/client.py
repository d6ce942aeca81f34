"""Retrieve units from and publish units to the deployment target."""

from __future__ import annotations

import shlex
import shutil
from pathlib import Path, PurePosixPath

from deltamerge.core.log import logger
from deltamerge.core.runner import Runner
from deltamerge.reconcile.errors import CollaboratorError


def unit_stem(name: str) -> str:
    return PurePosixPath(name).stem


class TargetClient:
    """Deployment target driven through its command line tool.

    Retrieve and publish commands are ``target`` command templates;
    ``{unit_args}`` expands to one ``target.unit_arg`` per unit.
    """

    def __init__(self, config, target: str, runner: Runner | None = None):
        self.config = config
        self.target = target
        self.runner = runner or Runner()

    def unit_args(self, names: list[str]) -> str:
        template = self.config.target.unit_arg
        return " ".join(
            template.format(
                name=shlex.quote(name), stem=shlex.quote(unit_stem(name))
            )
            for name in names
        )

    def _run(self, name: str, names: list[str], **params) -> str:
        command = self.config.command("target", name).format(
            unit_args=self.unit_args(names),
            target=shlex.quote(self.target),
            **{k: shlex.quote(str(v)) for k, v in params.items()},
        )
        with logger.span("Target {operation}", operation=name, target=self.target):
            result = self.runner.execute(
                command,
                cwd=self.config.source.repo,
                timeout=self.config.target.timeout,
                check=False,
            )
        # The CLI is chatty; the tail is what matters
        for line in result.stdout.splitlines()[-20:]:
            logger.debug("{line}", line=line)
        if result.exited != 0:
            raise CollaboratorError(
                f"Target {name} failed (exit {result.exited})",
                command=command,
                output=result.stderr or result.stdout,
            )
        return result.stdout

    def retrieve(self, names: list[str], output_dir: Path) -> None:
        """Fetch the current state of units into output_dir.

        Raises:
            CollaboratorError: If the retrieve command fails
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        self._run("retrieve", names, output_dir=output_dir)

    def read(self, name: str, output_dir: Path, stem: str | None = None) -> str | None:
        """Read a retrieved unit; None if the target does not have it."""
        layout = self.config.target.layout
        path = output_dir / layout.format(name=name, stem=stem or unit_stem(name))
        if not path.is_file():
            return None
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    def publish(
        self,
        names: list[str],
        files: dict[str, tuple[Path, str]] | None = None,
    ) -> str:
        """Publish units to the target.

        Args:
            names: Primary unit names to publish
            files: Merged file to copy into the project before
                publishing, as name -> (merged file, repository path)

        Returns:
            Publish command output

        Raises:
            CollaboratorError: If the publish command fails
        """
        if files and self.config.target.copy_to_project:
            repo = Path(self.config.source.repo)
            for name, (merged, repo_path) in files.items():
                destination = repo / repo_path
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(merged, destination)
                logger.debug(
                    "Copied merged unit into project",
                    unit=name,
                    path=str(destination),
                )

        logger.info(
            "Publishing {count} unit(s) to {target}",
            count=len(names),
            target=self.target,
        )
        return self._run("publish", names)
