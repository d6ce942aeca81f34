"""External command execution through invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from deltamerge.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    git and the target CLI are both driven through here, so tests can
    swap in a fake with the same execute() signature.
    """

    def kill(self) -> None:
        # invoke kills with signal.SIGKILL, which Windows lacks;
        # os.kill there takes the bare number and calls TerminateProcess
        if platform.system() != "Windows":
            super().kill()
            return
        pid = self.pid if self.using_pty else self.process.pid
        with contextlib.suppress(ProcessLookupError):
            os.kill(pid, 9)

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
    ) -> Result:
        """Run a shell command with its output captured.

        Args:
            command: Shell command line
            cwd: Directory to run in
            timeout: Seconds before the command is killed
            check: Raise on a non-zero exit status

        Returns:
            invoke.Result; ``exited`` is -1 if the command timed out

        Raises:
            invoke.UnexpectedExit: If check is set and the command fails
        """
        options = {"hide": True, "warn": not check, "in_stream": False}
        if timeout:
            options["timeout"] = timeout

        logger.spew("Executing {command}", command=command, cwd=str(cwd or ""))
        try:
            with self.cd(str(cwd)) if cwd else contextlib.nullcontext():
                result = self.run(command, **options)
        except CommandTimedOut as e:
            logger.warn("Timed out after {timeout}s", timeout=timeout)
            result = e.result
            result.exited = -1

        logger.spew(
            "Exited {status}", status=result.exited, command=command
        )
        return result
