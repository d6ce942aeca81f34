"""Clean command - remove a change's working directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from deltamerge.core.log import logger
from deltamerge.core.workdir import WorkDir

if TYPE_CHECKING:
    from deltamerge.core.config import State


class CleanCommand(BaseModel):
    """Remove the working directory left behind by a merge run.

    The directory holds the extracted snapshots and merged files and is
    kept after every run for inspection.
    """

    change: str = Field(description="Change number whose directory to remove")

    async def run_workflow(self, state: State) -> int:
        config = state.config.workdir
        workdir = WorkDir(config.root, self.change, config.prefix)

        if workdir.remove():
            state.runtime.clean.removed.append(workdir.path)
            logger.info("Removed {path}", path=str(workdir.path))
        else:
            logger.warning(
                "Nothing to clean at {path}", path=str(workdir.path)
            )
        return 0
