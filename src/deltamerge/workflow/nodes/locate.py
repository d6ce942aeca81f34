"""LocateDelta node - find the change's commit and the units it touches."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from deltamerge.core.config import State
from deltamerge.core.log import logger
from deltamerge.core.workdir import WorkDir
from deltamerge.git.delta import GitDeltaSource
from deltamerge.reconcile.errors import PreconditionFailure
from deltamerge.target.client import TargetClient
from deltamerge.workflow.nodes.collect import CollectSnapshots


@dataclass
class LocateDelta(BaseNode[State]):
    """Resolve the change to a commit and list its units."""

    async def run(self, ctx: GraphRunContext[State]) -> CollectSnapshots:
        config = ctx.state.config
        run = ctx.state.runtime.reconcile
        run.status = "running"

        # Collaborators may be injected up front (tests, embedding)
        if run.source is None:
            run.source = GitDeltaSource(config)
        if run.target_client is None:
            run.target_client = TargetClient(config, run.target)
        if run.workdir is None:
            run.workdir = WorkDir(
                config.workdir.root, run.change, config.workdir.prefix
            )
        run.workdir.create()

        with logger.span("Locating change #{change}", change=run.change):
            run.commit = run.source.find_merge_commit(run.change)
            run.paths = run.source.changed_paths(run.commit)

        if not run.paths:
            raise PreconditionFailure(
                f"No unit changes found in change #{run.change}"
            )

        for path in run.paths:
            logger.info("Unit in delta: {path}", path=path)

        return CollectSnapshots()
