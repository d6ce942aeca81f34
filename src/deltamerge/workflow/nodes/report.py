"""Report node - decide on publishing and print the merge report."""

from __future__ import annotations

import sys
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from deltamerge.core.config import State
from deltamerge.reconcile.gate import PublishMode, decide
from deltamerge.reconcile.report import render_report
from deltamerge.workflow.nodes.publish import Publish, deployable


@dataclass
class Report(BaseNode[State]):
    """Render the report for the requested mode."""

    async def run(self, ctx: GraphRunContext[State]) -> Publish:
        run = ctx.state.runtime.reconcile
        run.decision = deployable(
            decide(run.result, PublishMode(run.mode)), run.primaries
        )

        target_texts = {
            member.name: member.target.text
            for unit in run.units
            for member in unit.members()
            if member.target.present
        }
        sys.stdout.write(render_report(
            run.result,
            run.decision,
            change=run.change,
            target=run.target,
            target_texts=target_texts,
            workdir=run.workdir.path,
            marker_size=ctx.state.config.merge.marker_size,
        ))
        return Publish()
