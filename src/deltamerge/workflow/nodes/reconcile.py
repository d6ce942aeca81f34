"""Reconcile node - merge and classify every unit."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from deltamerge.core.config import State
from deltamerge.core.log import logger
from deltamerge.reconcile.batch import run_all
from deltamerge.workflow.nodes.report import Report


@dataclass
class Reconcile(BaseNode[State]):
    """Run the batch reconciliation and stage the final texts."""

    async def run(self, ctx: GraphRunContext[State]) -> Report:
        merge_config = ctx.state.config.merge
        run = ctx.state.runtime.reconcile

        with logger.span("Performing 3-way merge"):
            result = run_all(
                run.units,
                options=merge_config.options(),
                rule=merge_config.whitespace,
            )

        for name, text in result.final_texts.items():
            run.workdir.write("merged", name, text)

        run.result = result
        logger.info(
            "Reconciled: {clean} clean, {unchanged} no real change, "
            "{conflicts} conflict(s), {skipped} skipped",
            clean=len(result.clean),
            unchanged=len(result.no_real_change),
            conflicts=len(result.conflicts),
            skipped=len(result.skipped),
        )
        return Report()
