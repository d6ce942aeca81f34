"""Merge command - reconcile a change onto a deployment target."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_graph import End

from deltamerge.core.log import logger
from deltamerge.reconcile.errors import ReconcileError
from deltamerge.reconcile.gate import ExitStatus, PublishMode

if TYPE_CHECKING:
    from deltamerge.core.config import State


class MergeCommand(BaseModel):
    """Three-way merge a merged change onto the target's current state.

    Extracts the before/after versions of every unit the change touched,
    retrieves the target's current versions, merges, and reports clean
    merges, whitespace-only merges and conflicts. In publish mode the
    clean merges are published, but only when nothing conflicts.

    Exit status: 0 all clean (or published), 1 conflicts found,
    2 unusable input or a failed git/target command.
    """

    change: str = Field(
        description="Change (pull request) number whose delta to apply"
    )
    target: str = Field(
        description="Deployment target to reconcile against (e.g. org alias)"
    )
    mode: PublishMode = Field(
        default=PublishMode.PREVIEW,
        description=(
            "preview: report only; publish: publish clean merges; "
            "dry-run: report everything, publish nothing"
        ),
    )

    async def run_workflow(self, state: State) -> int:
        """Run the reconciliation workflow.

        Returns:
            Exit status as an int
        """
        run = state.runtime.reconcile
        run.change = self.change
        run.target = self.target
        run.mode = self.mode.value

        logger.info(
            "Reconciling change #{change} onto {target} ({mode})",
            change=self.change,
            target=self.target,
            mode=self.mode.value,
        )

        from deltamerge.workflow.graph import create_workflow
        from deltamerge.workflow.nodes import LocateDelta

        workflow = create_workflow()

        try:
            async with workflow.iter(LocateDelta(), state=state) as graph_run:
                async for node in graph_run:
                    if isinstance(node, End):
                        return node.data
        except ReconcileError as e:
            run.status = "failed"
            logger.error("{error}", error=str(e))
            output = getattr(e, "output", "")
            if output:
                logger.debug("{output}", output=output)
            return int(ExitStatus.PRECONDITION_FAILURE)

        logger.error("Workflow ended unexpectedly")
        return int(ExitStatus.PRECONDITION_FAILURE)
