"""Publish node - publish clean units when the gate allows it."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from deltamerge.core.config import State
from deltamerge.core.log import logger
from deltamerge.reconcile.gate import PublishDecision, exit_status


def deployable(
    decision: PublishDecision, primaries: dict[str, str]
) -> PublishDecision:
    """Narrow a decision to the primary units that are themselves clean.

    Deploying a primary sends its whole file, so a clean companion alone
    never gets its primary published. When nothing is left the decision
    no longer proceeds.
    """
    names = [
        name for name in decision.units_to_publish
        if primaries.get(name, name) == name
    ]
    if not decision.proceed:
        return decision.model_copy(update={"units_to_publish": names})
    if not names:
        return decision.model_copy(update={
            "units_to_publish": [],
            "proceed": False,
            "reason": "only companions changed; their units are unchanged",
        })
    return decision.model_copy(update={
        "units_to_publish": names,
        "reason": f"publishing {len(names)} unit(s)",
    })


@dataclass
class Publish(BaseNode[State, None, int]):
    """Publish the clean units, then finish with the run's exit status."""

    async def run(self, ctx: GraphRunContext[State]) -> End[int]:
        run = ctx.state.runtime.reconcile
        decision = run.decision

        if decision.proceed:
            names = decision.units_to_publish
            # Every member goes out as its final text: a no-real-change
            # companion carries the target text, not the repository's
            files = {
                member: (
                    run.workdir.role_dir("merged") / member,
                    run.repo_paths[member],
                )
                for member, primary in run.primaries.items()
                if primary in names
                and member in run.result.final_texts
                and member in run.repo_paths
            }
            output = run.target_client.publish(names, files)
            logger.info("Publish complete", units=",".join(names))
            logger.debug("{output}", output=output)
        else:
            logger.info("Not publishing: {reason}", reason=decision.reason)

        run.status = "complete"
        return End(int(exit_status(run.result)))
