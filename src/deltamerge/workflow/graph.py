"""Graph workflow definition."""

from pydantic_graph import Graph

from deltamerge.core.config import State
from deltamerge.core.log import logger
from deltamerge.workflow.nodes import (
    CollectSnapshots,
    LocateDelta,
    Publish,
    Reconcile,
    Report,
)


def create_workflow() -> Graph:
    """Create the reconciliation workflow graph.

    LocateDelta -> CollectSnapshots -> Reconcile -> Report -> Publish
    """
    logger.debug("Building workflow graph")
    return Graph(
        nodes=(
            LocateDelta,
            CollectSnapshots,
            Reconcile,
            Report,
            Publish,
        ),
        state_type=State,
    )
