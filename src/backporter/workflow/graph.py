"""Graph workflow definition."""

from pydantic_graph import Graph

from backporter.core.config import State
from backporter.core.log import logger


def create_workflow():
    """Create the backport workflow graph.

    CherryPick → [ResolveConflicts →] CommitChanges → End(outcome)

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from backporter.workflow.nodes.cherry_pick import CherryPick
    from backporter.workflow.nodes.commit import CommitChanges
    from backporter.workflow.nodes.resolve_conflicts import ResolveConflicts

    workflow = Graph(
        nodes=(
            CherryPick,
            ResolveConflicts,
            CommitChanges,
        ),
        state_type=State
    )

    return workflow
