"""Workflow nodes for graph state machine."""

from backporter.workflow.nodes.cherry_pick import CherryPick
from backporter.workflow.nodes.commit import CommitChanges
from backporter.workflow.nodes.resolve_conflicts import ResolveConflicts

__all__ = [
    "CherryPick",
    "ResolveConflicts",
    "CommitChanges",
]
