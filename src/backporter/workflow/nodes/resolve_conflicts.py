"""ResolveConflicts node - hand the conflicts to the controller."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from backporter.core.config import State
from backporter.core.errors import AbortError
from backporter.core.model import ConflictSnapshot, ResolutionOutcome
from backporter.core.progress import Spinner
from backporter.workflow.deps import BackportDeps
from backporter.workflow.nodes.commit import CommitChanges


@dataclass
class ResolveConflicts(BaseNode[State, BackportDeps]):
    """Resolve conflicts automatically or with the user's help."""

    snapshot: ConflictSnapshot
    spinner: Spinner

    async def run(
        self, ctx: GraphRunContext[State, BackportDeps]
    ) -> CommitChanges:
        """Run the controller on the conflicts left by the cherry-pick.

        Returns:
            CommitChanges: Commit whatever is now staged
        """
        backport = ctx.state.runtime.backport
        controller = ctx.deps.controller

        try:
            outcome = await controller.resolve(
                backport.commit, backport.target_branch, self.snapshot
            )
        except AbortError:
            backport.outcome = ResolutionOutcome.ABORTED
            raise
        finally:
            backport.retries = controller.retries

        backport.outcome = outcome
        return CommitChanges(outcome, self.spinner)
