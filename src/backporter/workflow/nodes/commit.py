"""CommitChanges node - commit what the cherry-pick left staged."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from backporter.core.config import State
from backporter.core.log import logger
from backporter.core.model import ResolutionOutcome
from backporter.core.progress import Spinner
from backporter.workflow.deps import BackportDeps


@dataclass
class CommitChanges(BaseNode[State, BackportDeps, ResolutionOutcome]):
    """Run git commit in case the user did not commit by hand."""

    outcome: ResolutionOutcome
    spinner: Spinner

    async def run(
        self, ctx: GraphRunContext[State, BackportDeps]
    ) -> End[ResolutionOutcome]:
        backport = ctx.state.runtime.backport
        try:
            await asyncio.to_thread(
                ctx.deps.repository.commit_changes,
                backport.author,
                backport.commit.message,
            )
        except Exception:
            self.spinner.fail()
            raise

        self.spinner.succeed()
        backport.outcome = self.outcome
        backport.status = "complete"
        logger.info(
            f"Backported {backport.commit.sha[:8]} to {backport.target_branch}",
            outcome=self.outcome.value,
            retries=backport.retries,
        )
        return End(self.outcome)
