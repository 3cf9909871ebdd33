"""CherryPick node - apply the commit to the checked out branch."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from backporter.core.config import State
from backporter.core.log import logger
from backporter.core.model import ResolutionOutcome, get_commit_author
from backporter.workflow.deps import BackportDeps
from backporter.workflow.nodes.commit import CommitChanges
from backporter.workflow.nodes.resolve_conflicts import ResolveConflicts


@dataclass
class CherryPick(BaseNode[State, BackportDeps]):
    """Cherry-pick the commit; conflicts route to ResolveConflicts."""

    async def run(
        self, ctx: GraphRunContext[State, BackportDeps]
    ) -> ResolveConflicts | CommitChanges:
        backport = ctx.state.runtime.backport
        commit = backport.commit
        spinner = ctx.deps.progress.start(
            f"Cherry-picking: {commit.first_line}"
        )
        backport.status = "running"
        backport.author = get_commit_author(ctx.state.config, commit)
        merged = commit.merged_target_pull_request(backport.target_branch)

        try:
            result = await asyncio.to_thread(
                ctx.deps.repository.cherrypick,
                commit.sha,
                backport.author,
                merged,
            )
        except Exception:
            spinner.fail()
            raise

        if not result.needs_resolving:
            return CommitChanges(ResolutionOutcome.NO_CONFLICT, spinner)

        spinner.fail()
        backport.snapshot = result.snapshot
        logger.debug(
            "Cherry-pick stopped with conflicts",
            conflicting=[f.relative for f in result.conflicting_files],
            unstaged=result.unstaged_files,
        )
        return ResolveConflicts(result.snapshot, spinner)
