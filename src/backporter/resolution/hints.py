"""Hints about related commits that were never backported."""

from __future__ import annotations

import asyncio
from typing import Protocol

from backporter.core.log import logger
from backporter.core.model import Commit, CommitHint

# Hints shown to the user at most
MAX_HINTS = 10


class HintFinder(Protocol):
    async def find(
        self, commit: Commit, target_branch: str, files: list[str]
    ) -> list[CommitHint]:
        ...


class GitHintFinder:
    """Find earlier commits on the same files that the target lacks.

    If the conflicting files were changed by commits that never made
    it to the target branch, backporting those first often makes the
    conflict go away.
    """

    def __init__(self, repository, limit: int = MAX_HINTS):
        self.repository = repository
        self.limit = limit

    async def find(
        self, commit: Commit, target_branch: str, files: list[str]
    ) -> list[CommitHint]:
        if not files:
            return []
        return await asyncio.to_thread(
            self.repository.find_unported_commits,
            commit.sha,
            target_branch,
            files,
            self.limit,
        )


async def find_hints_safely(
    finder: HintFinder | None,
    commit: Commit,
    target_branch: str,
    files: list[str],
) -> list[CommitHint]:
    """Run the hint lookup; any failure means "no hints".

    Hints only enrich the conflict message, so they must never be the
    reason a backport fails.
    """
    if finder is None:
        return []
    try:
        return list(await finder.find(commit, target_branch, files))
    except Exception as e:
        logger.warning(
            "Could not look up related commits",
            exception_type=type(e).__name__,
            exception_message=str(e),
        )
        return []
