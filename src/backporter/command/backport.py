"""Pick command - backport one commit to one or more branches."""

from __future__ import annotations

from pydantic import BaseModel, Field

from backporter.core.errors import (
    AbortError,
    BackportError,
    MergeConflictError,
    RetryLimitExceededError,
)
from backporter.core.log import logger
from backporter.core.model import PullRequestState, TargetPullRequestState

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 2
EXIT_RETRY_LIMIT = 3


def exit_code_for(error: Exception) -> int:
    if isinstance(error, AbortError):
        return EXIT_ABORTED
    if isinstance(error, RetryLimitExceededError):
        return EXIT_RETRY_LIMIT
    return EXIT_FAILED


class BackportCommand(BaseModel):
    """Cherry-pick a commit onto each target branch in turn.

    Conflicts are handed to the configured autofix strategy first and,
    in interactive mode, to you. Branches are processed one after
    another and the run stops at the first failure.
    """

    sha: str = Field(description="Commit to backport")
    branches: list[str] = Field(
        description="Target branches, e.g. --branches 7.x,8.0",
    )
    merged_branches: list[str] = Field(
        default_factory=list,
        alias="merged-branches",
        description=(
            "Branches where a backport of this commit was already merged; "
            "empty cherry-picks are kept for them"
        ),
    )
    checkout: bool = Field(
        default=True,
        description="Check out each target branch before cherry-picking",
    )

    model_config = {"populate_by_name": True}

    def target_pull_request_states(self) -> tuple[TargetPullRequestState, ...]:
        return tuple(
            TargetPullRequestState(branch=branch, state=PullRequestState.MERGED)
            for branch in self.merged_branches
        )

    async def run_workflow(
        self, state: "State", repository=None, **collaborators
    ) -> int:
        """Run the backport workflow for every branch.

        Args:
            state: State instance with config loaded
            repository: GitRepository to use (built from config if None)
            **collaborators: Passed through to backport_one_commit

        Returns:
            Exit code (0 success, 1 conflict or tool failure, 2 aborted,
            3 retry limit exceeded)
        """
        from backporter.git.repository import GitRepository
        from backporter.workflow import backport_one_commit

        repository = repository or GitRepository.from_config(state.config)

        try:
            commit = repository.get_commit(
                self.sha, self.target_pull_request_states()
            )
        except BackportError as e:
            logger.error(f"Could not read commit {self.sha}: {e}")
            return EXIT_FAILED

        logger.info(
            f"Backporting {commit.sha[:8]} to {', '.join(self.branches)}",
            subject=commit.first_line,
        )

        for branch in self.branches:
            try:
                if self.checkout:
                    repository.checkout(branch)
                outcome = await backport_one_commit(
                    state,
                    commit,
                    branch,
                    repository=repository,
                    **collaborators,
                )
            except BackportError as e:
                logger.error(
                    f"Backport to {branch} failed: {e}",
                    code=e.code,
                    branch=branch,
                )
                if isinstance(e, MergeConflictError) and e.commits_without_backports:
                    hints = "\n".join(
                        hint.formatted for hint in e.commits_without_backports
                    )
                    logger.info(
                        f"Consider backporting these commits to {branch} "
                        f"first:\n{hints}"
                    )
                return exit_code_for(e)

            logger.info(f"{branch}: {outcome.value}")

        return EXIT_OK
