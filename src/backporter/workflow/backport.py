"""Backport one commit onto one target branch."""

from __future__ import annotations

from pydantic_graph import End

from backporter.autofix import build_autofix
from backporter.core.config import BackportState, State
from backporter.core.log import logger
from backporter.core.model import Commit, ResolutionOutcome
from backporter.core.progress import LogProgress
from backporter.git.repository import GitRepository
from backporter.resolution.controller import ConflictResolutionController
from backporter.resolution.hints import GitHintFinder
from backporter.resolution.prompt import ConsolePrompter
from backporter.workflow.deps import BackportDeps
from backporter.workflow.graph import create_workflow
from backporter.workflow.nodes.cherry_pick import CherryPick


async def backport_one_commit(
    state: State,
    commit: Commit,
    target_branch: str,
    *,
    repository=None,
    autofix=None,
    hint_finder=None,
    prompter=None,
    progress=None,
) -> ResolutionOutcome:
    """Cherry-pick ``commit`` onto the checked out ``target_branch``.

    The working tree must already have ``target_branch`` checked out.
    Collaborators not given are built from ``state.config``.

    Args:
        state: Loaded State; runtime.backport is replaced for this pair
        commit: Commit to backport
        target_branch: Branch the commit is applied to
        repository: GitRepository (or a stand-in)
        autofix: Autofix strategy
        hint_finder: Source of unported-commit hints
        prompter: Confirmation prompt for the interactive loop
        progress: Progress reporter

    Returns:
        How the conflict phase ended (never ABORTED; aborts raise)

    Raises:
        MergeConflictError: Conflicts in a non-interactive run
        AbortError: The user declined to continue
        RetryLimitExceededError: Too many interactive rounds
        ToolInvocationError: git, the editor or the autofix tool failed
    """
    config = state.config
    repository = repository or GitRepository.from_config(config)
    if autofix is None:
        autofix = build_autofix(config, repository)
    if hint_finder is None:
        hint_finder = GitHintFinder(repository)
    prompter = prompter or ConsolePrompter()
    progress = progress or LogProgress()

    state.runtime.backport = BackportState(
        commit=commit, target_branch=target_branch
    )
    deps = BackportDeps(
        repository=repository,
        controller=ConflictResolutionController(
            config,
            repository,
            autofix,
            hint_finder=hint_finder,
            prompter=prompter,
            progress=progress,
        ),
        progress=progress,
    )

    workflow = create_workflow()
    outcome = None
    with logger.span(
        "backport", sha=commit.sha, target_branch=target_branch
    ):
        try:
            async with workflow.iter(
                CherryPick(), state=state, deps=deps
            ) as run:
                async for node in run:
                    if isinstance(node, End):
                        outcome = node.data
        except Exception:
            state.runtime.backport.status = "failed"
            raise

    return outcome
