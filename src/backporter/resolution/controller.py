"""Decide how a conflicted cherry-pick gets resolved."""

from __future__ import annotations

import asyncio

from backporter.core.errors import MergeConflictError
from backporter.core.log import logger
from backporter.core.model import (
    MAX_DISPLAYED_CONFLICTS,
    Commit,
    ConflictSnapshot,
    ResolutionOutcome,
)
from backporter.resolution.hints import find_hints_safely
from backporter.resolution.loop import InteractiveResolutionLoop


class ConflictResolutionController:
    """Autofix first, then hints, then (if allowed) the user.

    Steps, in order:
      1. Run the configured autofix strategy.
      2. If it succeeded, the conflict is resolved and nothing else runs.
      3. Take the first MAX_DISPLAYED_CONFLICTS relative paths.
      4. Look up unported commits touching them.
      5. Not interactive: raise MergeConflictError.
      6. Interactive: print a summary, open the editor once, then run
         the interactive loop until the tree is settled.
    """

    def __init__(
        self,
        config,
        repository,
        autofix,
        hint_finder=None,
        prompter=None,
        loop: InteractiveResolutionLoop | None = None,
        progress=None,
    ):
        self.config = config
        self.repository = repository
        self.autofix = autofix
        self.hint_finder = hint_finder
        self.prompter = prompter
        self.loop = loop or InteractiveResolutionLoop(repository, prompter)
        self.progress = progress
        self.retries = 0

    async def _autofix(
        self, snapshot: ConflictSnapshot, target_branch: str
    ) -> bool:
        spinner = None
        if self.autofix.name != "none" and self.progress:
            spinner = self.progress.start(
                "Attempting to resolve conflicts automatically"
            )

        with logger.span("autofix", strategy=self.autofix.name):
            fixed = await self.autofix.attempt(
                snapshot.absolute_conflicts,
                self.repository.repo_path,
                target_branch,
            )

        if spinner is not None:
            if fixed:
                spinner.succeed()
            else:
                spinner.fail()
        return fixed

    def _summary(self, target_branch: str, hints) -> None:
        logger.info("The commit could not be backported due to conflicts")
        logger.info(f"Please fix the conflicts in {self.repository.repo_path}")
        if hints:
            lines = "\n".join(hint.formatted for hint in hints)
            logger.info(
                f"Hint: Before fixing the conflicts manually you should "
                f"consider backporting the following commits to "
                f'"{target_branch}":\n{lines}'
            )

    async def resolve(
        self,
        commit: Commit,
        target_branch: str,
        snapshot: ConflictSnapshot,
    ) -> ResolutionOutcome:
        """Resolve the conflicts reported by the cherry-pick.

        Args:
            commit: Commit being backported
            target_branch: Branch it is applied to
            snapshot: Conflicting and unstaged files after the pick

        Returns:
            AUTO_RESOLVED or MANUALLY_RESOLVED

        Raises:
            MergeConflictError: Conflicts remain and the run is not
                interactive
            AbortError: The user declined
            RetryLimitExceededError: The interactive loop ran too long
            ToolInvocationError: The editor failed
        """
        self.retries = 0

        if await self._autofix(snapshot, target_branch):
            logger.info(
                "Conflicts resolved automatically",
                strategy=self.autofix.name,
            )
            return ResolutionOutcome.AUTO_RESOLVED

        relative = [
            f.relative
            for f in snapshot.conflicting_files[:MAX_DISPLAYED_CONFLICTS]
        ]
        hints = await find_hints_safely(
            self.hint_finder, commit, target_branch, relative
        )

        if not self.config.interactive:
            raise MergeConflictError(
                conflicting_files=relative,
                commits_without_backports=hints,
            )

        self._summary(target_branch, hints)

        if self.config.editor:
            logger.debug("Launching editor", editor=self.config.editor)
            await asyncio.to_thread(
                self.repository.launch_editor, self.config.editor
            )

        self.retries = await self.loop.settle(
            0, snapshot.conflicting_files, snapshot.unstaged_files
        )
        return ResolutionOutcome.MANUALLY_RESOLVED
