"""Interactive rounds: show what is left, wait for the user, look again."""

from __future__ import annotations

import asyncio
from pathlib import Path

from backporter.core.errors import AbortError, RetryLimitExceededError
from backporter.core.log import logger
from backporter.core.model import (
    MAX_DISPLAYED_CONFLICTS,
    MAX_RETRIES,
    ConflictingFile,
    ConflictSnapshot,
)

DIVIDER = "\n----------------------------------------\n"
HEADER = "Fix the following conflicts manually:"
FOOTER = "Press ENTER when the conflicts are resolved and files are staged"


def _bullets(paths: list[str]) -> str:
    return "\n".join(f" - {path}" for path in paths)


def _display_path(path: str, repo_path: Path | None) -> str:
    if repo_path is not None and Path(path).is_relative_to(repo_path):
        return str(Path(path).relative_to(repo_path))
    return path


def render_round(
    retries: int,
    snapshot: ConflictSnapshot,
    repo_path: Path | None = None,
    max_displayed: int = MAX_DISPLAYED_CONFLICTS,
) -> str:
    """Build the text shown to the user for one round.

    Conflicting files are listed by repo-relative path, at most
    ``max_displayed`` of them. The unstaged section only lists files
    that are not conflicting as well, relative to ``repo_path`` when
    they are inside it.
    """
    parts = []
    if retries > 0:
        parts.append(DIVIDER)
    parts.append(f"{HEADER}\n")

    conflicts = [f.relative for f in snapshot.conflicting_files]
    if conflicts:
        section = f"Conflicting files:\n{_bullets(conflicts[:max_displayed])}"
        hidden = len(conflicts) - max_displayed
        if hidden > 0:
            section += f"\n ... and {hidden} more"
        parts.append(section)

    unstaged = [_display_path(f, repo_path) for f in snapshot.extra_unstaged]
    if unstaged:
        parts.append(f"Unstaged files:\n{_bullets(unstaged)}")

    parts.append(f"\n{FOOTER}")
    return "\n".join(parts)


class InteractiveResolutionLoop:
    """Repeat rounds until the working tree is settled.

    Each round re-reads the conflicting and unstaged files from the
    repository; the lists from the previous round are never reused.
    """

    def __init__(self, repository, prompter, max_retries: int = MAX_RETRIES):
        self.repository = repository
        self.prompter = prompter
        self.max_retries = max_retries

    async def snapshot(self) -> ConflictSnapshot:
        """Query both file sets concurrently."""
        conflicting, unstaged = await asyncio.gather(
            asyncio.to_thread(self.repository.get_conflicting_files),
            asyncio.to_thread(self.repository.get_unstaged_files),
        )
        return ConflictSnapshot(
            conflicting_files=conflicting, unstaged_files=unstaged
        )

    async def settle(
        self,
        retries: int,
        conflicting_files: list[ConflictingFile],
        unstaged_files: list[str],
    ) -> int:
        """Prompt until nothing is conflicting or unstaged.

        Args:
            retries: Rounds already confirmed
            conflicting_files: Conflicts as of entry
            unstaged_files: Absolute paths of unstaged files as of entry

        Returns:
            Number of confirmed rounds when the tree settled

        Raises:
            AbortError: The user declined
            RetryLimitExceededError: More than max_retries confirmations
        """
        snapshot = ConflictSnapshot(
            conflicting_files=conflicting_files,
            unstaged_files=unstaged_files,
        )

        while not snapshot.is_settled:
            logger.debug(
                "Waiting for manual resolution",
                retries=retries,
                conflicting=len(snapshot.conflicting_files),
                unstaged=len(snapshot.extra_unstaged),
            )

            text = render_round(retries, snapshot, self.repository.repo_path)
            if not await self.prompter.confirm(text):
                raise AbortError()

            retries += 1
            if retries > self.max_retries:
                raise RetryLimitExceededError(self.max_retries)

            snapshot = await self.snapshot()

        logger.debug("Working tree settled", retries=retries)
        return retries
