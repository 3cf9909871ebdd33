"""Automatic conflict resolution strategies."""

from __future__ import annotations

import inspect
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Autofix(Protocol):
    """Strategy tried once before a human is asked to fix conflicts."""

    @property
    def name(self) -> str:
        ...

    async def attempt(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> bool:
        """Try to resolve the conflicts in ``files``.

        Args:
            files: Absolute paths of files with conflict markers
            repo_path: Working tree being backported into
            target_branch: Branch the commit is applied to

        Returns:
            True only if every conflict was resolved and staged
        """
        ...


class NoAutofix:
    """No automatic resolution; every conflict goes to the user."""

    @property
    def name(self) -> str:
        return "none"

    async def attempt(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> bool:
        return False


class CallbackAutofix:
    """Adapts a plain function (sync or async) supplied by a caller.

    The callback receives keyword arguments ``files``, ``directory``
    and ``target_branch`` and returns a truthy value when it fixed the
    conflicts.
    """

    def __init__(self, callback):
        self.callback = callback

    @property
    def name(self) -> str:
        return getattr(self.callback, "__name__", "callback")

    async def attempt(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> bool:
        result = self.callback(
            files=files, directory=repo_path, target_branch=target_branch
        )
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
