"""Autofix by running a user-configured shell command."""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path

from backporter.core.log import logger
from backporter.core.runner import Runner


class CommandAutofix:
    """Run ``autofix.command``; exit code 0 means the conflicts are fixed.

    The command is a template with shell-quoted placeholders:
    ``{files}`` (space separated absolute paths), ``{directory}`` and
    ``{target_branch}``. It runs from the repository directory and is
    expected to stage what it resolves.
    """

    def __init__(
        self,
        command: str,
        timeout: int | None = None,
        runner: Runner | None = None,
    ):
        self.command = command
        self.timeout = timeout
        self.runner = runner or Runner()

    @property
    def name(self) -> str:
        return "command"

    def render(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> str:
        return self.command.format(
            files=" ".join(shlex.quote(f) for f in files),
            directory=shlex.quote(str(repo_path)),
            target_branch=shlex.quote(target_branch),
        )

    async def attempt(
        self, files: list[str], repo_path: Path, target_branch: str
    ) -> bool:
        cmd = self.render(files, repo_path, target_branch)
        result = await asyncio.to_thread(
            self.runner.execute,
            cmd,
            cwd=repo_path,
            timeout=self.timeout,
            log_level="debug",
            check=False,
        )

        if result.exited == 0:
            logger.info("Autofix command resolved the conflicts", command=cmd)
            return True

        logger.warning(
            "Autofix command did not resolve the conflicts",
            command=cmd,
            exit_code=result.exited,
        )
        return False
