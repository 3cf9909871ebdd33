"""Command execution on top of invoke."""

import contextlib
import io
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from backporter.core.log import logger


class Runner(Context):
    """invoke.Context with the two execution modes backporter needs.

    execute() captures output for commands whose result is parsed
    (git status queries, cherry-pick, commit). launch() hands the
    terminal to an interactive program (the conflict editor) and waits
    for it to exit.
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke uses signal.SIGKILL, which does not exist on Windows.
        os.kill() there accepts any integer and passes it to
        TerminateProcess(), so send 9 directly.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return
        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        stdin: str | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a command with captured output.

        Args:
            command: Command string to execute
            cwd: Working directory
            timeout: Maximum execution time in seconds; a timed out
                command returns a result with exited == -1
            stdin: String fed to the command's stdin
            log_file: Write combined stdout/stderr here
            log_level: Echo each output line to the logger at this level
            check: Raise invoke.UnexpectedExit on non-zero exit
            env: Extra environment variables

        Returns:
            invoke.Result with stdout, stderr and exited
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if stdin:
            kwargs["in_stream"] = io.StringIO(stdin)
        if env:
            kwargs["env"] = env

        logger.spew("Executing command", command=command, cwd=str(cwd or ""))

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, line.rstrip())

        return result

    def launch(self, command: str, cwd: Path | None = None) -> Result:
        """Run an interactive program attached to the terminal.

        Blocks until the program exits. Never raises on a non-zero
        exit; callers inspect ``result.exited``.
        """
        logger.debug("Launching", command=command, cwd=str(cwd or ""))
        kwargs = {"hide": False, "warn": True, "pty": True}
        if cwd:
            with self.cd(str(cwd)):
                return self.run(command, **kwargs)
        return self.run(command, **kwargs)
