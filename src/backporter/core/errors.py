"""Exception taxonomy surfaced to callers of the backport engine."""

from __future__ import annotations


class BackportError(Exception):
    """Base class for classified backport failures.

    Every subclass carries a stable ``code`` so the CLI (or any other
    caller) can map failures to exit codes and messages without
    inspecting exception text.
    """

    code = "backport-error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class MergeConflictError(BackportError):
    """Conflicts remain and the run is not interactive."""

    code = "merge-conflict-exception"

    def __init__(
        self,
        conflicting_files: list[str],
        commits_without_backports: list | None = None,
    ):
        self.conflicting_files = list(conflicting_files)
        self.commits_without_backports = list(
            commits_without_backports or []
        )
        files = ", ".join(self.conflicting_files)
        super().__init__(
            f"Commit could not be cherry-picked due to conflicts in: "
            f"{files}"
        )


class AbortError(BackportError):
    """User declined to continue conflict resolution."""

    code = "abort-conflict-resolution-exception"

    def __init__(self):
        super().__init__("Conflict resolution was aborted by the user")


class RetryLimitExceededError(BackportError):
    """Interactive resolution ran past its round ceiling."""

    code = "retry-limit-exceeded"

    def __init__(self, max_retries: int):
        self.max_retries = max_retries
        super().__init__(
            f"Maximum number of retries ({max_retries}) exceeded"
        )


class ToolInvocationError(BackportError):
    """An external command (git, editor, autofix) failed."""

    code = "tool-invocation-failed"

    def __init__(
        self,
        command: str,
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
        message: str | None = None,
    ):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            message
            or (
                f"Command failed with exit code {exit_code}: {command}\n"
                f"stderr: {stderr.strip()}"
            )
        )


__all__ = [
    "BackportError",
    "MergeConflictError",
    "AbortError",
    "RetryLimitExceededError",
    "ToolInvocationError",
]
