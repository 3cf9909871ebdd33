"""Git working-tree operations used by the backport engine."""

from __future__ import annotations

import re
import shlex
from pathlib import Path

from invoke import Result

from backporter.core.errors import ToolInvocationError
from backporter.core.log import logger
from backporter.core.model import (
    CherrypickResult,
    Commit,
    CommitAuthor,
    CommitHint,
    ConflictingFile,
    TargetPullRequestState,
)
from backporter.core.runner import Runner

# Overridable through config.commands["git"]. Placeholders are filled
# with already shell-quoted values.
DEFAULT_COMMANDS = {
    "cherry_pick": "git {identity} cherry-pick {options} {sha}",
    "commit": "git {identity} commit --no-edit {options}",
    "commit_with_message": "git {identity} commit {options} -m {message}",
    "diff_check": "git -c core.quotePath=false --no-pager diff --check",
    "diff_unstaged": "git --no-pager diff --name-only -z",
    "add_file": "git add -- {path}",
    "checkout": "git checkout {branch}",
    "show_stage": "git --no-pager show :{stage}:{path}",
    "show_commit": "git --no-pager log -1 --format=%H%x1f%an%x1f%ae%x1f%B {sha}",
    "log_unported": (
        "git --no-pager log --cherry-pick --right-only --no-merges "
        "--max-count={limit} --format=%H%x09%s "
        "{target_branch}...{sha}^ -- {files}"
    ),
}

_CONFLICT_MARKER = re.compile(r"^(?P<path>.+?):\d+: leftover conflict marker$")


def _quote_all(values) -> str:
    return " ".join(shlex.quote(str(v)) for v in values)


class GitRepository:
    """Wrapper around the git CLI for one working tree.

    Every query goes back to git; nothing about the tree is cached
    because the user and their editor change it between calls.
    """

    def __init__(
        self,
        repo_path: Path,
        cwd: Path | None = None,
        config=None,
        runner: Runner | None = None,
    ):
        """Initialize repository wrapper.

        Args:
            repo_path: Path to the git working tree
            cwd: Directory interactive tools are started from
            config: Optional Config with git options and command
                template overrides
            runner: Command runner (a fresh Runner by default)
        """
        self.repo_path = Path(repo_path)
        self.cwd = Path(cwd) if cwd else self.repo_path
        self.config = config
        self.runner = runner or Runner()

    @classmethod
    def from_config(cls, config) -> GitRepository:
        return cls(config.git.repo_path, config.git.cwd, config=config)

    def command(self, name: str, **values) -> str:
        """Render a command template by name."""
        template = DEFAULT_COMMANDS[name]
        if self.config is not None:
            template = self.config.commands.get("git", {}).get(name, template)
        return template.format(**values)

    def _run(self, name: str, check: bool = False, **values) -> Result:
        return self._exec(self.command(name, **values), check=check)

    def _exec(self, cmd: str, check: bool = False) -> Result:
        result = self.runner.execute(cmd, cwd=self.repo_path, check=False)
        logger.trace(
            "git command finished",
            command=cmd,
            exit_code=result.exited,
        )
        if check and result.exited != 0:
            raise ToolInvocationError(
                cmd, result.exited, result.stdout, result.stderr
            )
        return result

    @staticmethod
    def _identity(author: CommitAuthor) -> str:
        return _quote_all([
            "-c", f"user.name={author.name}",
            "-c", f"user.email={author.email}",
        ])

    def _git_option(self, name: str, default):
        if self.config is None:
            return default
        return getattr(self.config.git, name)

    # ------------------------------------------------------------
    # Apply / commit primitives
    # ------------------------------------------------------------

    def cherrypick(
        self,
        sha: str,
        author: CommitAuthor,
        merged_target_pull_request: TargetPullRequestState | None = None,
    ) -> CherrypickResult:
        """Cherry-pick ``sha`` onto the checked out branch.

        Conflicts are an ordinary result, not an exception.

        Args:
            sha: Commit to apply
            author: Identity git records as committer
            merged_target_pull_request: Set when this change was already
                merged into the target branch once; empty results are
                then kept instead of failing

        Returns:
            CherrypickResult with needs_resolving set when conflicting
            or unstaged files remain

        Raises:
            ToolInvocationError: For failures unrelated to conflicts
        """
        options = []
        if self._git_option("cherrypick_ref", True):
            options.append("-x")
        mainline = self._git_option("mainline", None)
        if mainline is not None:
            options += ["--mainline", str(mainline)]
        if merged_target_pull_request is not None:
            options.append("--keep-redundant-commits")

        command = self.command(
            "cherry_pick",
            identity=self._identity(author),
            options=_quote_all(options),
            sha=shlex.quote(sha),
        )
        result = self._exec(command)
        if result.exited == 0:
            return CherrypickResult()

        output = result.stdout + result.stderr

        if "is a merge but no -m option was given" in output:
            raise ToolInvocationError(
                command, result.exited, result.stdout, result.stderr,
                message=(
                    f"Commit {sha} is a merge commit; set git.mainline "
                    f"to choose the parent to cherry-pick against"
                ),
            )

        if "The previous cherry-pick is now empty" in output:
            raise ToolInvocationError(
                command, result.exited, result.stdout, result.stderr,
                message=(
                    f"Cherry-pick of {sha} is empty: the change is "
                    f"already on the target branch"
                ),
            )

        conflicting_files = self.get_conflicting_files()
        unstaged_files = self.get_unstaged_files()
        if conflicting_files or unstaged_files:
            return CherrypickResult(
                conflicting_files=conflicting_files,
                unstaged_files=unstaged_files,
                needs_resolving=True,
            )

        raise ToolInvocationError(
            command, result.exited, result.stdout, result.stderr
        )

    def commit_changes(self, author: CommitAuthor, message: str) -> None:
        """Commit whatever the cherry-pick left staged.

        A no-op when the cherry-pick (or the user) already committed.

        Raises:
            ToolInvocationError: If git commit fails for another reason
        """
        options = "--no-verify" if self._git_option("no_verify", True) else ""
        identity = self._identity(author)

        result = self._run("commit", identity=identity, options=options)
        if result.exited == 0:
            return

        if (
            "nothing to commit" in result.stdout
            or "nothing added to commit" in result.stdout
        ):
            logger.info("Nothing to commit; cherry-pick already committed")
            return

        if "Aborting commit due to empty commit message" in result.stderr:
            self._run(
                "commit_with_message",
                check=True,
                identity=identity,
                options=options,
                message=shlex.quote(message),
            )
            return

        raise ToolInvocationError(
            self.command("commit", identity=identity, options=options),
            result.exited,
            result.stdout,
            result.stderr,
        )

    # ------------------------------------------------------------
    # Working-tree queries
    # ------------------------------------------------------------

    def get_conflicting_files(self) -> list[ConflictingFile]:
        """Files that still contain conflict markers."""
        result = self._run("diff_check")
        seen = []
        for line in result.stdout.splitlines():
            match = _CONFLICT_MARKER.match(line)
            if match and match.group("path") not in seen:
                seen.append(match.group("path"))

        return [
            ConflictingFile(
                absolute=str(self.repo_path / relative),
                relative=relative,
            )
            for relative in seen
        ]

    def get_unstaged_files(self) -> list[str]:
        """Absolute paths of files with unstaged modifications.

        Names are NUL separated (-z) so git does not quote paths with
        non-ASCII characters; diff --check reports those unquoted.
        """
        result = self._run("diff_unstaged")
        files = []
        for name in result.stdout.split("\0"):
            path = str(self.repo_path / name)
            if name and path not in files:
                files.append(path)
        return files

    # ------------------------------------------------------------
    # Helpers for hints, autofix and the CLI
    # ------------------------------------------------------------

    def get_commit(
        self,
        sha: str,
        target_pull_request_states=(),
    ) -> Commit:
        """Read a commit's message and author from git."""
        result = self._run("show_commit", check=True, sha=shlex.quote(sha))
        full_sha, name, email, message = result.stdout.split("\x1f", 3)
        return Commit(
            sha=full_sha.strip(),
            message=message.strip(),
            author_name=name or None,
            author_email=email or None,
            target_pull_request_states=tuple(target_pull_request_states),
        )

    def find_unported_commits(
        self,
        sha: str,
        target_branch: str,
        files: list[str],
        limit: int = 10,
    ) -> list[CommitHint]:
        """Commits before ``sha`` touching ``files`` missing from the target.

        Patch-equivalent commits already on the target branch are
        excluded (git log --cherry-pick).
        """
        result = self._run(
            "log_unported",
            check=True,
            limit=limit,
            target_branch=shlex.quote(target_branch),
            sha=shlex.quote(sha),
            files=_quote_all(files),
        )
        hints = []
        for line in result.stdout.splitlines():
            if "\t" not in line:
                continue
            commit_sha, subject = line.split("\t", 1)
            hints.append(CommitHint(sha=commit_sha, subject=subject))
        return hints

    def show_stage(self, path: str, stage: int) -> str:
        """Content of ``path`` at index stage 1 (base), 2 (ours), 3 (theirs)."""
        result = self._run(
            "show_stage", check=True, stage=stage, path=shlex.quote(path)
        )
        return result.stdout

    def stage_file(self, path: str) -> None:
        self._run("add_file", check=True, path=shlex.quote(path))

    def checkout(self, branch: str) -> None:
        self._run("checkout", check=True, branch=shlex.quote(branch))

    def launch_editor(self, editor: str) -> None:
        """Open ``editor`` on the repository and wait for it to exit.

        Raises:
            ToolInvocationError: If the editor exits non-zero
        """
        cmd = f"{editor} {shlex.quote(str(self.repo_path))}"
        result = self.runner.launch(cmd, cwd=self.cwd)
        if result.exited != 0:
            raise ToolInvocationError(
                cmd, result.exited, result.stdout, result.stderr
            )
