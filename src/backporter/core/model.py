"""Domain types for a single commit/branch backport."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Interactive resolution stops after this many confirmed rounds
MAX_RETRIES = 100

# Conflicting files shown to the user and passed to the hint finder
MAX_DISPLAYED_CONFLICTS = 50


class PullRequestState(str, Enum):
    OPEN = "OPEN"
    MERGED = "MERGED"
    CLOSED = "CLOSED"


class ResolutionOutcome(str, Enum):
    """How the conflict phase of a backport ended."""

    NO_CONFLICT = "no-conflict"
    AUTO_RESOLVED = "auto-resolved"
    MANUALLY_RESOLVED = "manually-resolved"
    ABORTED = "aborted"


class TargetPullRequestState(BaseModel):
    """A pull request previously opened for this commit on a branch."""

    model_config = ConfigDict(frozen=True)

    branch: str
    state: PullRequestState


class Commit(BaseModel):
    """The source change being ported."""

    model_config = ConfigDict(frozen=True)

    sha: str
    message: str
    author_name: str | None = None
    author_email: str | None = None
    target_pull_request_states: tuple[TargetPullRequestState, ...] = Field(
        default_factory=tuple
    )

    @property
    def first_line(self) -> str:
        return self.message.strip().splitlines()[0] if self.message.strip() else ""

    def merged_target_pull_request(
        self, target_branch: str
    ) -> TargetPullRequestState | None:
        """Return the merged pull request for ``target_branch``, if any."""
        for pr in self.target_pull_request_states:
            if pr.state == PullRequestState.MERGED and pr.branch == target_branch:
                return pr
        return None


class CommitAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str


class ConflictingFile(BaseModel):
    """One file with conflict markers, as absolute and repo-relative path."""

    model_config = ConfigDict(frozen=True)

    absolute: str
    relative: str


class ConflictSnapshot(BaseModel):
    """Result of one working-tree query. Never cached between rounds."""

    conflicting_files: list[ConflictingFile] = Field(default_factory=list)
    unstaged_files: list[str] = Field(default_factory=list)

    @property
    def absolute_conflicts(self) -> list[str]:
        return [f.absolute for f in self.conflicting_files]

    @property
    def extra_unstaged(self) -> list[str]:
        """Unstaged files that are not also conflicting, in order."""
        conflicting = set(self.absolute_conflicts)
        return [f for f in self.unstaged_files if f not in conflicting]

    @property
    def is_settled(self) -> bool:
        return not self.conflicting_files and not self.extra_unstaged


class CherrypickResult(BaseModel):
    """What the apply primitive reports back."""

    conflicting_files: list[ConflictingFile] = Field(default_factory=list)
    unstaged_files: list[str] = Field(default_factory=list)
    needs_resolving: bool = False

    @property
    def snapshot(self) -> ConflictSnapshot:
        return ConflictSnapshot(
            conflicting_files=self.conflicting_files,
            unstaged_files=self.unstaged_files,
        )


class CommitHint(BaseModel):
    """A related commit that has not been ported to the target yet."""

    sha: str
    subject: str

    @property
    def formatted(self) -> str:
        return f" - {self.subject} ({self.sha[:8]})"


def get_commit_author(config, commit: Commit) -> CommitAuthor:
    """Pick the author for the backported commit.

    The configured author wins when ``git.reset_author`` is set or the
    source commit carries no author of its own.

    Args:
        config: Config with a ``git`` section
        commit: Source commit

    Returns:
        CommitAuthor to attribute the new commit to
    """
    git = config.git
    if git.reset_author or not (commit.author_name and commit.author_email):
        return CommitAuthor(name=git.author_name, email=git.author_email)
    return CommitAuthor(name=commit.author_name, email=commit.author_email)


__all__ = [
    "MAX_RETRIES",
    "MAX_DISPLAYED_CONFLICTS",
    "PullRequestState",
    "ResolutionOutcome",
    "TargetPullRequestState",
    "Commit",
    "CommitAuthor",
    "ConflictingFile",
    "ConflictSnapshot",
    "CherrypickResult",
    "CommitHint",
    "get_commit_author",
]
