"""Tests for ConflictResolutionController ordering and outcomes."""

import asyncio
from types import SimpleNamespace

import pytest

from backporter.autofix import NoAutofix
from backporter.core.errors import (
    AbortError,
    MergeConflictError,
    ToolInvocationError,
)
from backporter.core.model import (
    CommitHint,
    ConflictSnapshot,
    ResolutionOutcome,
)
from backporter.resolution.controller import ConflictResolutionController
from fakes import (
    FakeRepository,
    RecordingAutofix,
    ScriptedPrompter,
    StaticHintFinder,
    conflict,
)


def make_config(interactive=True, editor=None):
    return SimpleNamespace(interactive=interactive, editor=editor)


def make_controller(
    repo,
    config=None,
    autofix=None,
    hint_finder=None,
    prompter=None,
    progress=None,
):
    return ConflictResolutionController(
        config or make_config(),
        repo,
        autofix or NoAutofix(),
        hint_finder=hint_finder,
        prompter=prompter or ScriptedPrompter(events=repo.events),
        progress=progress,
    )


def resolve(controller, commit, snapshot, target_branch="7.x"):
    return asyncio.run(controller.resolve(commit, target_branch, snapshot))


@pytest.fixture
def snapshot():
    return ConflictSnapshot(
        conflicting_files=[conflict("src/a.py"), conflict("src/b.py")],
        unstaged_files=["/repo/src/a.py"],
    )


def test_autofix_success_skips_hints_and_prompt(commit, snapshot):
    repo = FakeRepository()
    autofix = RecordingAutofix(result=True, events=repo.events)
    hints = StaticHintFinder(events=repo.events)
    prompter = ScriptedPrompter(events=repo.events)
    controller = make_controller(
        repo, autofix=autofix, hint_finder=hints, prompter=prompter
    )

    outcome = resolve(controller, commit, snapshot)

    assert outcome == ResolutionOutcome.AUTO_RESOLVED
    assert repo.events == ["autofix"]
    assert hints.calls == []
    assert prompter.prompts == []


def test_autofix_receives_absolute_paths(commit, snapshot):
    repo = FakeRepository()
    autofix = RecordingAutofix(result=True)
    controller = make_controller(repo, autofix=autofix)

    resolve(controller, commit, snapshot, target_branch="8.0")

    files, repo_path, target_branch = autofix.calls[0]
    assert files == ["/repo/src/a.py", "/repo/src/b.py"]
    assert str(repo_path) == "/repo"
    assert target_branch == "8.0"


def test_autofix_progress_reported(commit, snapshot, progress):
    repo = FakeRepository()
    controller = make_controller(
        repo,
        config=make_config(interactive=False),
        autofix=RecordingAutofix(result=False),
        progress=progress,
    )

    with pytest.raises(MergeConflictError):
        resolve(controller, commit, snapshot)

    assert progress.calls == [
        ("start", "Attempting to resolve conflicts automatically"),
        ("fail", "Attempting to resolve conflicts automatically"),
    ]


def test_no_autofix_reports_no_progress(commit, snapshot, progress):
    repo = FakeRepository()
    controller = make_controller(
        repo, config=make_config(interactive=False), progress=progress
    )

    with pytest.raises(MergeConflictError):
        resolve(controller, commit, snapshot)

    assert progress.calls == []


def test_non_interactive_raises_merge_conflict(commit, snapshot):
    repo = FakeRepository()
    hint = CommitHint(sha="0123456789abcdef", subject="Rename helper")
    prompter = ScriptedPrompter(events=repo.events)
    controller = make_controller(
        repo,
        config=make_config(interactive=False, editor="code"),
        hint_finder=StaticHintFinder([hint]),
        prompter=prompter,
    )

    with pytest.raises(MergeConflictError) as exc_info:
        resolve(controller, commit, snapshot)

    error = exc_info.value
    assert error.code == "merge-conflict-exception"
    assert error.conflicting_files == ["src/a.py", "src/b.py"]
    assert error.commits_without_backports == [hint]
    assert prompter.prompts == []
    # Neither the editor nor any working-tree query ran
    assert repo.events == []


def test_conflict_list_truncated_to_fifty(commit):
    repo = FakeRepository()
    hints = StaticHintFinder()
    snapshot = ConflictSnapshot(
        conflicting_files=[conflict(f"f{i}.py") for i in range(75)]
    )
    controller = make_controller(
        repo, config=make_config(interactive=False), hint_finder=hints
    )

    with pytest.raises(MergeConflictError) as exc_info:
        resolve(controller, commit, snapshot)

    assert len(exc_info.value.conflicting_files) == 50
    assert exc_info.value.conflicting_files[-1] == "f49.py"
    assert len(hints.calls[0][2]) == 50


def test_hint_failure_is_not_fatal(commit, snapshot):
    repo = FakeRepository()
    controller = make_controller(
        repo,
        config=make_config(interactive=False),
        hint_finder=StaticHintFinder(error=RuntimeError("network down")),
    )

    with pytest.raises(MergeConflictError) as exc_info:
        resolve(controller, commit, snapshot)

    assert exc_info.value.commits_without_backports == []


def test_interactive_order(commit, snapshot):
    """autofix, hints, editor, then prompts; editor runs once."""
    repo = FakeRepository(rounds=[(["src/a.py"], []), ([], [])])
    controller = make_controller(
        repo,
        config=make_config(editor="vim"),
        autofix=RecordingAutofix(result=False, events=repo.events),
        hint_finder=StaticHintFinder(events=repo.events),
    )

    outcome = resolve(controller, commit, snapshot)

    assert outcome == ResolutionOutcome.MANUALLY_RESOLVED
    assert repo.events[:4] == ["autofix", "hints", "editor:vim", "prompt"]
    assert repo.events.count("editor:vim") == 1
    assert repo.events.count("prompt") == 2
    assert controller.retries == 2


def test_interactive_without_editor(commit, snapshot):
    repo = FakeRepository(rounds=[([], [])])
    controller = make_controller(repo)

    assert resolve(controller, commit, snapshot) == (
        ResolutionOutcome.MANUALLY_RESOLVED
    )
    assert not any(e.startswith("editor") for e in repo.events)


def test_editor_failure_propagates(commit, snapshot):
    repo = FakeRepository(
        editor_error=ToolInvocationError("vim /repo", 1)
    )
    prompter = ScriptedPrompter()
    controller = make_controller(
        repo, config=make_config(editor="vim"), prompter=prompter
    )

    with pytest.raises(ToolInvocationError):
        resolve(controller, commit, snapshot)
    assert prompter.prompts == []


def test_abort_propagates(commit, snapshot):
    repo = FakeRepository()
    controller = make_controller(
        repo, prompter=ScriptedPrompter([False])
    )

    with pytest.raises(AbortError):
        resolve(controller, commit, snapshot)


def test_files_beyond_display_cap_still_block(commit):
    """Only 50 are shown, but all 75 must be gone to settle."""
    repo = FakeRepository(rounds=[(["f60.py"], []), ([], [])])
    hints = StaticHintFinder()
    prompter = ScriptedPrompter()
    snapshot = ConflictSnapshot(
        conflicting_files=[conflict(f"f{i}.py") for i in range(75)]
    )
    controller = make_controller(repo, hint_finder=hints, prompter=prompter)

    resolve(controller, commit, snapshot)

    assert len(hints.calls[0][2]) == 50
    assert " ... and 25 more" in prompter.prompts[0]
    # f60 was never displayed in round one but kept the loop going
    assert " - f60.py" in prompter.prompts[1]
    assert controller.retries == 2
