"""Tests for the autofix agent's workspace tools."""

from pathlib import Path
from unittest.mock import Mock

import pytest
from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from backporter.core.errors import ToolInvocationError
from backporter.tools import workspace_tools
from backporter.tools.workspace import (
    LARGE_FILE_LINES,
    Workspace,
    list_conflicts,
    read_file,
    show_version,
    submit_resolution,
    write_file,
)

CONFLICTED = (
    "before\n<<<<<<< HEAD\nours\n=======\ntheirs\n>>>>>>> abc123\nafter\n"
)


@pytest.fixture
def repository():
    return Mock()


@pytest.fixture
def workspace(tmp_path, repository):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.py").write_text(CONFLICTED)
    (tmp_path / "README.md").write_text("line 1\nline 2\nline 3\n")
    return Workspace(
        workdir=tmp_path,
        conflict_files=["src/a.py"],
        repository=repository,
        target_branch="7.x",
    )


@pytest.fixture
def ctx(workspace):
    ctx = Mock(spec=RunContext)
    ctx.deps = workspace
    return ctx


def test_workspace_defaults():
    workspace = Workspace(workdir=Path("/tmp/repo"), conflict_files=["a.py"])

    assert workspace.repository is None
    assert workspace.target_branch is None
    assert workspace.submitted == set()


def test_paths_cannot_escape(ctx):
    with pytest.raises(ModelRetry, match="outside the repository"):
        read_file(ctx, "../../etc/passwd")


def test_read_file_numbers_lines(ctx):
    output = read_file(ctx, "README.md", start_line=2, num_lines=2)

    assert output == "2: line 2\n3: line 3"


def test_read_missing_file_lists_conflicts(ctx):
    with pytest.raises(ModelRetry, match="src/a.py"):
        read_file(ctx, "missing.py")


def test_read_large_needs_confirmation(ctx, workspace):
    big = "\n".join(f"row {i}" for i in range(LARGE_FILE_LINES + 10))
    (workspace.workdir / "big.txt").write_text(big)

    with pytest.raises(ModelRetry, match="confirm_large"):
        read_file(ctx, "big.txt", num_lines=-1)

    output = read_file(ctx, "big.txt", num_lines=-1, confirm_large=True)
    assert output.endswith(f"row {LARGE_FILE_LINES + 9}")


def test_write_only_conflicted_files(ctx, workspace):
    with pytest.raises(ModelRetry, match="Only conflicted files"):
        write_file(ctx, "README.md", "changed\n")

    result = write_file(ctx, "src/a.py", "before\nmerged\nafter\n")

    assert "3 lines" in result
    assert (workspace.workdir / "src" / "a.py").read_text() == (
        "before\nmerged\nafter\n"
    )


def test_list_conflicts(ctx):
    output = list_conflicts(ctx, "src/a.py")

    assert "Conflict 1 at line 2" in output
    assert "ours (HEAD, target branch):\nours" in output
    assert "theirs (abc123, commit being backported):\ntheirs" in output


def test_list_conflicts_clean_file(ctx):
    assert list_conflicts(ctx, "README.md") == "No conflict markers in README.md."


def test_show_version(ctx, repository):
    repository.show_stage.return_value = "theirs content\n"

    assert show_version(ctx, "src/a.py", 3) == "theirs content\n"
    repository.show_stage.assert_called_once_with("src/a.py", 3)


def test_show_version_bad_stage(ctx):
    with pytest.raises(ModelRetry, match="stage must be"):
        show_version(ctx, "src/a.py", 4)


def test_show_version_missing_stage(ctx, repository):
    repository.show_stage.side_effect = ToolInvocationError(
        "git show :1:src/a.py", 128, stderr="fatal: path not in index"
    )

    with pytest.raises(ModelRetry, match="no stage 1"):
        show_version(ctx, "src/a.py", 1)


def test_submit_rejects_markers(ctx, workspace, repository):
    with pytest.raises(ModelRetry, match="conflict markers"):
        submit_resolution(ctx, "src/a.py")

    repository.stage_file.assert_not_called()
    assert workspace.submitted == set()


def test_submit_checks_python_syntax(ctx, workspace):
    (workspace.workdir / "src" / "a.py").write_text("def broken(:\n")

    with pytest.raises(ModelRetry, match="Python syntax error"):
        submit_resolution(ctx, "src/a.py")

    assert "Resolution accepted" in submit_resolution(
        ctx, "src/a.py", skip_syntax_check=True
    )


def test_submit_stages_file(ctx, workspace, repository):
    (workspace.workdir / "src" / "a.py").write_text("value = 1\n")

    result = submit_resolution(ctx, "src/a.py")

    assert "staged" in result
    repository.stage_file.assert_called_once_with("src/a.py")
    assert workspace.submitted == {"src/a.py"}


def test_submit_checks_json(ctx, workspace):
    workspace.conflict_files.append("package.json")
    (workspace.workdir / "package.json").write_text('{"version": ')

    with pytest.raises(ModelRetry, match="JSON syntax error"):
        submit_resolution(ctx, "package.json")


def test_wrapped_tools_keep_names_and_errors(ctx):
    names = [tool.__name__ for tool in workspace_tools]
    assert names == [
        "read_file",
        "write_file",
        "list_conflicts",
        "show_version",
        "submit_resolution",
    ]

    wrapped_read = workspace_tools[0]
    assert wrapped_read(ctx, "README.md", num_lines=1) == "1: line 1"
    with pytest.raises(ModelRetry):
        wrapped_read(ctx, "missing.py")
