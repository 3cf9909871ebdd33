"""Agent tools for editing conflicted files in the working tree."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from backporter.core.errors import ToolInvocationError
from backporter.tools.parser import has_conflict_markers, parse

# Reads and writes above this many lines need explicit confirmation
LARGE_FILE_LINES = 200


class Workspace:
    """What the autofix agent may touch: one working tree, some files."""

    def __init__(
        self,
        workdir: Path,
        conflict_files: list[str],
        repository=None,
        target_branch: str | None = None,
    ):
        """Initialize workspace.

        Args:
            workdir: Git working tree containing the conflicts
            conflict_files: Conflicted paths relative to workdir
            repository: GitRepository for index stages and staging
            target_branch: Branch the commit is being applied to
        """
        self.workdir = Path(workdir)
        self.conflict_files = conflict_files
        self.repository = repository
        self.target_branch = target_branch
        self.submitted: set[str] = set()

    def resolve_path(self, filepath: str) -> Path:
        """Map an agent-supplied path into the workdir.

        Raises:
            ModelRetry: If the path escapes the working tree
        """
        path = (self.workdir / filepath).resolve()
        if not path.is_relative_to(self.workdir.resolve()):
            raise ModelRetry(
                f"'{filepath}' is outside the repository; use paths "
                f"relative to the repository root."
            )
        return path


def read_file(
    ctx: RunContext[Workspace],
    filepath: str,
    start_line: int = 1,
    num_lines: int = 50,
    confirm_large: bool = False,
) -> str:
    """Read a file with line numbers.

    Args:
        filepath: Path relative to the repository root
        start_line: First line to read (1-indexed)
        num_lines: Number of lines, -1 for the rest of the file
        confirm_large: Required to read more than 200 lines

    Returns:
        "N: content" lines
    """
    path = ctx.deps.resolve_path(filepath)
    if not path.is_file():
        raise ModelRetry(
            f"File '{filepath}' not found. Conflicted files: "
            f"{', '.join(ctx.deps.conflict_files)}"
        )

    try:
        lines = path.read_text().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ModelRetry(f"Failed to read '{filepath}': {e}") from e

    if num_lines == -1:
        selected = lines[start_line - 1:]
    else:
        selected = lines[start_line - 1:start_line - 1 + num_lines]

    if len(selected) > LARGE_FILE_LINES and not confirm_large:
        raise ModelRetry(
            f"'{filepath}' has {len(lines)} lines and you asked for "
            f"{len(selected)}. Use list_conflicts to jump to the hunks, "
            f"or call read_file again with confirm_large=True."
        )

    return "\n".join(
        f"{n}: {line}" for n, line in enumerate(selected, start=start_line)
    )


def write_file(
    ctx: RunContext[Workspace],
    filepath: str,
    content: str,
    confirm_large: bool = False,
) -> str:
    """Replace the full content of a conflicted file.

    Args:
        filepath: Path relative to the repository root
        content: New file content, without conflict markers
        confirm_large: Required to write more than 200 lines

    Returns:
        Confirmation with size
    """
    if filepath not in ctx.deps.conflict_files:
        raise ModelRetry(
            f"Only conflicted files may be written: "
            f"{', '.join(ctx.deps.conflict_files)}"
        )

    line_count = len(content.splitlines())
    if line_count > LARGE_FILE_LINES and not confirm_large:
        raise ModelRetry(
            f"Content has {line_count} lines. If rewriting the whole "
            f"file is really needed, call write_file with "
            f"confirm_large=True."
        )

    path = ctx.deps.resolve_path(filepath)
    try:
        path.write_text(content)
    except OSError as e:
        raise ModelRetry(f"Failed to write '{filepath}': {e}") from e

    return (
        f"Wrote {len(content.encode('utf-8'))} bytes "
        f"({line_count} lines) to {filepath}"
    )


def list_conflicts(ctx: RunContext[Workspace], filepath: str) -> str:
    """Show every conflict hunk in a file with a little context.

    Args:
        filepath: Path relative to the repository root

    Returns:
        Hunks with start line, ours/base/theirs sections
    """
    path = ctx.deps.resolve_path(filepath)
    if not path.is_file():
        raise ModelRetry(f"File '{filepath}' not found.")

    try:
        conflicts = parse(path.read_text(), context_lines=3)
    except ValueError as e:
        raise ModelRetry(f"Could not parse '{filepath}': {e}") from e

    if not conflicts:
        return f"No conflict markers in {filepath}."

    parts = []
    for n, conflict in enumerate(conflicts, start=1):
        section = [
            f"Conflict {n} at line {conflict.start_line}",
            "context before:",
            *conflict.context_before,
            f"ours ({conflict.ours_ref}, target branch):",
            conflict.ours_content,
        ]
        if conflict.base_content is not None:
            section += ["base:", conflict.base_content]
        section += [
            f"theirs ({conflict.theirs_ref}, commit being backported):",
            conflict.theirs_content,
            "context after:",
            *conflict.context_after,
        ]
        parts.append("\n".join(section))
    return "\n\n".join(parts)


def show_version(ctx: RunContext[Workspace], filepath: str, stage: int) -> str:
    """Show one side of a conflict from the git index.

    Args:
        filepath: Path relative to the repository root
        stage: 1 = common ancestor, 2 = ours (target branch),
            3 = theirs (commit being backported)

    Returns:
        File content at that stage
    """
    if stage not in (1, 2, 3):
        raise ModelRetry("stage must be 1 (base), 2 (ours) or 3 (theirs)")
    if ctx.deps.repository is None:
        raise ModelRetry("Index stages are not available in this workspace")

    try:
        return ctx.deps.repository.show_stage(filepath, stage)
    except ToolInvocationError as e:
        raise ModelRetry(
            f"git has no stage {stage} for '{filepath}': {e.stderr.strip()}"
        ) from e


def submit_resolution(
    ctx: RunContext[Workspace],
    filepath: str,
    skip_syntax_check: bool = False,
) -> str:
    """Validate a resolved file and stage it.

    Checks that no conflict markers remain and that Python, JSON and
    YAML files still parse.

    Args:
        filepath: Path relative to the repository root
        skip_syntax_check: Skip the syntax validation

    Returns:
        Confirmation message
    """
    path = ctx.deps.resolve_path(filepath)
    if not path.is_file():
        raise ModelRetry(f"File '{filepath}' not found.")

    content = path.read_text()
    if has_conflict_markers(content):
        raise ModelRetry(
            f"'{filepath}' still contains conflict markers. Remove every "
            f"<<<<<<< / ======= / >>>>>>> block before submitting."
        )

    if not skip_syntax_check:
        _check_syntax(filepath, content)

    if ctx.deps.repository is not None:
        ctx.deps.repository.stage_file(filepath)
    ctx.deps.submitted.add(filepath)

    return (
        f"Resolution accepted for {filepath}: "
        f"{len(content.splitlines())} lines, staged."
    )


def _check_syntax(filepath: str, content: str) -> None:
    if filepath.endswith('.py'):
        try:
            compile(content, filepath, 'exec')
        except SyntaxError as e:
            raise ModelRetry(
                f"Python syntax error at line {e.lineno}: {e.msg}"
            ) from e
    elif filepath.endswith('.json'):
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            raise ModelRetry(
                f"JSON syntax error at line {e.lineno}: {e.msg}"
            ) from e
    elif filepath.endswith(('.yaml', '.yml')):
        import yaml
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ModelRetry(f"YAML syntax error: {e}") from e
