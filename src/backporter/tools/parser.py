"""Parse git conflict markers into structured hunks."""

from __future__ import annotations

from dataclasses import dataclass

OURS_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
SEPARATOR = "======="
THEIRS_MARKER = ">>>>>>>"


@dataclass
class Conflict:
    """One conflict hunk inside a file."""

    ours_content: str
    theirs_content: str
    base_content: str | None
    context_before: list[str]
    context_after: list[str]
    ours_ref: str
    theirs_ref: str
    start_line: int


def _find(lines: list[str], marker: str, start: int, stop_at=None) -> int | None:
    for j in range(start, len(lines)):
        if lines[j].startswith(marker):
            return j
        if stop_at and lines[j].startswith(stop_at):
            return None
    return None


def _strip(lines: list[str]) -> str:
    return "".join(lines).rstrip("\n\r")


def parse(file_content: str, context_lines: int = 10) -> list[Conflict]:
    """Split a file with conflict markers into Conflict hunks.

    Handles both the default ``merge`` style and ``diff3`` style
    (with a ``|||||||`` base section).

    Args:
        file_content: File content, markers included
        context_lines: Lines of context kept before and after each hunk

    Returns:
        Conflicts in file order; empty if the file has no markers

    Raises:
        ValueError: On a hunk without separator or end marker
    """
    lines = file_content.splitlines(keepends=True)
    conflicts = []
    i = 0

    while i < len(lines):
        if not lines[i].startswith(OURS_MARKER):
            i += 1
            continue

        base_idx = _find(lines, BASE_MARKER, i + 1, stop_at=SEPARATOR)
        separator_idx = _find(lines, SEPARATOR, (base_idx or i) + 1)
        if separator_idx is None:
            raise ValueError(
                f"Malformed conflict at line {i + 1}: no separator found"
            )
        end_idx = _find(lines, THEIRS_MARKER, separator_idx + 1)
        if end_idx is None:
            raise ValueError(
                f"Malformed conflict at line {i + 1}: no end marker found"
            )

        ours_stop = base_idx if base_idx is not None else separator_idx
        base = (
            _strip(lines[base_idx + 1:separator_idx])
            if base_idx is not None
            else None
        )

        conflicts.append(Conflict(
            ours_content=_strip(lines[i + 1:ours_stop]),
            theirs_content=_strip(lines[separator_idx + 1:end_idx]),
            base_content=base or None,
            context_before=[
                line.rstrip("\n\r")
                for line in lines[max(0, i - context_lines):i]
            ],
            context_after=[
                line.rstrip("\n\r")
                for line in lines[end_idx + 1:end_idx + 1 + context_lines]
            ],
            ours_ref=lines[i][len(OURS_MARKER):].strip() or "ours",
            theirs_ref=lines[end_idx][len(THEIRS_MARKER):].strip() or "theirs",
            start_line=i + 1,
        ))
        i = end_idx + 1

    return conflicts


def has_conflict_markers(file_content: str) -> bool:
    """True if any line opens or closes a conflict hunk."""
    return any(
        line.startswith((OURS_MARKER, THEIRS_MARKER))
        for line in file_content.splitlines()
    )
