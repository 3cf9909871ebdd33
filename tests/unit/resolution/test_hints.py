"""Tests for unported-commit hints."""

import asyncio
from unittest.mock import Mock

from backporter.core.model import CommitHint
from backporter.resolution.hints import (
    MAX_HINTS,
    GitHintFinder,
    find_hints_safely,
)
from fakes import StaticHintFinder


def test_formatted_hint():
    hint = CommitHint(sha="0123456789abcdef", subject="Add retry helper")
    assert hint.formatted == " - Add retry helper (01234567)"


def test_git_hint_finder_queries_repository(commit):
    repo = Mock()
    hint = CommitHint(sha="fedcba9876543210", subject="Refactor parser")
    repo.find_unported_commits.return_value = [hint]

    hints = asyncio.run(
        GitHintFinder(repo).find(commit, "7.x", ["src/a.py"])
    )

    assert hints == [hint]
    repo.find_unported_commits.assert_called_once_with(
        commit.sha, "7.x", ["src/a.py"], MAX_HINTS
    )


def test_git_hint_finder_skips_git_without_files(commit):
    repo = Mock()

    assert asyncio.run(GitHintFinder(repo).find(commit, "7.x", [])) == []
    repo.find_unported_commits.assert_not_called()


def test_safe_lookup_swallows_errors(commit):
    finder = StaticHintFinder(error=RuntimeError("boom"))

    hints = asyncio.run(find_hints_safely(finder, commit, "7.x", ["a.py"]))

    assert hints == []
    assert finder.calls == [(commit.sha, "7.x", ["a.py"])]


def test_safe_lookup_without_finder(commit):
    assert asyncio.run(find_hints_safely(None, commit, "7.x", ["a.py"])) == []
