"""Conflict resolution: autofix, hints and the interactive loop."""

from backporter.resolution.controller import ConflictResolutionController
from backporter.resolution.hints import GitHintFinder, HintFinder, find_hints_safely
from backporter.resolution.loop import InteractiveResolutionLoop, render_round
from backporter.resolution.prompt import ConsolePrompter, Prompter

__all__ = [
    "ConflictResolutionController",
    "GitHintFinder",
    "HintFinder",
    "find_hints_safely",
    "InteractiveResolutionLoop",
    "render_round",
    "ConsolePrompter",
    "Prompter",
]
