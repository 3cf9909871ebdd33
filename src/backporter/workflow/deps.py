"""Collaborators handed to every workflow node."""

from __future__ import annotations

from dataclasses import dataclass

from backporter.core.progress import Progress
from backporter.git.repository import GitRepository
from backporter.resolution.controller import ConflictResolutionController


@dataclass
class BackportDeps:
    """Per-run dependencies, passed as the graph's ``deps``."""

    repository: GitRepository
    controller: ConflictResolutionController
    progress: Progress
