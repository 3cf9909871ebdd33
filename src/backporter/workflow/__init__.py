"""Backport workflow: cherry-pick, resolve, commit."""

from backporter.workflow.backport import backport_one_commit
from backporter.workflow.graph import create_workflow

__all__ = ["backport_one_commit", "create_workflow"]
