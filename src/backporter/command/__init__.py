"""CLI command modules for backporter."""

from backporter.command.backport import BackportCommand

__all__ = ["BackportCommand"]
