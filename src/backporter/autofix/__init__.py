"""Automatic conflict resolution strategies."""

from backporter.autofix.base import Autofix, CallbackAutofix, NoAutofix
from backporter.autofix.command import CommandAutofix


def build_autofix(config, repository=None) -> Autofix:
    """Create the strategy selected by ``config.autofix.kind``.

    Args:
        config: Config with autofix and llm sections
        repository: GitRepository handed to strategies that need it

    Returns:
        An Autofix; NoAutofix when nothing is configured

    Raises:
        ValueError: If kind=command has no command
    """
    kind = config.autofix.kind
    if kind == "command":
        if not config.autofix.command:
            raise ValueError("autofix.kind is 'command' but autofix.command is empty")
        return CommandAutofix(
            config.autofix.command, timeout=config.autofix.timeout
        )
    if kind == "llm":
        # Imported lazily; pulls in pydantic-ai and the agent tools
        from backporter.autofix.llm import LLMAutofix
        return LLMAutofix(config.llm, config, repository=repository)
    return NoAutofix()


__all__ = [
    "Autofix",
    "NoAutofix",
    "CallbackAutofix",
    "CommandAutofix",
    "build_autofix",
]
