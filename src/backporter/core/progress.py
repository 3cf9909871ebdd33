"""Progress reporting for long-running steps."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from backporter.core.log import logger


@runtime_checkable
class Spinner(Protocol):
    """One step: reported as succeeded or failed, possibly more than once."""

    text: str

    def succeed(self) -> None:
        ...

    def fail(self) -> None:
        ...


@runtime_checkable
class Progress(Protocol):
    """Starts steps; each step reports its own outcome."""

    def start(self, text: str) -> Spinner:
        ...


class LogSpinner:
    """A step reported through the logger.

    A cherry-pick is failed when it conflicts and succeeded once the
    conflicts are resolved and committed, so both may be reported.
    """

    def __init__(self, text: str):
        self.text = text
        logger.info(f"{text}...")

    def succeed(self) -> None:
        logger.info(f"✔ {self.text}")

    def fail(self) -> None:
        logger.error(f"✖ {self.text}")


class LogProgress:
    """Progress reported through the logger."""

    def start(self, text: str) -> LogSpinner:
        return LogSpinner(text)
