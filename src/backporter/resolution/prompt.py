"""Blocking yes/no confirmation from the user."""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

YES = {"", "y", "yes"}
NO = {"n", "no"}


@runtime_checkable
class Prompter(Protocol):
    async def confirm(self, text: str) -> bool:
        """Show ``text`` and wait for the user to accept or decline."""
        ...


class ConsolePrompter:
    """Prompt on the terminal. ENTER (or y) accepts, n declines.

    Reading stdin happens in a worker thread so the event loop is not
    blocked; the call still waits as long as the user takes.
    """

    def __init__(self, input_func=input, output_func=print):
        self.input = input_func
        self.output = output_func

    def _ask(self, text: str) -> bool:
        self.output(text)
        while True:
            try:
                answer = self.input("(Y/n) ").strip().lower()
            except EOFError:
                return False
            if answer in YES:
                return True
            if answer in NO:
                return False
            self.output("Please answer y or n.")

    async def confirm(self, text: str) -> bool:
        return await asyncio.to_thread(self._ask, text)
