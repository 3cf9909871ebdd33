"""Base classes for configuration and runtime state models.

Everything that owns a resource (log files, span processors) lives in
a pydantic model that derives from BaseCloseable, so a single close()
on the root State walks down and releases it all:

    State.close() -> Config.close() -> Logger.close() -> Sink.close()

Kept apart from config.py so that log.py can import it without a
cycle.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Anything with a close() method."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable children.

    Usable as a context manager. A failing child does not stop the
    remaining children from being closed; the failure is reported on
    stderr because the logger may be the thing being closed.
    """

    def close(self):
        """Close every field value implementing Closeable."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None or not isinstance(child, Closeable):
                continue
            try:
                child.close()
            except Exception as e:
                print(
                    f"Warning: Error closing {field_name}: {e}",
                    file=sys.stderr,
                )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/CLI)."""
    pass


class BaseState(BaseCloseable):
    """Marker base for runtime state mutated while backporting."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
