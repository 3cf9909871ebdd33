"""Tools given to the autofix agent."""

import time
from functools import wraps

from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from backporter.core.log import logger
from backporter.tools.workspace import (
    Workspace,
    list_conflicts,
    read_file,
    show_version,
    submit_resolution,
    write_file,
)


def _log_tool_execution(func):
    """Log each tool call: arguments, outcome and duration.

    ModelRetry is the agent's feedback channel and is logged as a
    warning; anything else is an error. Both are re-raised.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        tool_name = func.__name__
        start = time.monotonic()
        context = {}
        if args and isinstance(args[0], RunContext):
            workspace = getattr(args[0], "deps", None)
            if isinstance(workspace, Workspace):
                context = {
                    'workdir': str(workspace.workdir),
                    'conflict_files': workspace.conflict_files,
                }

        logger.debug(
            f"Tool '{tool_name}' invoked",
            tool_name=tool_name,
            args=args[1:],
            kwargs=kwargs,
            **context,
        )

        try:
            result = func(*args, **kwargs)
        except ModelRetry as e:
            logger.warning(
                f"Tool '{tool_name}' asked the model to retry",
                tool_name=tool_name,
                retry_message=str(e),
                elapsed_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        except Exception as e:
            logger.error(
                f"Tool '{tool_name}' failed",
                tool_name=tool_name,
                exception_type=type(e).__name__,
                exception_message=str(e),
                elapsed_ms=round((time.monotonic() - start) * 1000, 2),
                _exc_info=e,
            )
            raise

        logger.debug(
            f"Tool '{tool_name}' succeeded",
            tool_name=tool_name,
            elapsed_ms=round((time.monotonic() - start) * 1000, 2),
            result_preview=str(result)[:200],
        )
        logger.trace(f"Tool '{tool_name}' full result:\n{result}")
        return result

    return wrapper


_raw_tools = [
    read_file,
    write_file,
    list_conflicts,
    show_version,
    submit_resolution,
]

# For Agent(tools=[...]); every tool logs its own execution
workspace_tools = [_log_tool_execution(tool) for tool in _raw_tools]

__all__ = [
    "Workspace",
    "workspace_tools",
    "read_file",
    "write_file",
    "list_conflicts",
    "show_version",
    "submit_resolution",
]
