from __future__ import annotations

import inspect
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from llm_switchboard.errors import ToolExecutionError

__all__ = ["ToolExecutor", "FunctionToolExecutor"]


@runtime_checkable
class ToolExecutor(Protocol):
    """Runs tools on behalf of the orchestrator.

    Called with the logical tool name (never a synthetic variant name) and the
    parsed arguments. May be invoked concurrently. Failures are reported by
    raising; ``ToolExecutionError`` is preferred.
    """

    async def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        ...


class FunctionToolExecutor:
    """ToolExecutor backed by plain sync or async callables keyed by tool name.

    Arguments are passed as keyword arguments.
    """

    def __init__(self, functions: Mapping[str, Callable[..., Any]]) -> None:
        self.functions = dict(functions)

    async def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        try:
            function = self.functions[name]
        except KeyError:
            raise ToolExecutionError(f"Unknown tool {name!r}", tool_name=name) from None

        try:
            value = function(**arguments)
            if inspect.isawaitable(value):
                value = await value
        except ToolExecutionError:
            raise
        except Exception as exc:
            raise ToolExecutionError(
                f"{type(exc).__name__}: {exc}", tool_name=name
            ) from exc
        return value
