from __future__ import annotations

from typing import Any, Iterable

from llm_switchboard.types.tool import ToolCall, TransformedTool

__all__ = ["ToolNameMapper"]


class ToolNameMapper:
    """Maps provider-visible tool names back to the logical tool and its arguments.

    Lives for one generation call; built by ``SchemaTransformer.transform_all``.
    """

    def __init__(self, tools: Iterable[TransformedTool] = ()) -> None:
        self._by_name: dict[str, TransformedTool] = {}
        self._variants: dict[str, list[str]] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: TransformedTool) -> None:
        self._by_name[tool.name] = tool
        if tool.is_variant:
            self._variants.setdefault(tool.original_name, []).append(tool.name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def is_variant(self, name: str) -> bool:
        tool = self._by_name.get(name)
        return tool is not None and tool.is_variant

    def variants_of(self, original_name: str) -> list[str]:
        return list(self._variants.get(original_name, ()))

    def resolve(self, name: str, arguments: Any) -> tuple[str, Any]:
        """Return the original tool name and the arguments it expects.

        For a variant the discriminator value is put back into the arguments.
        Unknown names pass through unchanged, as do non-dict arguments.
        """
        tool = self._by_name.get(name)
        if tool is None or not tool.is_variant:
            return (tool.original_name if tool else name), arguments
        if not isinstance(arguments, dict):
            return tool.original_name, arguments
        resolved = dict(arguments)
        resolved[tool.discriminator_field] = tool.discriminator_value
        return tool.original_name, resolved

    def resolve_call(self, call: ToolCall) -> ToolCall:
        """The logical call *call* stands for; unchanged calls are returned as is."""
        name, arguments = self.resolve(call.name, call.arguments)
        if name == call.name and arguments is call.arguments:
            return call
        return ToolCall(id=call.id, name=name, arguments=arguments)
