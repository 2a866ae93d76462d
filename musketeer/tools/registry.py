"""Tool registry: named capabilities the agent loop can invoke.

Built-in tools carry a pydantic argument model; arguments coming from the
model are validated before the handler runs. Tools discovered by an
ExternalToolGateway are merged into the same lookup surface.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


@dataclass(frozen=True)
class ToolContext:
    """Execution context handed to every tool call."""

    workspace_root: Path
    agent_id: str


class ToolArgumentError(ValueError):
    """Arguments supplied for a tool do not match its argument model."""

    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")
        self.tool_name = tool_name
        self.detail = detail


def schema_from_model(model: type[BaseModel]) -> dict[str, dict[str, Any]]:
    """Structural schema (field -> {type, required}) for LLM-facing docs."""
    schema: dict[str, dict[str, Any]] = {}
    for name, info in model.model_fields.items():
        entry: dict[str, Any] = {
            "type": _JSON_TYPES.get(info.annotation, "string"),
            "required": info.is_required(),
        }
        if info.description:
            entry["description"] = info.description
        schema[name] = entry
    return schema


def schema_from_json_schema(json_schema: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Flatten a JSON Schema object (as sent by MCP servers) to field -> {type, required}."""
    if not isinstance(json_schema, dict):
        return {}
    required = set(json_schema.get("required") or [])
    schema: dict[str, dict[str, Any]] = {}
    for name, prop in (json_schema.get("properties") or {}).items():
        prop = prop if isinstance(prop, dict) else {}
        entry: dict[str, Any] = {
            "type": prop.get("type", "string"),
            "required": name in required,
        }
        if prop.get("description"):
            entry["description"] = prop["description"]
        schema[name] = entry
    return schema


ToolHandler = Callable[[Any, ToolContext], Awaitable[str]]


@dataclass
class ToolSpec:
    """A named tool: description, argument schema and async handler returning text."""

    name: str
    description: str
    handler: ToolHandler
    args_model: type[BaseModel] | None = None
    schema: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.args_model is not None and not self.schema:
            self.schema = schema_from_model(self.args_model)

    def validate(self, args: Any) -> Any:
        """Return handler-ready arguments or raise ToolArgumentError."""
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise ToolArgumentError(self.name, f"expected an object, got {type(args).__name__}")
        if self.args_model is None:
            return args
        try:
            return self.args_model.model_validate(args)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolArgumentError(self.name, problems) from e

    async def execute(self, args: Any, context: ToolContext) -> str:
        return await self.handler(self.validate(args), context)


class ToolSource(Protocol):
    """Anything that contributes tools to the merged namespace."""

    def get_tool(self, name: str) -> ToolSpec | None: ...
    def list_tools(self) -> list[ToolSpec]: ...


class ToolRegistry:
    """Built-in tools plus the tools of attached sources (external gateways)."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._sources: list[ToolSource] = []

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            logger.warning("tools: replacing existing tool %s", spec.name)
        self._tools[spec.name] = spec

    def attach(self, source: ToolSource) -> None:
        self._sources.append(source)

    def get_tool(self, name: str) -> ToolSpec | None:
        """Built-ins first, then attached sources in attach order."""
        tool = self._tools.get(name)
        if tool is not None:
            return tool
        for source in self._sources:
            tool = source.get_tool(name)
            if tool is not None:
                return tool
        return None

    def list_tools(self) -> list[ToolSpec]:
        tools = list(self._tools.values())
        for source in self._sources:
            tools.extend(source.list_tools())
        return tools

    def describe(self) -> str:
        """One '- name: description' line per tool, for the system prompt."""
        return "\n".join(f"- {t.name}: {t.description}" for t in self.list_tools())
