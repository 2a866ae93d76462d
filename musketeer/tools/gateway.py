"""External tool gateway: MCP servers launched over stdio, their tools namespaced as <server>__<tool>."""

import logging
import os
from pathlib import Path
from typing import Any, Callable

import yaml
from agents.mcp import MCPServerStdio
from pydantic import BaseModel, Field, ValidationError

from musketeer.tools.registry import ToolContext, ToolSpec, schema_from_json_schema

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "__"


class ServerSpec(BaseModel):
    """Launch parameters of one MCP server."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


def _serialize_result(result: Any) -> str:
    if hasattr(result, "model_dump_json"):
        return result.model_dump_json(exclude_none=True)
    return str(result)


def _build_stdio_server(name: str, spec: ServerSpec) -> Any:
    params: dict[str, Any] = {
        "command": spec.command,
        "args": spec.args,
        "env": {**os.environ, **spec.env},
    }
    return MCPServerStdio(name=name, params=params, cache_tools_list=True)


class ExternalToolGateway:
    """Connects to configured MCP servers and exposes their tools.

    A server that fails to start or to list its tools is logged and skipped;
    the remaining servers stay available.
    """

    def __init__(
        self, server_factory: Callable[[str, ServerSpec], Any] = _build_stdio_server
    ) -> None:
        self._server_factory = server_factory
        self._servers: dict[str, Any] = {}
        self._tools: dict[str, ToolSpec] = {}

    @property
    def server_names(self) -> list[str]:
        return list(self._servers)

    async def load_config(self, config_path: Path) -> int:
        """Connect every server in an {"mcpServers": {...}} file. Returns servers connected."""
        if not config_path.exists():
            logger.debug("mcp: no config at %s", config_path)
            return 0
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.warning("mcp: failed to load config %s: %s", config_path, e)
            return 0
        servers = data.get("mcpServers") if isinstance(data, dict) else None
        if not isinstance(servers, dict):
            logger.warning("mcp: config %s has no mcpServers mapping", config_path)
            return 0

        connected = 0
        for name, entry in servers.items():
            try:
                spec = ServerSpec.model_validate(entry)
            except ValidationError as e:
                logger.warning("mcp: skipping server %s: invalid entry: %s", name, e)
                continue
            if await self.connect(str(name), spec):
                connected += 1
        return connected

    async def connect(self, name: str, spec: ServerSpec) -> bool:
        """Launch one server and register its tools. False on failure."""
        logger.info("mcp: connecting to server %s (%s)", name, spec.command)
        server = None
        try:
            server = self._server_factory(name, spec)
            await server.connect()
            discovered = await server.list_tools()
        except Exception as e:
            logger.exception("mcp: failed to connect to %s: %s", name, e)
            if server is not None:
                await self._cleanup(name, server)
            return False

        self._servers[name] = server
        for mcp_tool in discovered:
            tool_name = f"{name}{NAMESPACE_SEPARATOR}{mcp_tool.name}"
            self._tools[tool_name] = ToolSpec(
                name=tool_name,
                description=getattr(mcp_tool, "description", None) or "",
                handler=self._make_handler(server, mcp_tool.name),
                schema=schema_from_json_schema(getattr(mcp_tool, "inputSchema", None)),
            )
            logger.info("mcp: discovered tool %s", tool_name)
        return True

    def _make_handler(self, server: Any, remote_name: str):
        async def call(args: dict[str, Any], ctx: ToolContext) -> str:
            try:
                result = await server.call_tool(remote_name, args)
            except Exception as e:
                logger.warning("mcp: call %s failed: %s", remote_name, e)
                return f"Error calling {remote_name}: {e}"
            return _serialize_result(result)

        return call

    def get_tool(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    async def _cleanup(self, name: str, server: Any) -> None:
        try:
            await server.cleanup()
        except Exception as e:
            logger.debug("mcp: cleanup of %s failed: %s", name, e)

    async def close(self) -> None:
        for name, server in list(self._servers.items()):
            await self._cleanup(name, server)
        self._servers.clear()
        self._tools.clear()
