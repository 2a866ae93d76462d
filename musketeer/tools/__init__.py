"""Tool dispatch: built-in sandboxed tools and external MCP tools."""

from musketeer.tools.builtin import AWAITING_INPUT_PREFIX, register_builtin_tools
from musketeer.tools.gateway import ExternalToolGateway, ServerSpec
from musketeer.tools.registry import (
    ToolArgumentError,
    ToolContext,
    ToolRegistry,
    ToolSpec,
)
from musketeer.tools.sandbox import ACCESS_DENIED_MSG, SandboxViolation, resolve_sandbox_path

__all__ = [
    "ACCESS_DENIED_MSG",
    "AWAITING_INPUT_PREFIX",
    "ExternalToolGateway",
    "SandboxViolation",
    "ServerSpec",
    "ToolArgumentError",
    "ToolContext",
    "ToolRegistry",
    "ToolSpec",
    "register_builtin_tools",
    "resolve_sandbox_path",
]
