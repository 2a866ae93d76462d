"""Tests for built-in tools: sandbox enforcement, file I/O, commands, argument validation."""

import asyncio
import sys
from pathlib import Path

import pytest

from musketeer.tools import (
    ACCESS_DENIED_MSG,
    SandboxViolation,
    ToolArgumentError,
    ToolContext,
    ToolRegistry,
    ToolSpec,
    register_builtin_tools,
    resolve_sandbox_path,
)
from musketeer.tools.builtin import make_run_command


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "agent-1"
    root.mkdir()
    return root


@pytest.fixture
def registry() -> ToolRegistry:
    reg = ToolRegistry()
    register_builtin_tools(reg, command_timeout=5)
    return reg


@pytest.fixture
def ctx(workspace: Path) -> ToolContext:
    return ToolContext(workspace_root=workspace, agent_id="agent-1")


class TestSandboxResolution:
    @pytest.mark.parametrize(
        "path",
        ["../secret.txt", "../../etc/passwd", "a/../../b", "/etc/passwd", "sub/../../agent-2/x"],
    )
    def test_escape_rejected(self, workspace: Path, path: str) -> None:
        with pytest.raises(SandboxViolation, match="Access denied"):
            resolve_sandbox_path(path, workspace)

    def test_sibling_with_common_prefix_rejected(self, workspace: Path) -> None:
        sibling = workspace.parent / (workspace.name + "-evil")
        sibling.mkdir()
        with pytest.raises(SandboxViolation):
            resolve_sandbox_path(f"../{sibling.name}/x", workspace)

    def test_subdirectory_named_like_root_is_kept(self, workspace: Path) -> None:
        assert resolve_sandbox_path("agent-1/notes.md", workspace) == (
            workspace / "agent-1" / "notes.md"
        ).resolve()

    def test_absolute_path_inside_workspace_allowed(self, workspace: Path) -> None:
        inside = workspace.resolve() / "a.txt"
        assert resolve_sandbox_path(str(inside), workspace) == inside

    def test_ensure_parent(self, workspace: Path) -> None:
        target = resolve_sandbox_path("a/b/c.txt", workspace, ensure_parent=True)
        assert target.parent.is_dir()


class TestFileTools:
    @pytest.mark.asyncio
    async def test_write_then_read(self, registry: ToolRegistry, ctx: ToolContext) -> None:
        out = await registry.get_tool("write_file").execute(
            {"path": "docs/readme.md", "content": "hello"}, ctx
        )
        assert out == "Successfully wrote to docs/readme.md"
        assert (ctx.workspace_root / "docs" / "readme.md").read_text() == "hello"
        content = await registry.get_tool("read_file").execute({"path": "docs/readme.md"}, ctx)
        assert content == "hello"

    @pytest.mark.asyncio
    async def test_read_outside_workspace_denied(
        self, registry: ToolRegistry, ctx: ToolContext, tmp_path: Path
    ) -> None:
        (tmp_path / "secret.txt").write_text("top secret")
        out = await registry.get_tool("read_file").execute({"path": "../secret.txt"}, ctx)
        assert out.startswith(ACCESS_DENIED_MSG)
        assert "top secret" not in out

    @pytest.mark.asyncio
    async def test_write_outside_workspace_denied(
        self, registry: ToolRegistry, ctx: ToolContext, tmp_path: Path
    ) -> None:
        out = await registry.get_tool("write_file").execute(
            {"path": "../escaped.txt", "content": "x"}, ctx
        )
        assert out.startswith(ACCESS_DENIED_MSG)
        assert not (tmp_path / "escaped.txt").exists()

    @pytest.mark.asyncio
    async def test_read_missing_file_is_text_error(
        self, registry: ToolRegistry, ctx: ToolContext
    ) -> None:
        out = await registry.get_tool("read_file").execute({"path": "nope.txt"}, ctx)
        assert out.startswith("Error reading file")

    @pytest.mark.asyncio
    async def test_write_keeps_directory_named_like_workspace(
        self, registry: ToolRegistry, ctx: ToolContext
    ) -> None:
        out = await registry.get_tool("write_file").execute(
            {"path": "agent-1/notes.txt", "content": "x"}, ctx
        )
        assert out == "Successfully wrote to agent-1/notes.txt"
        assert (ctx.workspace_root / "agent-1" / "notes.txt").read_text() == "x"
        assert not (ctx.workspace_root / "notes.txt").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("tool", "args", "prefix"),
        [
            ("read_file", {"path": "a\x00b"}, "Error reading file"),
            ("write_file", {"path": "a\x00b", "content": "x"}, "Error writing file"),
            ("run_command", {"command": "echo a\x00b"}, "Error executing command"),
        ],
    )
    async def test_nul_byte_reported_as_text(
        self, registry: ToolRegistry, ctx: ToolContext, tool: str, args: dict, prefix: str
    ) -> None:
        out = await registry.get_tool(tool).execute(args, ctx)
        assert out.startswith(prefix)


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_runs_in_workspace(self, registry: ToolRegistry, ctx: ToolContext) -> None:
        (ctx.workspace_root / "marker.txt").write_text("x")
        out = await registry.get_tool("run_command").execute({"command": "ls"}, ctx)
        assert "marker.txt" in out

    @pytest.mark.asyncio
    async def test_nonzero_exit_reported_as_text(
        self, registry: ToolRegistry, ctx: ToolContext
    ) -> None:
        out = await registry.get_tool("run_command").execute(
            {"command": f'{sys.executable} -c "import sys; sys.stderr.write(\'boom\'); sys.exit(3)"'},
            ctx,
        )
        assert out.startswith("Error executing command (exit 3)")
        assert "boom" in out

    @pytest.mark.asyncio
    async def test_stderr_returned_when_stdout_empty(
        self, registry: ToolRegistry, ctx: ToolContext
    ) -> None:
        out = await registry.get_tool("run_command").execute(
            {"command": f'{sys.executable} -c "import sys; sys.stderr.write(\'warn\')"'}, ctx
        )
        assert out == "warn"

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")
    async def test_timeout_kills_spawned_children(self, ctx: ToolContext) -> None:
        tool = make_run_command(timeout=0.5)
        out = await asyncio.wait_for(
            tool.execute({"command": "sleep 30; echo late"}, ctx), timeout=10
        )
        assert out == "Error executing command: timed out after 0.5s"


class TestRegistry:
    def test_builtins_listed(self, registry: ToolRegistry) -> None:
        names = [t.name for t in registry.list_tools()]
        assert names == ["read_file", "write_file", "run_command", "ask_user"]
        assert "- ask_user: Pause the loop" in registry.describe()

    def test_schema_derived_from_model(self, registry: ToolRegistry) -> None:
        schema = registry.get_tool("write_file").schema
        assert schema["path"]["type"] == "string"
        assert schema["path"]["required"] is True
        assert schema["content"]["required"] is True

    @pytest.mark.asyncio
    async def test_ask_user_marker(self, registry: ToolRegistry, ctx: ToolContext) -> None:
        out = await registry.get_tool("ask_user").execute({"question": "Which?"}, ctx)
        assert out == "AWAITING_INPUT: Which?"

    @pytest.mark.asyncio
    async def test_missing_argument_raises(self, registry: ToolRegistry, ctx: ToolContext) -> None:
        with pytest.raises(ToolArgumentError, match="write_file"):
            await registry.get_tool("write_file").execute({"path": "x"}, ctx)

    @pytest.mark.asyncio
    async def test_non_object_arguments_raise(
        self, registry: ToolRegistry, ctx: ToolContext
    ) -> None:
        with pytest.raises(ToolArgumentError):
            await registry.get_tool("read_file").execute(["x"], ctx)

    def test_attached_source_consulted_after_builtins(self, registry: ToolRegistry) -> None:
        async def handler(args, ctx) -> str:
            return "remote"

        shadow = ToolSpec(name="read_file", description="remote read", handler=handler)
        extra = ToolSpec(name="srv__ping", description="ping", handler=handler)

        class Source:
            def get_tool(self, name: str):
                return {"read_file": shadow, "srv__ping": extra}.get(name)

            def list_tools(self):
                return [shadow, extra]

        registry.attach(Source())
        assert registry.get_tool("read_file").description == "Read contents of a file"
        assert registry.get_tool("srv__ping") is extra
        assert registry.get_tool("nope") is None
