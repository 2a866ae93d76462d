"""Built-in tools: sandboxed file access, shell commands and the ask_user marker.

Every tool returns text. Failures (sandbox violations, I/O errors, non-zero
exit codes) are reported in-band so the model can read them next cycle.
"""

import asyncio
import logging
import os
import signal

from pydantic import BaseModel, Field

from musketeer.tools.registry import ToolContext, ToolRegistry, ToolSpec
from musketeer.tools.sandbox import SandboxViolation, resolve_sandbox_path

logger = logging.getLogger(__name__)

AWAITING_INPUT_PREFIX = "AWAITING_INPUT:"
DEFAULT_COMMAND_TIMEOUT = 60.0


class ReadFileArgs(BaseModel):
    path: str = Field(description="File path relative to the workspace")


class WriteFileArgs(BaseModel):
    path: str = Field(description="File path relative to the workspace")
    content: str = Field(description="Full file content to write")


class RunCommandArgs(BaseModel):
    command: str = Field(description="Shell command, run in the workspace directory")


class AskUserArgs(BaseModel):
    question: str = Field(description="The question to ask the user")


async def read_file(args: ReadFileArgs, ctx: ToolContext) -> str:
    try:
        target = resolve_sandbox_path(args.path, ctx.workspace_root)
        if not target.is_file():
            return f"Error reading file: not a file or does not exist: {args.path}"
        return target.read_text(encoding="utf-8")
    except SandboxViolation as e:
        return str(e)
    except (OSError, ValueError) as e:
        # ValueError covers UnicodeDecodeError and NUL bytes in the path
        return f"Error reading file: {e}"


async def write_file(args: WriteFileArgs, ctx: ToolContext) -> str:
    try:
        target = resolve_sandbox_path(args.path, ctx.workspace_root, ensure_parent=True)
        target.write_text(args.content, encoding="utf-8")
        return f"Successfully wrote to {target.relative_to(ctx.workspace_root.resolve()).as_posix()}"
    except SandboxViolation as e:
        return str(e)
    except (OSError, ValueError) as e:
        return f"Error writing file: {e}"


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it spawned; the shell leads its own session."""
    if not hasattr(os, "killpg"):
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def make_run_command(timeout: float = DEFAULT_COMMAND_TIMEOUT) -> ToolSpec:
    """run_command tool with the given timeout (seconds)."""

    async def run_command(args: RunCommandArgs, ctx: ToolContext) -> str:
        cwd = ctx.workspace_root.resolve()
        try:
            proc = await asyncio.create_subprocess_shell(
                args.command,
                cwd=cwd,
                env=os.environ.copy(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    proc.communicate(), timeout=timeout
                )
            except asyncio.TimeoutError:
                _kill_process_group(proc)
                await proc.communicate()
                return f"Error executing command: timed out after {timeout:g}s"
        except Exception as e:
            return f"Error executing command: {e}"

        stdout = stdout_bytes.decode("utf-8", errors="ignore")
        stderr = stderr_bytes.decode("utf-8", errors="ignore")
        if proc.returncode != 0:
            logger.debug("run_command exit %s in %s: %s", proc.returncode, cwd, args.command)
            return f"Error executing command (exit {proc.returncode}): {stderr or stdout}".rstrip()
        return stdout or stderr

    return ToolSpec(
        name="run_command",
        description="Run a shell command in the workspace directory",
        handler=run_command,
        args_model=RunCommandArgs,
    )


async def ask_user(args: AskUserArgs, ctx: ToolContext) -> str:
    # Pausing is done by the agent loop; this entry only makes the tool visible.
    return f"{AWAITING_INPUT_PREFIX} {args.question}"


def register_builtin_tools(
    registry: ToolRegistry, command_timeout: float = DEFAULT_COMMAND_TIMEOUT
) -> None:
    registry.register(
        ToolSpec(
            name="read_file",
            description="Read contents of a file",
            handler=read_file,
            args_model=ReadFileArgs,
        )
    )
    registry.register(
        ToolSpec(
            name="write_file",
            description="Write content to a file (creates parent directories)",
            handler=write_file,
            args_model=WriteFileArgs,
        )
    )
    registry.register(make_run_command(command_timeout))
    registry.register(
        ToolSpec(
            name="ask_user",
            description="Pause the loop and ask the user for clarification or input.",
            handler=ask_user,
            args_model=AskUserArgs,
        )
    )
