"""Agent execution loop: one per active agent, observe -> think -> act.

The loop polls the board at fixed pacing intervals. Stopping is cooperative:
stop() sets an event that is checked at the top of every iteration and wakes
any pacing sleep, but a decision cycle already in flight always completes.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import assert_never

from musketeer.agent.decision import (
    AskUser,
    Complete,
    Decision,
    DecisionParseError,
    InvokeTool,
    Unknown,
    parse_decision,
)
from musketeer.agent.prompt import build_messages
from musketeer.board import Agent, AgentStatus, Board, Task
from musketeer.llm import LLMGateway
from musketeer.memory import MemoryStore
from musketeer.tools import ToolArgumentError, ToolContext, ToolRegistry
from musketeer.workspace import WorkspaceManager

logger = logging.getLogger(__name__)

SNIPPET_LIMIT = 200


class LoopState(StrEnum):
    BOOTSTRAP = "BOOTSTRAP"
    IDLE_WAIT = "IDLE_WAIT"
    WORKING = "WORKING"
    PAUSED = "PAUSED"
    STUCK = "STUCK"
    STOPPED = "STOPPED"


@dataclass
class LoopTiming:
    """Pacing intervals (seconds) and the malformed-response budget."""

    idle_interval: float = 5.0
    cycle_interval: float = 2.0
    paused_interval: float = 5.0
    max_parse_failures: int = 5


def snippet(text: str, limit: int = SNIPPET_LIMIT) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


class AgentLoop:
    """Drives one agent through BOOTSTRAP, IDLE_WAIT, WORKING, PAUSED and STOPPED."""

    def __init__(
        self,
        agent_id: str,
        board: Board,
        tools: ToolRegistry,
        llm: LLMGateway,
        memory: MemoryStore,
        workspaces: WorkspaceManager,
        timing: LoopTiming | None = None,
    ) -> None:
        self.agent_id = agent_id
        self._board = board
        self._tools = tools
        self._llm = llm
        self._memory = memory
        self._workspaces = workspaces
        self._timing = timing or LoopTiming()
        self._stop = asyncio.Event()
        self._state = LoopState.BOOTSTRAP
        self._parse_failures = 0
        self._workspace: Path = workspaces.workspace_root(agent_id)

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def workspace(self) -> Path:
        return self._workspace

    @property
    def parse_failures(self) -> int:
        return self._parse_failures

    def stop(self) -> None:
        """Request the loop to exit after the current iteration. Safe to call repeatedly."""
        self._stop.set()

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _narrate(self, content: str) -> None:
        try:
            await self._memory.append_log(content, self.agent_id)
        except OSError as e:
            logger.warning("agent %s: failed to write memory log: %s", self.agent_id, e)

    async def run(self) -> None:
        agent = self._board.get_agent(self.agent_id)
        if agent is None:
            logger.error("agent %s not found, loop not started", self.agent_id)
            self._state = LoopState.STOPPED
            return

        logger.info("agent loop starting: %s (%s)", agent.name, agent.id)
        self._workspace = self._workspaces.create_workspace(self.agent_id)
        self._state = LoopState.IDLE_WAIT
        try:
            while not self._stop.is_set():
                agent = self._board.get_agent(self.agent_id)
                if agent is None:
                    logger.warning("agent %s removed from board, loop exiting", self.agent_id)
                    break
                await self._step(agent)
        finally:
            self._state = LoopState.STOPPED
            logger.info("agent loop stopped: %s", self.agent_id)

    async def _step(self, agent: Agent) -> None:
        match agent.status:
            case AgentStatus.IDLE:
                self._state = LoopState.IDLE_WAIT
                await self._wait_for_task()
            case AgentStatus.PAUSED:
                self._state = LoopState.PAUSED
                self._board.update_agent_activity(self.agent_id, "Waiting for user input...")
                await self._sleep(self._timing.paused_interval)
            case AgentStatus.ERROR:
                self._state = LoopState.STUCK
                await self._sleep(self._timing.paused_interval)
            case AgentStatus.WORKING:
                self._state = LoopState.WORKING
                if not agent.current_task_id:
                    logger.error("agent %s WORKING without a task id", self.agent_id)
                    await self._sleep(self._timing.cycle_interval)
                    return
                await self.run_cycle(agent.current_task_id)
                after = self._board.get_agent(self.agent_id)
                if after is not None and after.status == AgentStatus.WORKING:
                    await self._sleep(self._timing.cycle_interval)
            case _:
                assert_never(agent.status)

    async def _wait_for_task(self) -> None:
        self._board.update_agent_activity(self.agent_id, "Waiting for new tasks...")
        task = self._board.assign_next_task(self.agent_id)
        if task is None:
            await self._sleep(self._timing.idle_interval)
            return
        logger.info("agent %s picked up task: %s", self.agent_id, task.title)
        self._parse_failures = 0
        await self._narrate(
            f"### 🚀 Task Initiative\n**Mission:** {task.title}\n"
            "Agent is initializing the workspace."
        )

    async def run_cycle(self, task_id: str) -> None:
        """One decision cycle: compose prompt, ask the model, act on its decision."""
        task = self._board.get_task(task_id)
        agent = self._board.get_agent(self.agent_id)
        if task is None or agent is None:
            return
        try:
            logs = await self._memory.recent_logs(1)
            knowledge = await self._memory.read_knowledge()
            messages = build_messages(
                task_title=task.title,
                knowledge=knowledge,
                workspace_root=self._workspace,
                recent_log=logs[0] if logs else None,
                tools=self._tools.describe(),
                pending_input=agent.pending_input,
            )
            self._board.update_agent_activity(self.agent_id, f"Thinking about: {task.title}")
            response = await self._llm.generate(messages, agent.config.provider, agent.config)
            try:
                decision = parse_decision(
                    response, lambda name: self._tools.get_tool(name) is not None
                )
            except DecisionParseError as e:
                await self._on_malformed(task, e)
                return
            self._parse_failures = 0
            logger.info("agent %s thought: %s", self.agent_id, decision.thought)
            await self._dispatch(decision, task, agent)
        except Exception as e:
            logger.exception("agent %s: cycle failed: %s", self.agent_id, e)

    async def _on_malformed(self, task: Task, error: DecisionParseError) -> None:
        self._parse_failures += 1
        logger.error(
            "agent %s: failed to parse LLM response (%d/%d): %s\nraw: %s",
            self.agent_id,
            self._parse_failures,
            self._timing.max_parse_failures,
            error,
            error.raw,
        )
        if self._parse_failures < self._timing.max_parse_failures:
            return
        reason = (
            f"Stuck: {self._parse_failures} consecutive unparseable responses "
            f"while working on {task.title!r}"
        )
        self._board.mark_agent_error(self.agent_id, reason)
        await self._narrate(f"### ❌ Agent Stuck\n{reason}")
        self._parse_failures = 0

    async def _dispatch(self, decision: Decision, task: Task, agent: Agent) -> None:
        match decision:
            case Complete(result=result):
                self._board.update_agent_activity(self.agent_id, "Finalizing task...")
                self._board.complete_task(task.id, self.agent_id, result)
                logger.info("agent %s completed task %s", self.agent_id, task.id)
                await self._narrate(
                    f"## ✅ Mission Accomplished\nTask **{task.title}** has been successfully completed."
                )
                self._board.update_agent_activity(self.agent_id, "Mission complete.")
            case AskUser(question=question):
                self._board.update_agent_activity(self.agent_id, "Paused for input.")
                self._board.pause_for_input(task.id, self.agent_id, question)
                await self._narrate(f"### ⚠️ Attention Required\n**Agent asks:** {question}")
            case InvokeTool(name=name, args=args):
                await self._invoke_tool(decision, name, args, task, agent)
            case Unknown(name=name):
                logger.warning("agent %s: unknown tool %s", self.agent_id, name)
                await self._narrate(f"#### ❓ Unknown Action\n`{name}` is not an available tool.")
            case _:
                assert_never(decision)

    async def _invoke_tool(
        self, decision: InvokeTool, name: str, args: dict, task: Task, agent: Agent
    ) -> None:
        tool = self._tools.get_tool(name)
        if tool is None:
            logger.warning("agent %s: tool %s disappeared before dispatch", self.agent_id, name)
            return
        self._board.update_agent_activity(self.agent_id, f"Executing tool: {name}")
        logger.info("agent %s executing %s", self.agent_id, name)
        context = ToolContext(workspace_root=self._workspace, agent_id=self.agent_id)
        try:
            result = await tool.execute(args, context)
        except ToolArgumentError as e:
            logger.warning("agent %s: %s", self.agent_id, e)
            await self._narrate(f"#### ⚠️ Invalid Tool Arguments: {name}\n{e}")
        else:
            short = snippet(result)
            self._board.update_task_progress(task.id, short)
            await self._narrate(
                f"#### 🛠 Tool Execution: {name}\n**Thought:** {decision.thought}\n\n"
                f"**Result Snippet:**\n```\n{short}\n```"
            )
            self._board.update_agent_activity(self.agent_id, f"Finished {name}. Pacing...")
        if agent.pending_input:
            # input provided while the tool ran is kept for the next cycle
            self._board.clear_agent_input(self.agent_id, consumed=agent.pending_input)
