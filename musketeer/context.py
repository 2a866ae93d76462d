"""AppContext: explicitly constructed root container for the board, tools, LLM gateway and agent loops."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable

from musketeer.agent import AgentLoop, LoopTiming
from musketeer.board import Agent, AgentConfig, Board, TaskPriority
from musketeer.llm import LLMGateway
from musketeer.memory import MarkdownMemoryStore, MemoryStore
from musketeer.secrets import get_secret
from musketeer.settings import get_setting
from musketeer.tools import ExternalToolGateway, ToolRegistry, register_builtin_tools
from musketeer.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class AppContext:
    """Owns every shared service and the running agent loops."""

    def __init__(
        self,
        board: Board,
        tools: ToolRegistry,
        llm: LLMGateway,
        memory: MemoryStore,
        workspaces: WorkspaceManager,
        gateway: ExternalToolGateway | None = None,
        timing: LoopTiming | None = None,
        agent_defaults: AgentConfig | None = None,
    ) -> None:
        self.board = board
        self.tools = tools
        self.llm = llm
        self.memory = memory
        self.workspaces = workspaces
        self.gateway = gateway or ExternalToolGateway()
        self.timing = timing or LoopTiming()
        self.agent_defaults = agent_defaults or AgentConfig(provider="openai", model="gpt-4o-mini")
        self.tools.attach(self.gateway)
        self._loops: dict[str, AgentLoop] = {}
        self._loop_tasks: dict[str, asyncio.Task] = {}

    @classmethod
    def from_settings(
        cls,
        settings: dict[str, Any],
        project_root: Path,
        secrets_getter: Callable[[str], str | None] = get_secret,
    ) -> "AppContext":
        tools = ToolRegistry()
        register_builtin_tools(
            tools, command_timeout=float(get_setting(settings, "tools.command_timeout", 60))
        )
        loop_cfg = settings.get("loop") or {}
        timing = LoopTiming(
            idle_interval=float(loop_cfg.get("idle_interval", 5.0)),
            cycle_interval=float(loop_cfg.get("cycle_interval", 2.0)),
            paused_interval=float(loop_cfg.get("paused_interval", 5.0)),
            max_parse_failures=int(loop_cfg.get("max_parse_failures", 5)),
        )
        defaults = settings.get("agent_defaults") or {}
        return cls(
            board=Board(),
            tools=tools,
            llm=LLMGateway(settings=settings, secrets_getter=secrets_getter),
            memory=MarkdownMemoryStore(
                project_root / get_setting(settings, "memory.base_dir", "data/memory")
            ),
            workspaces=WorkspaceManager(
                project_root / get_setting(settings, "workspace.base_dir", ".agent/workspaces")
            ),
            timing=timing,
            agent_defaults=AgentConfig(
                provider=str(defaults.get("provider", "openai")),
                model=str(defaults.get("model", "gpt-4o-mini")),
            ),
        )

    async def load_external_tools(self, config_path: Path) -> int:
        return await self.gateway.load_config(config_path)

    def seed_tasks(self, specs: list[dict[str, Any]]) -> int:
        """Create tasks from settings entries; depends_on refers to earlier titles."""
        by_title: dict[str, str] = {}
        created = 0
        for spec in specs:
            if not isinstance(spec, dict) or not spec.get("title"):
                logger.warning("seed: skipping task entry without title: %r", spec)
                continue
            try:
                priority = TaskPriority(str(spec.get("priority", "MEDIUM")).upper())
            except ValueError:
                logger.warning("seed: unknown priority %r, using MEDIUM", spec.get("priority"))
                priority = TaskPriority.MEDIUM
            parent_id = by_title.get(spec.get("parent", ""))
            task = self.board.create_task(str(spec["title"]), priority, parent_id)
            by_title[task.title] = task.id
            created += 1
            for dep_title in spec.get("depends_on") or []:
                dep_id = by_title.get(dep_title)
                if dep_id is None or not self.board.add_dependency(task.id, dep_id):
                    logger.warning("seed: cannot add dependency %r -> %r", task.title, dep_title)
        return created

    def spawn_agent(
        self,
        name: str,
        provider: str | None = None,
        model: str | None = None,
        credential: str | None = None,
    ) -> Agent:
        config = AgentConfig(
            provider=provider or self.agent_defaults.provider,
            model=model or self.agent_defaults.model,
            credential=credential,
        )
        return self.board.spawn_agent(name, config)

    def start_agent(self, agent_id: str) -> AgentLoop:
        """Start the loop for an agent; returns the running loop if already started."""
        running = self._loops.get(agent_id)
        task = self._loop_tasks.get(agent_id)
        if running is not None and task is not None and not task.done():
            return running
        loop = AgentLoop(
            agent_id,
            board=self.board,
            tools=self.tools,
            llm=self.llm,
            memory=self.memory,
            workspaces=self.workspaces,
            timing=self.timing,
        )
        self._loops[agent_id] = loop
        self._loop_tasks[agent_id] = asyncio.create_task(
            loop.run(), name=f"agent-loop-{agent_id}"
        )
        return loop

    def get_loop(self, agent_id: str) -> AgentLoop | None:
        return self._loops.get(agent_id)

    async def stop_agent(self, agent_id: str) -> None:
        """Signal the loop and wait for its in-flight cycle to finish."""
        loop = self._loops.pop(agent_id, None)
        task = self._loop_tasks.pop(agent_id, None)
        if loop is None:
            return
        loop.stop()
        if task is not None:
            try:
                await task
            except Exception as e:
                logger.exception("agent loop %s ended with error: %s", agent_id, e)

    async def shutdown(self) -> None:
        for agent_id in list(self._loops):
            await self.stop_agent(agent_id)
        await self.gateway.close()
