"""Board: the authoritative in-memory registry of tasks and agents.

Every public method runs under one re-entrant lock, so compound updates
(task + agent in assign_task, complete_task, pause_for_input) are never
observed half-applied. Callers always receive detached snapshots.
"""

import itertools
import logging
import threading
import uuid

from musketeer.board.models import (
    Agent,
    AgentConfig,
    AgentStatus,
    Artifact,
    ArtifactKind,
    Task,
    TaskPriority,
    TaskStatus,
)

logger = logging.getLogger(__name__)

_ACTIVE_TASK_STATUSES = (TaskStatus.IN_PROGRESS, TaskStatus.AWAITING_INPUT)


class Board:
    """Owns Task and Agent records; all mutation goes through its methods."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._agents: dict[str, Agent] = {}
        self._lock = threading.RLock()
        self._seq = itertools.count()

    # --- Tasks ---

    def create_task(
        self,
        title: str,
        priority: TaskPriority = TaskPriority.MEDIUM,
        parent_id: str | None = None,
    ) -> Task:
        """Create a TODO task. An unknown parent_id is ignored; the task is still created."""
        with self._lock:
            task = Task(
                id=str(uuid.uuid4()),
                title=title,
                priority=TaskPriority(priority),
                parent_id=parent_id,
                created_seq=next(self._seq),
            )
            self._tasks[task.id] = task
            if parent_id is not None:
                parent = self._tasks.get(parent_id)
                if parent is not None:
                    parent.subtasks.append(task.id)
            logger.debug("board: created task %s (%s)", task.id, title)
            return task.snapshot()

    def add_dependency(self, task_id: str, dependency_id: str) -> bool:
        """Make task_id wait for dependency_id. Cycles are not detected."""
        with self._lock:
            task = self._tasks.get(task_id)
            dependency = self._tasks.get(dependency_id)
            if task is None or dependency is None or task_id == dependency_id:
                return False
            if dependency_id in task.dependencies:
                return False
            task.dependencies.append(dependency_id)
            return True

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.snapshot() if task else None

    def list_tasks(self) -> list[Task]:
        with self._lock:
            return [t.snapshot() for t in self._tasks.values()]

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        status_message: str | None = None,
        result: str | None = None,
    ) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.status = TaskStatus(status)
            if status_message is not None:
                task.status_message = status_message
            if result is not None:
                task.result = result
            return task.snapshot()

    def update_task_progress(self, task_id: str, progress: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.progress = progress
            return task.snapshot()

    def add_artifact(
        self, task_id: str, title: str, kind: ArtifactKind, locator: str
    ) -> Artifact | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            artifact = Artifact(
                id=str(uuid.uuid4()), title=title, kind=ArtifactKind(kind), locator=locator
            )
            task.artifacts.append(artifact)
            return Artifact(**vars(artifact))

    def archive_task(self, task_id: str) -> Task | None:
        """Move a task to the terminal ARCHIVED status. Refused while an agent holds it."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status in _ACTIVE_TASK_STATUSES:
                return None
            task.status = TaskStatus.ARCHIVED
            return task.snapshot()

    # --- Agents ---

    def spawn_agent(self, name: str, config: AgentConfig) -> Agent:
        with self._lock:
            agent = Agent(id=str(uuid.uuid4()), name=name, config=config)
            self._agents[agent.id] = agent
            logger.info(
                "board: spawned agent %s (%s, %s/%s)",
                agent.id, name, config.provider, config.model,
            )
            return agent.snapshot()

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._lock:
            agent = self._agents.get(agent_id)
            return agent.snapshot() if agent else None

    def list_agents(self) -> list[Agent]:
        with self._lock:
            return [a.snapshot() for a in self._agents.values()]

    def update_agent_activity(self, agent_id: str, activity: str) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is not None:
                agent.current_activity = activity

    def provide_input(self, agent_id: str, text: str) -> Agent | None:
        """Hand user input to an agent; a PAUSED agent resumes its task."""
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            agent.pending_input = text
            if agent.status == AgentStatus.PAUSED:
                task = self._tasks.get(agent.current_task_id or "")
                if task is not None and task.status == TaskStatus.AWAITING_INPUT:
                    task.status = TaskStatus.IN_PROGRESS
                    task.status_message = None
                agent.status = AgentStatus.WORKING if task is not None else AgentStatus.IDLE
                if task is None:
                    agent.current_task_id = None
            return agent.snapshot()

    def clear_agent_input(self, agent_id: str, consumed: str | None = None) -> bool:
        """Drop pending input. With `consumed`, only if that is still the pending text."""
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return False
            if consumed is not None and agent.pending_input != consumed:
                return False
            agent.pending_input = None
            return True

    def mark_agent_error(self, agent_id: str, reason: str) -> Agent | None:
        """Park an agent in ERROR; its task stays assigned until reset_agent."""
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            agent.status = AgentStatus.ERROR
            agent.current_activity = reason
            task = self._tasks.get(agent.current_task_id or "")
            if task is not None:
                task.status_message = reason
            return agent.snapshot()

    def reset_agent(self, agent_id: str) -> Agent | None:
        """Recover an ERROR agent: back to WORKING if it still holds a task, else IDLE."""
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            if agent.status != AgentStatus.ERROR:
                return agent.snapshot()
            task = self._tasks.get(agent.current_task_id or "")
            if task is not None and task.status in _ACTIVE_TASK_STATUSES:
                agent.status = (
                    AgentStatus.PAUSED
                    if task.status == TaskStatus.AWAITING_INPUT
                    else AgentStatus.WORKING
                )
                task.status_message = None
            else:
                agent.status = AgentStatus.IDLE
                agent.current_task_id = None
            agent.current_activity = None
            return agent.snapshot()

    # --- Assignment ---

    def _dependencies_done(self, task: Task) -> bool:
        for dep_id in task.dependencies:
            dep = self._tasks.get(dep_id)
            if dep is None or dep.status != TaskStatus.DONE:
                return False
        return True

    def assign_task(self, task_id: str, agent_id: str) -> bool:
        """Assign a TODO task to an IDLE agent once every dependency is DONE."""
        with self._lock:
            task = self._tasks.get(task_id)
            agent = self._agents.get(agent_id)
            if task is None or agent is None:
                return False
            if agent.status != AgentStatus.IDLE or task.status != TaskStatus.TODO:
                return False
            if not self._dependencies_done(task):
                return False
            task.status = TaskStatus.IN_PROGRESS
            task.assigned_agent_id = agent.id
            agent.status = AgentStatus.WORKING
            agent.current_task_id = task.id
            logger.info("board: task %s assigned to agent %s", task.id, agent.id)
            return True

    def assign_next_task(self, agent_id: str) -> Task | None:
        """Assign the highest-priority eligible TODO task; ties go to the oldest."""
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None or agent.status != AgentStatus.IDLE:
                return None
            candidates = sorted(
                (t for t in self._tasks.values() if t.status == TaskStatus.TODO),
                key=lambda t: (-t.priority.weight, t.created_seq),
            )
            for task in candidates:
                if self.assign_task(task.id, agent_id):
                    return task.snapshot()
            return None

    def complete_task(
        self, task_id: str, agent_id: str, result: str | None = None
    ) -> Task | None:
        """Mark the task DONE and return its agent to IDLE in one step."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.status = TaskStatus.DONE
            if result is not None:
                task.result = result
            agent = self._agents.get(agent_id)
            if agent is not None:
                agent.status = AgentStatus.IDLE
                agent.current_task_id = None
                agent.pending_input = None
            return task.snapshot()

    def pause_for_input(self, task_id: str, agent_id: str, question: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.status = TaskStatus.AWAITING_INPUT
            task.status_message = question
            agent = self._agents.get(agent_id)
            if agent is not None:
                agent.status = AgentStatus.PAUSED
            return task.snapshot()
