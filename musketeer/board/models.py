"""Board records: tasks, agents, artifacts and their status enums."""

from dataclasses import dataclass, field, replace
from enum import StrEnum


class TaskStatus(StrEnum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    AWAITING_INPUT = "AWAITING_INPUT"
    DONE = "DONE"
    ARCHIVED = "ARCHIVED"


class TaskPriority(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHT[self]


_PRIORITY_WEIGHT = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


class AgentStatus(StrEnum):
    IDLE = "IDLE"
    WORKING = "WORKING"
    PAUSED = "PAUSED"
    ERROR = "ERROR"


class ArtifactKind(StrEnum):
    FILE = "file"
    LINK = "link"
    IMAGE = "image"
    COMMAND = "command"


@dataclass
class Artifact:
    """Output produced while working on a task (file, link, image or command)."""

    id: str
    title: str
    kind: ArtifactKind
    locator: str


@dataclass
class Task:
    """A unit of work on the board."""

    id: str
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    dependencies: list[str] = field(default_factory=list)
    parent_id: str | None = None
    subtasks: list[str] = field(default_factory=list)
    assigned_agent_id: str | None = None
    status_message: str | None = None
    progress: str | None = None
    result: str | None = None
    artifacts: list[Artifact] = field(default_factory=list)
    created_seq: int = 0

    def snapshot(self) -> "Task":
        """Detached copy; mutating it does not touch the board."""
        return replace(
            self,
            dependencies=list(self.dependencies),
            subtasks=list(self.subtasks),
            artifacts=[replace(a) for a in self.artifacts],
        )


@dataclass
class AgentConfig:
    """LLM configuration of one agent."""

    provider: str
    model: str
    credential: str | None = None


@dataclass
class Agent:
    """An autonomous worker and its current state."""

    id: str
    name: str
    config: AgentConfig
    status: AgentStatus = AgentStatus.IDLE
    current_task_id: str | None = None
    current_activity: str | None = None
    pending_input: str | None = None

    def snapshot(self) -> "Agent":
        return replace(self, config=replace(self.config))
