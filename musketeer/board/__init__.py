"""Task/agent board."""

from musketeer.board.board import Board
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

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentStatus",
    "Artifact",
    "ArtifactKind",
    "Board",
    "Task",
    "TaskPriority",
    "TaskStatus",
]
