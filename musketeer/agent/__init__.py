"""Per-agent execution loop and model decision parsing."""

from musketeer.agent.decision import (
    AskUser,
    Complete,
    Decision,
    DecisionParseError,
    InvokeTool,
    Unknown,
    parse_decision,
)
from musketeer.agent.loop import AgentLoop, LoopState, LoopTiming

__all__ = [
    "AgentLoop",
    "AskUser",
    "Complete",
    "Decision",
    "DecisionParseError",
    "InvokeTool",
    "LoopState",
    "LoopTiming",
    "Unknown",
    "parse_decision",
]
