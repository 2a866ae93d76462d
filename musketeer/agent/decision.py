"""Model decisions: parse the raw completion into one of four explicit variants."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, Field, ValidationError, field_validator

TASK_COMPLETE = "task_complete"
ASK_USER = "ask_user"
DEFAULT_QUESTION = "No question provided."

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class DecisionParseError(ValueError):
    """Completion is not a JSON object with an action."""

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


class _RawDecision(BaseModel):
    thought: str = ""
    action: str = Field(min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)

    @field_validator("thought", mode="before")
    @classmethod
    def _thought_text(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("args", mode="before")
    @classmethod
    def _args_default(cls, v: Any) -> Any:
        return {} if v is None else v


@dataclass(frozen=True)
class Complete:
    thought: str
    result: str | None = None


@dataclass(frozen=True)
class AskUser:
    thought: str
    question: str = DEFAULT_QUESTION


@dataclass(frozen=True)
class InvokeTool:
    thought: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Unknown:
    thought: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


Decision = Complete | AskUser | InvokeTool | Unknown


def _candidate_json(text: str) -> str:
    fenced = _FENCE_RE.search(text)
    if fenced:
        return fenced.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text.strip()


def parse_decision(text: str, is_tool: Callable[[str], bool]) -> Decision:
    """Parse a completion into a Decision. Raises DecisionParseError on malformed output."""
    try:
        payload = json.loads(_candidate_json(text or ""))
    except json.JSONDecodeError as e:
        raise DecisionParseError(f"response is not valid JSON: {e}", text) from e
    if not isinstance(payload, dict):
        raise DecisionParseError("response is not a JSON object", text)
    try:
        raw = _RawDecision.model_validate(payload)
    except ValidationError as e:
        raise DecisionParseError(f"response does not match decision schema: {e}", text) from e

    if raw.action == TASK_COMPLETE:
        result = raw.args.get("result")
        return Complete(thought=raw.thought, result=None if result is None else str(result))
    if raw.action == ASK_USER:
        question = raw.args.get("question")
        if not isinstance(question, str) or not question.strip():
            question = DEFAULT_QUESTION
        return AskUser(thought=raw.thought, question=question)
    if is_tool(raw.action):
        return InvokeTool(thought=raw.thought, name=raw.action, args=raw.args)
    return Unknown(thought=raw.thought, name=raw.action, args=raw.args)
