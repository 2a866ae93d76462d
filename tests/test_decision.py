"""Tests for decision parsing: variants, fenced JSON, malformed output."""

import json

import pytest

from musketeer.agent.decision import (
    DEFAULT_QUESTION,
    AskUser,
    Complete,
    DecisionParseError,
    InvokeTool,
    Unknown,
    parse_decision,
)


def _known(name: str) -> bool:
    return name in {"read_file", "fs__list"}


class TestParseDecision:
    def test_task_complete(self) -> None:
        text = json.dumps({"thought": "done", "action": "task_complete", "args": {"result": "ok"}})
        assert parse_decision(text, _known) == Complete(thought="done", result="ok")

    def test_task_complete_without_args(self) -> None:
        decision = parse_decision('{"action": "task_complete"}', _known)
        assert decision == Complete(thought="", result=None)

    def test_ask_user_question(self) -> None:
        text = json.dumps({"action": "ask_user", "args": {"question": "Which branch?"}})
        assert parse_decision(text, _known) == AskUser(thought="", question="Which branch?")

    def test_ask_user_default_question(self) -> None:
        decision = parse_decision('{"action": "ask_user", "args": null}', _known)
        assert decision == AskUser(thought="", question=DEFAULT_QUESTION)

    def test_known_tool(self) -> None:
        text = json.dumps({"thought": "look", "action": "fs__list", "args": {"path": "."}})
        decision = parse_decision(text, _known)
        assert decision == InvokeTool(thought="look", name="fs__list", args={"path": "."})

    def test_unknown_tool(self) -> None:
        decision = parse_decision('{"action": "launch_rocket", "args": {}}', _known)
        assert isinstance(decision, Unknown)
        assert decision.name == "launch_rocket"

    def test_fenced_json(self) -> None:
        text = 'Sure!\n```json\n{"thought": "t", "action": "read_file", "args": {"path": "a"}}\n```'
        assert parse_decision(text, _known) == InvokeTool(thought="t", name="read_file", args={"path": "a"})

    def test_json_with_surrounding_prose(self) -> None:
        text = 'Here you go: {"action": "task_complete"} thanks'
        assert isinstance(parse_decision(text, _known), Complete)

    @pytest.mark.parametrize(
        "text",
        [
            "not json at all",
            "",
            "[1, 2, 3]",
            '{"thought": "missing action"}',
            '{"action": ""}',
            '{"action": "read_file", "args": "path=a"}',
        ],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(DecisionParseError) as exc:
            parse_decision(text, _known)
        assert exc.value.raw == text
