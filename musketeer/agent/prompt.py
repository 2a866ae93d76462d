"""Conversation composition for one decision cycle."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from musketeer.llm import LLMMessage

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

NEXT_STEP_PROMPT = "Current Status: WORKING. What is your next step?"

_env = Environment(
    loader=FileSystemLoader(_TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=()),
    keep_trailing_newline=False,
)


def build_messages(
    task_title: str,
    knowledge: str,
    workspace_root: Path,
    recent_log: str | None,
    tools: str,
    pending_input: str | None = None,
) -> list[LLMMessage]:
    system = _env.get_template("system.jinja2").render(
        task_title=task_title,
        knowledge=knowledge.strip(),
        workspace_root=str(workspace_root),
        recent_log=recent_log,
        tools=tools,
        pending_input=pending_input,
    )
    return [
        {"role": "system", "content": system.strip()},
        {"role": "user", "content": NEXT_STEP_PROMPT},
    ]
