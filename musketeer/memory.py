"""Memory store: day-bucketed narration logs and one durable knowledge file."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class MemoryStore(Protocol):
    async def append_log(self, content: str, agent_id: str) -> None: ...
    async def recent_logs(self, days: int = 1) -> list[str]: ...
    async def append_knowledge(self, content: str) -> None: ...
    async def read_knowledge(self) -> str: ...


def _append_text(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(text)


def _read_text(path: Path) -> str | None:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


class MarkdownMemoryStore:
    """Markdown files under base_dir: logs/<YYYY-MM-DD>.md and MEMORY.md.

    File I/O runs in a worker thread so agent loops sharing the event loop
    are not blocked.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir)
        self._logs_dir = self._base_dir / "logs"
        self._knowledge_file = self._base_dir / "MEMORY.md"
        self._logs_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _log_file(self, day: date) -> Path:
        return self._logs_dir / f"{day.isoformat()}.md"

    async def append_log(self, content: str, agent_id: str) -> None:
        now = self._now()
        entry = f"\n[{now.isoformat()}] [{agent_id}] {content}\n"
        await asyncio.to_thread(_append_text, self._log_file(now.date()), entry)

    async def recent_logs(self, days: int = 1) -> list[str]:
        """Log buckets for the last `days` days, most recent first. Missing days are skipped."""
        today = self._now().date()
        logs: list[str] = []
        for offset in range(days):
            day = today - timedelta(days=offset)
            text = await asyncio.to_thread(_read_text, self._log_file(day))
            if text is not None:
                logs.append(f"--- {day.isoformat()} ---\n{text}")
        return logs

    async def append_knowledge(self, content: str) -> None:
        entry = f"\n- [{self._now().isoformat()}] {content}"
        await asyncio.to_thread(_append_text, self._knowledge_file, entry)

    async def read_knowledge(self) -> str:
        return await asyncio.to_thread(_read_text, self._knowledge_file) or ""
