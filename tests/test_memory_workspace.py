"""Tests for MarkdownMemoryStore and WorkspaceManager."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from musketeer.memory import MarkdownMemoryStore, MemoryStore
from musketeer.workspace import WorkspaceManager


class TestMemoryStore:
    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        assert isinstance(MarkdownMemoryStore(tmp_path), MemoryStore)

    @pytest.mark.asyncio
    async def test_log_entries_carry_agent_and_timestamp(self, tmp_path: Path) -> None:
        store = MarkdownMemoryStore(tmp_path)
        await store.append_log("### step one", "agent-7")
        await store.append_log("### step two", "agent-7")
        logs = await store.recent_logs()
        assert len(logs) == 1
        assert logs[0].startswith(f"--- {datetime.now(timezone.utc).date().isoformat()} ---")
        assert "[agent-7] ### step one" in logs[0]
        assert logs[0].index("step one") < logs[0].index("step two")

    @pytest.mark.asyncio
    async def test_recent_logs_newest_first(self, tmp_path: Path) -> None:
        store = MarkdownMemoryStore(tmp_path)
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        with patch.object(MarkdownMemoryStore, "_now", return_value=yesterday):
            await store.append_log("old entry", "a")
        await store.append_log("new entry", "a")

        logs = await store.recent_logs(days=2)
        assert len(logs) == 2
        assert "new entry" in logs[0]
        assert "old entry" in logs[1]
        assert len(await store.recent_logs(days=1)) == 1

    @pytest.mark.asyncio
    async def test_file_io_runs_off_the_event_loop(self, tmp_path: Path) -> None:
        store = MarkdownMemoryStore(tmp_path)
        with patch("musketeer.memory.asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
            await store.append_log("entry", "a")
            await store.append_knowledge("fact")
            await store.recent_logs(1)
            await store.read_knowledge()
        assert to_thread.await_count == 4

    @pytest.mark.asyncio
    async def test_no_logs_yet(self, tmp_path: Path) -> None:
        assert await MarkdownMemoryStore(tmp_path).recent_logs(3) == []

    @pytest.mark.asyncio
    async def test_knowledge_appended(self, tmp_path: Path) -> None:
        store = MarkdownMemoryStore(tmp_path)
        assert await store.read_knowledge() == ""
        await store.append_knowledge("Tests run with pytest.")
        await store.append_knowledge("CI uses Linux.")
        knowledge = await store.read_knowledge()
        assert "Tests run with pytest." in knowledge
        assert knowledge.rstrip().endswith("CI uses Linux.")
        assert (tmp_path / "MEMORY.md").exists()


class TestWorkspaceManager:
    def test_workspace_root_has_no_side_effects(self, tmp_path: Path) -> None:
        manager = WorkspaceManager(tmp_path / "ws")
        root = manager.workspace_root("a1")
        assert root == (tmp_path / "ws").resolve() / "a1"
        assert not root.exists()

    def test_create_wipes_previous_contents(self, tmp_path: Path) -> None:
        manager = WorkspaceManager(tmp_path)
        root = manager.create_workspace("a1")
        (root / "leftover.txt").write_text("x")
        assert manager.create_workspace("a1") == root
        assert list(root.iterdir()) == []

    def test_workspaces_are_isolated(self, tmp_path: Path) -> None:
        manager = WorkspaceManager(tmp_path)
        a = manager.create_workspace("a")
        b = manager.create_workspace("b")
        (a / "mine.txt").write_text("a")
        manager.create_workspace("b")
        assert (a / "mine.txt").exists()
        assert a.parent == b.parent

    def test_cleanup(self, tmp_path: Path) -> None:
        manager = WorkspaceManager(tmp_path)
        root = manager.create_workspace("a1")
        manager.cleanup_workspace("a1")
        assert not root.exists()
        manager.cleanup_workspace("a1")
