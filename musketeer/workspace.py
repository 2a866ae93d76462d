"""Per-agent workspace directories. Each one is the sandbox root of that agent's tools."""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class WorkspaceManager:
    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir).resolve()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def workspace_root(self, agent_id: str) -> Path:
        """Absolute workspace path for agent_id. No side effects."""
        return self._base_dir / agent_id

    def create_workspace(self, agent_id: str) -> Path:
        """Wipe any previous workspace for agent_id and create an empty one."""
        workspace = self.workspace_root(agent_id)
        if workspace.exists():
            shutil.rmtree(workspace, ignore_errors=True)
        workspace.mkdir(parents=True, exist_ok=True)
        logger.info("workspace: created %s", workspace)
        return workspace

    def cleanup_workspace(self, agent_id: str) -> None:
        workspace = self.workspace_root(agent_id)
        try:
            shutil.rmtree(workspace)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("workspace: failed to clean up %s: %s", workspace, e)
