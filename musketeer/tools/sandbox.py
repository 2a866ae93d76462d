"""Workspace containment for agent file operations."""

from pathlib import Path

ACCESS_DENIED_MSG = "Access denied: operations outside workspace are prohibited."


class SandboxViolation(RuntimeError):
    """Resolved path falls outside the workspace root."""


def resolve_sandbox_path(path: str, root: Path | str, ensure_parent: bool = False) -> Path:
    """Resolve path against the workspace root, following '..' and symlinks.

    Raises SandboxViolation when the result is not the root or below it.
    """
    workspace = Path(root).resolve()
    target = (workspace / path).resolve()
    if not target.is_relative_to(workspace):
        raise SandboxViolation(f"{ACCESS_DENIED_MSG} Path: {path}")
    if ensure_parent:
        target.parent.mkdir(parents=True, exist_ok=True)
    return target
