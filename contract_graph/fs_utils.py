"""Filesystem helpers for import resolution."""
from __future__ import annotations

from pathlib import Path

from contract_graph.errors import WorkspaceViolationError


def confine_to_workspace(path: Path, workspace_root: Path) -> Path:
    """
    Canonicalise ``path`` and check it lies inside ``workspace_root``.

    Symlinks are followed before the check, so a link inside the workspace
    pointing outside of it is rejected.

    Args:
        path: Candidate path (absolute or relative to the working directory)
        workspace_root: Root the path must stay under

    Returns:
        The resolved path

    Raises:
        WorkspaceViolationError: If the resolved path is outside the root
    """
    resolved = Path(path).resolve()
    root = Path(workspace_root).resolve()
    try:
        resolved.relative_to(root)
    except ValueError:
        raise WorkspaceViolationError(resolved, root) from None
    return resolved


def read_source(path: Path, *, encoding: str = "utf-8") -> str:
    """Read a source file; undecodable bytes are dropped."""
    return path.read_text(encoding=encoding, errors="ignore")
