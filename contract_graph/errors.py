"""Exception types raised by contract-graph."""
from __future__ import annotations

from pathlib import Path


class ContractGraphError(Exception):
    """Base class for contract-graph errors."""


class UnsupportedLanguageError(ContractGraphError, KeyError):
    """Raised when a language id has no registered adapter."""

    def __init__(self, language_id: str):
        super().__init__(language_id)
        self.language_id = language_id

    def __str__(self) -> str:
        return f"Unsupported language: {self.language_id!r}"


class WorkspaceViolationError(ContractGraphError):
    """Raised when an import resolves outside the workspace root."""

    def __init__(self, path: Path, workspace_root: Path):
        super().__init__(f"{path} is outside workspace {workspace_root}")
        self.path = path
        self.workspace_root = workspace_root
