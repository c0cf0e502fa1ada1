"""Configuration settings for contract-graph."""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """contract-graph configuration settings."""

    # Import resolution
    workspace_root: str | None = os.getenv("CONTRACT_GRAPH_WORKSPACE") or None
    dependency_dir: str = os.getenv("CONTRACT_GRAPH_DEPENDENCY_DIR", "node_modules")

    # Diagram rendering
    direction: str = os.getenv("CONTRACT_GRAPH_DIRECTION", "TB")

    # Language used when a file suffix is not recognised
    default_language: str = os.getenv("CONTRACT_GRAPH_DEFAULT_LANGUAGE", "func")


SETTINGS = Settings()
