"""
Language registry.

The registry is a module-level tuple built once at import time; lookups go
through the two read-only maps derived from it.
"""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Tuple

from contract_graph.config import SETTINGS
from contract_graph.errors import UnsupportedLanguageError
from contract_graph.languages.base import LanguageAdapter
from contract_graph.languages.func import FUNC_ADAPTER
from contract_graph.languages.move import MOVE_ADAPTER
from contract_graph.languages.noir import NOIR_ADAPTER
from contract_graph.languages.simple import SIMPLE_ADAPTERS
from contract_graph.languages.tact import TACT_ADAPTER
from contract_graph.languages.tolk import TOLK_ADAPTER
from contract_graph.models import ENTRY_CLASSIFICATION, EXTERNAL_CLASSIFICATION

ADAPTERS: Tuple[LanguageAdapter, ...] = (
    FUNC_ADAPTER,
    TACT_ADAPTER,
    TOLK_ADAPTER,
    MOVE_ADAPTER,
    NOIR_ADAPTER,
    *SIMPLE_ADAPTERS,
)

BY_ID: Mapping[str, LanguageAdapter] = MappingProxyType({a.language_id: a for a in ADAPTERS})
# First registration wins for a shared extension.
BY_EXTENSION: Mapping[str, LanguageAdapter] = MappingProxyType(
    {ext: a for a in reversed(ADAPTERS) for ext in sorted(a.extensions)}
)


def detect_language(file_path: str | Path) -> str:
    """Language id for ``file_path`` by suffix; unknown suffixes map to the baseline language."""
    adapter = BY_EXTENSION.get(Path(file_path).suffix.lower())
    return adapter.language_id if adapter else SETTINGS.default_language


def get_adapter(language_id: str) -> LanguageAdapter:
    try:
        return BY_ID[language_id]
    except KeyError:
        raise UnsupportedLanguageError(language_id) from None


def function_type_filters(language_id: str) -> List[dict]:
    """Filter options for a language as ``{"value", "label"}`` dicts."""
    return [{"value": value, "label": label} for value, label in get_adapter(language_id).classifications]


def known_classifications() -> frozenset:
    values = {value for adapter in ADAPTERS for value, _ in adapter.classifications}
    return frozenset(values | {ENTRY_CLASSIFICATION, EXTERNAL_CLASSIFICATION})


__all__ = [
    "ADAPTERS",
    "LanguageAdapter",
    "detect_language",
    "function_type_filters",
    "get_adapter",
    "known_classifications",
]
