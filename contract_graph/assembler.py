"""
Graph assembly and the public parse entry points.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from contract_graph.config import SETTINGS
from contract_graph.fs_utils import read_source
from contract_graph.imports import ImportResolver
from contract_graph.languages import detect_language, get_adapter
from contract_graph.models import CallEdge, ContractGraph, FunctionRecord, ParsedSource
from contract_graph.syntax import ParserContext

logger = logging.getLogger(__name__)


def assemble(parsed: ParsedSource, edges: List[CallEdge]) -> ContractGraph:
    """
    Fold an adapter's parse result and edges into a ``ContractGraph``.

    A later function with an already seen id replaces the earlier one but keeps
    its position. Placeholders are only added for ids no real function has.
    """
    nodes: Dict[str, FunctionRecord] = {}
    for fn in parsed.functions:
        nodes[fn.id] = fn
    for placeholder in parsed.externals:
        nodes.setdefault(placeholder.id, placeholder)
    return ContractGraph(nodes=list(nodes.values()), edges=list(edges), grouping=parsed.grouping)


def parse_source(
    source_text: str,
    language_id: str,
    context: Optional[ParserContext] = None,
) -> ContractGraph:
    """
    Extract the call graph of one source text.

    Args:
        source_text: Contract source
        language_id: Registry id (see ``contract_graph.languages``)
        context: Parser context to reuse across calls; a fresh one is
            created when omitted

    Raises:
        UnsupportedLanguageError: If ``language_id`` is not registered
    """
    adapter = get_adapter(language_id)
    parsed = adapter.parse(source_text, context or ParserContext())
    graph = assemble(parsed, adapter.build_call_graph(parsed))
    logger.info(f"Parsed {language_id} source: {graph.node_count} functions, {graph.edge_count} calls")
    return graph


async def parse_with_imports(
    source_text: str,
    file_path: str | Path,
    language_id: str,
    context: Optional[ParserContext] = None,
    workspace_root: str | Path | None = None,
) -> ContractGraph:
    """Resolve imports of ``file_path`` and parse the merged source."""
    get_adapter(language_id)
    root = workspace_root or SETTINGS.workspace_root or Path(file_path).resolve().parent
    resolved = await ImportResolver(root).resolve(source_text, file_path, language_id)
    if resolved.file_paths:
        logger.info(f"Merged {len(resolved.file_paths)} imported files into {file_path}")
    return parse_source(resolved.merged_code, language_id, context)


async def parse_file(
    path: str | Path,
    language_id: Optional[str] = None,
    *,
    with_imports: bool = False,
    workspace_root: str | Path | None = None,
    context: Optional[ParserContext] = None,
) -> ContractGraph:
    """Read ``path`` and parse it, detecting the language from its suffix when not given."""
    path = Path(path)
    language_id = language_id or detect_language(path)
    text = read_source(path)
    if with_imports:
        return await parse_with_imports(text, path, language_id, context, workspace_root)
    return parse_source(text, language_id, context)
