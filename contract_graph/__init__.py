"""Call graph extraction and Mermaid diagrams for smart-contract languages."""
from contract_graph.assembler import parse_file, parse_source, parse_with_imports
from contract_graph.clustering import cluster_nodes
from contract_graph.diagram import MermaidGraph, render_diagram
from contract_graph.diagram_filter import apply_filters
from contract_graph.languages import detect_language, function_type_filters, get_adapter
from contract_graph.models import CallEdge, ContractGraph, FunctionRecord
from contract_graph.syntax import ParserContext

__version__ = "0.1.0"

__all__ = [
    "CallEdge",
    "ContractGraph",
    "FunctionRecord",
    "MermaidGraph",
    "ParserContext",
    "apply_filters",
    "cluster_nodes",
    "detect_language",
    "function_type_filters",
    "get_adapter",
    "parse_file",
    "parse_source",
    "parse_with_imports",
    "render_diagram",
]
