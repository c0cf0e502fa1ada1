from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from rich.markup import escape
from rich.table import Table

from contract_graph.errors import ContractGraphError
from contract_graph.logging_utils import console, setup_logging


def _path(p: str) -> Path:
    return Path(p).expanduser()


def _types(value: str) -> list[str]:
    return [t.strip() for t in value.split(",") if t.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="contract-graph", description="Smart-contract call graph diagrams")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("languages", help="List supported languages and their function type filters")

    p_vis = sub.add_parser("visualize", help="Write a Mermaid call graph for a contract file")
    p_vis.add_argument("path", type=_path, help="Contract source file")
    p_vis.add_argument("--language", default=None, help="Language id (default: detected from the file suffix)")
    p_vis.add_argument("--imports", action="store_true", help="Follow imports/includes/modules before parsing")
    p_vis.add_argument(
        "--workspace",
        type=_path,
        default=None,
        help="Directory imports must stay inside (default: env CONTRACT_GRAPH_WORKSPACE / the file's folder)",
    )
    p_vis.add_argument("--direction", default=None, help="Mermaid direction (default: env CONTRACT_GRAPH_DIRECTION / TB)")
    p_vis.add_argument("--out", required=True, type=_path, help="Output .mmd file")

    p_filter = sub.add_parser("filter", help="Filter a saved Mermaid call graph")
    p_filter.add_argument("diagram", type=_path, help="Diagram written by 'visualize'")
    p_filter.add_argument("--types", type=_types, default=[], help="Comma-separated function types to keep")
    p_filter.add_argument("--name", default="", help="Keep functions whose name contains this text, plus their neighbours")
    p_filter.add_argument("--out", required=True, type=_path, help="Output .mmd file")

    return p


def _print_languages() -> None:
    from contract_graph.languages import ADAPTERS

    table = Table(title="Supported languages")
    table.add_column("id", style="cyan")
    table.add_column("name")
    table.add_column("extensions")
    table.add_column("function types")
    for adapter in ADAPTERS:
        table.add_row(
            adapter.language_id,
            adapter.display_name,
            " ".join(sorted(adapter.extensions)),
            ", ".join(value for value, _ in adapter.classifications),
        )
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        if args.cmd == "languages":
            _print_languages()
            return 0

        if args.cmd == "visualize":
            from contract_graph.assembler import parse_file
            from contract_graph.diagram import write_diagram

            graph = asyncio.run(
                parse_file(
                    args.path,
                    args.language,
                    with_imports=args.imports,
                    workspace_root=args.workspace,
                )
            )
            kwargs = {"direction": args.direction} if args.direction else {}
            g = write_diagram(graph, args.out, **kwargs)
            console.print(
                f"[green]Wrote[/green] {args.out}  (nodes={g.node_count}, edges={g.edge_count})"
            )
            return 0

        if args.cmd == "filter":
            from contract_graph.diagram_filter import apply_filters
            from contract_graph.fs_utils import read_source

            filtered = apply_filters(read_source(args.diagram), args.types, args.name)
            args.out.parent.mkdir(parents=True, exist_ok=True)
            args.out.write_text(filtered, encoding="utf-8")
            console.print(f"[green]Wrote[/green] {args.out}")
            return 0
    except (ContractGraphError, OSError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
