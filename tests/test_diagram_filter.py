import logging

from contract_graph import diagram_filter
from contract_graph.assembler import parse_source
from contract_graph.diagram import render_diagram
from contract_graph.diagram_filter import (
    DiagramFilter,
    apply_filters,
    classification_suffixes,
    parse_diagram,
    split_classification,
    split_statements,
)

TWO_NODES = 'graph TB; A_impure["A"]; B_regular["B"]; A_impure --> B_regular'

WALLET = """
() save(cell c) impure { set_data(c); }
int seqno() method_id { return load_seq(); }
int load_seq() inline { return 1; }
() recv_internal(cell msg) impure { save(msg); }
int unused() { return 0; }
"""


def _wallet_diagram():
    return render_diagram(parse_source(WALLET, "func"), direction="TB").mermaid


def test_type_filter_hides_disallowed_classification():
    """Only nodes of allowed classifications survive."""
    out = apply_filters(TWO_NODES, ["regular"])
    assert "B_regular" in out
    assert "A_impure" not in out


def test_name_filter_keeps_neighbours():
    """A name match brings its direct neighbours along."""
    out = apply_filters(TWO_NODES, ["impure", "regular"], "A")
    assert "A_impure" in out
    assert "B_regular" in out
    assert "A_impure --> B_regular" in out


def test_single_line_document_is_split_into_statements():
    """Statements separated by ``;`` on one line are parsed separately."""
    assert split_statements('graph TB; A["x;y"]; B') == ["    graph TB;", '    A["x;y"];', "    B"]
    assert split_statements("    class a c0;") == ["    class a c0;"]
    parsed = parse_diagram(TWO_NODES)
    assert parsed.directive == "graph TB;"
    assert list(parsed.nodes) == ["A_impure", "B_regular"]
    assert [(s, t) for s, t, _ in parsed.edges] == [("A_impure", "B_regular")]


def test_round_trip_without_restrictions():
    """With no restriction every node and edge survives exactly once."""
    graph = parse_source(WALLET, "func")
    doc = render_diagram(graph, direction="TB").mermaid
    out = apply_filters(doc, [], "")
    for node in graph.nodes:
        ident = f"{node.id}_{node.classification}"
        assert out.count(f"{ident}[") == 1
    endpoints = [(s, t) for s, t, _ in parse_diagram(out).edges]
    assert len(endpoints) == len(graph.edges)
    for edge in graph.edges:
        source = f"{edge.source}_{graph.get(edge.source).classification}"
        target = f"{edge.target}_{graph.get(edge.target).classification}"
        assert endpoints.count((source, target)) == 1
    assert '-->|"(cell c)"| save_impure' in out
    assert out.count("graph TB;") == 1


def test_filtering_is_idempotent():
    """Filtering the filtered document again changes nothing."""
    doc = _wallet_diagram()
    for types, name in ([], ""), (["impure", "inline"], ""), ([], "save"), (["method_id", "inline"], "seq"):
        once = apply_filters(doc, types, name)
        assert apply_filters(once, types, name) == once


def test_empty_clusters_are_dropped():
    """A cluster block with no surviving member is not emitted."""
    doc = _wallet_diagram()
    assert 'Cluster_0["Main"]' in doc
    out = apply_filters(doc, ["impure"])
    assert 'Cluster_0["Main"]' not in out
    assert "unused_regular" not in out
    assert "save_impure" in out and "recv_internal_impure" in out
    assert "class unused_regular" not in out
    assert out.count("classDef") == doc.count("classDef")


def test_name_filter_falls_back_to_ids():
    """When no label matches, ids are searched instead."""
    doc = "graph LR;\n    n1_regular[\"alpha\"]\n    n2_regular[\"beta\"]\n    n1_regular --> n2_regular\n"
    out = apply_filters(doc, [], "n2")
    assert "n2_regular" in out and "n1_regular" in out
    assert apply_filters(doc, [], "nothing") == "graph LR;\n"


def test_duplicate_directives_collapse():
    """A directive leaked into a cluster block is dropped, never duplicated."""
    doc = (
        "graph TB;\n"
        '    subgraph Cluster_0["Main"]\n'
        "graph LR;\n"
        '        a_regular["a"]\n'
        "    end\n"
    )
    out = apply_filters(doc, [])
    assert [line for line in out.splitlines() if line.startswith("graph")] == ["graph TB;"]
    assert "graph LR" not in out


def test_missing_directive_is_inserted():
    """A document without a directive gets the default one."""
    out = apply_filters('a_regular["a"]\n', [])
    assert out.startswith("graph ")
    assert 'a_regular["a"]' in out


def test_unknown_suffix_is_never_hidden():
    """Ids without a known classification survive any type filter."""
    out = apply_filters('graph TB;\n    Widget["w"]\n    x_inline["x"]\n', ["regular"])
    assert "Widget" in out
    assert "x_inline" not in out


def test_split_classification_prefers_longest_suffix():
    """``_get_fun`` wins over ``_fun``."""
    known = {"fun", "get_fun", "get"}
    assert split_classification("value_get_fun", known) == ("value", "get_fun")
    assert split_classification("fun", known) == ("fun", None)


def test_entities_are_decoded_for_matching():
    """Entity-encoded ids and arrows still parse."""
    doc = 'graph TB;\n    a&#95;regular["a"]\n    b_regular["b"]\n    a&#95;regular --&gt; b_regular\n'
    out = apply_filters(doc, [], "b")
    assert "a&#95;regular --&gt; b_regular" in out


def test_unrecognised_lines_are_dropped():
    """Lines of no known shape disappear; the rest survives."""
    doc = 'graph TB;\n    a_regular["a"]\n    %% note\n    ??? broken\n'
    assert apply_filters(doc, []) == 'graph TB;\n    a_regular["a"]\n'


def test_failure_returns_input(monkeypatch, caplog):
    """An unexpected error returns the unfiltered document and is logged."""

    def boom(document):
        raise RuntimeError("boom")

    monkeypatch.setattr(diagram_filter, "parse_diagram", boom)
    with caplog.at_level(logging.ERROR, logger="contract_graph"):
        assert apply_filters(TWO_NODES, ["regular"], "A") == TWO_NODES
    assert "Diagram filtering failed" in caplog.text


def test_custom_classification_set():
    """A filter can be built for an explicit classification set."""
    out = DiagramFilter({"hot"}).filter('graph TB;\n    a_hot["a"]\n    b_cold["b"]\n', ["cold"])
    assert "a_hot" not in out
    assert "b_cold" in out


def test_function_name_ending_in_another_classification_survives():
    """``cache_get_fun`` is a plain ``fun`` and stays visible when ``fun`` is allowed."""
    source = """
fun cache_get(x: int) { return x; }
fun is_pure() { return 1; }
fun load_inline() { return 2; }
fun main() { cache_get(1); is_pure(); load_inline(); }
"""
    doc = render_diagram(parse_source(source, "tolk"), direction="TB").mermaid
    out = apply_filters(doc, ["fun"])
    for node in ("cache_get_fun", "is_pure_fun", "load_inline_fun", "main_fun"):
        assert f"{node}[" in out
    endpoints = [(s, t) for s, t, _ in parse_diagram(out).edges]
    assert ("main_fun", "cache_get_fun") in endpoints
    assert len(endpoints) == 3
    assert apply_filters(out, ["fun"]) == out


def test_every_matching_suffix_is_considered():
    """A node is hidden only when none of its possible classifications is allowed."""
    known = {"fun", "get_fun", "pure_fun"}
    assert classification_suffixes("cache_get_fun", known) == ["get_fun", "fun"]
    assert classification_suffixes("fun", known) == []
    doc = 'graph TB;\n    cache_get_fun["cache_get"]\n    x_pure_fun["x"]\n'
    out = DiagramFilter(known).filter(doc, ["get_fun"])
    assert "cache_get_fun" in out
    assert "x_pure_fun" not in out
