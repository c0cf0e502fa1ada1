from contract_graph.lexing import balanced_span, mask_strings, split_parameters, strip_comments
from contract_graph.models import FunctionRecord
from contract_graph.resolver import build_call_pattern, find_called_names, resolve_call_edges
from contract_graph.scanner import scan_functions


def _fn(name, body):
    return FunctionRecord.build(name, body=body)


def test_strip_comments_keeps_offsets_and_strings():
    """Comments are blanked in place; comment markers inside strings survive."""
    code = 'a // x\nb /* y\nz */ c "// not a comment"'
    stripped = strip_comments(code)
    assert len(stripped) == len(code)
    assert stripped.count("\n") == 2
    assert "x" not in stripped and "y" not in stripped
    assert '"// not a comment"' in stripped


def test_strip_comments_nested_blocks():
    """Nested block comments are only closed by the matching closer."""
    code = "{- outer {- inner -} still -} keep"
    assert strip_comments(code, (";;",), (("{-", "-}"),), nested=True).strip() == "keep"


def test_mask_strings_and_balanced_span():
    """String contents are masked, and braces inside strings do not count."""
    assert mask_strings('f("a(b)")') == 'f("    ")'
    text = '{ "}" { } }'
    assert balanced_span(text, 0) == len(text) - 1
    assert balanced_span("{ {", 0) is None


def test_split_parameters_respects_nesting():
    """Only top-level commas separate parameters."""
    assert split_parameters("a: Map<K, V>, b: (u8, u8)") == ("a: Map<K, V>", "b: (u8, u8)")
    assert split_parameters("  ") == ()


def test_scan_functions_nested_bodies_and_params():
    """Bodies and parameter lists are delimited by depth, at any nesting."""
    source = "fn outer(a: (u8, (u8, u8))) -> u8 { if a { { inner(); } } }\nfn inner() { }"
    found = scan_functions(source, "fn")
    assert [f.name for f in found] == ["outer", "inner"]
    assert found[0].params == "a: (u8, (u8, u8))"
    assert "inner();" in found[0].body


def test_scan_functions_skips_declarations_without_body():
    """A keyword match followed by ``;`` or unterminated text is not a function."""
    found = scan_functions("fn proto(a);\nfn broken( {\nfn ok() { x }", "fn")
    assert [f.name for f in found] == ["ok"]


def test_scan_functions_requires_keyword_boundary():
    """``myfn foo(`` does not match the keyword ``fn``."""
    assert scan_functions("myfn foo() { }", "fn") == []


def test_call_pattern_prefers_longest_name():
    """``foobar(`` is a call to ``foobar``, never to ``foo``."""
    pattern = build_call_pattern(["foo", "foobar"])
    assert find_called_names("foobar(); foo();", pattern) == ["foobar", "foo"]
    assert build_call_pattern([]) is None


def test_find_called_names_ignores_comments_and_strings():
    """Calls after a line comment marker or inside strings are skipped."""
    pattern = build_call_pattern(["foo", "bar"])
    body = '// foo()\nlog("bar()");\nbar();'
    assert find_called_names(body, pattern) == ["bar"]


def test_method_style_calls_resolve():
    """``self.foo()`` and ``x~foo()`` count as calls to ``foo``."""
    functions = [_fn("foo", ""), _fn("main", "self.foo(); cs~foo();")]
    edges = resolve_call_edges(functions)
    assert [(e.source, e.target) for e in edges] == [("main", "foo")]


def test_resolve_call_edges_dedupes_and_skips_self_calls():
    """Repeated calls give one edge; a recursive call gives none."""
    functions = [
        _fn("a", "b(); b(); a();"),
        _fn("b", "c(); a();"),
        _fn("c", ""),
    ]
    edges = resolve_call_edges(functions)
    assert [(e.source, e.target) for e in edges] == [("a", "b"), ("b", "c"), ("b", "a")]


def test_resolve_call_edges_with_explicit_targets():
    """A target map lets bare call names resolve to qualified ids."""
    functions = [_fn("M::run", "helper();"), _fn("M::helper", "")]
    edges = resolve_call_edges(functions, targets={"helper": "M::helper", "run": "M::run"})
    assert [(e.source, e.target) for e in edges] == [("M::run", "M::helper")]
