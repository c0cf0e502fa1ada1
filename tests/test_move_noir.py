from contract_graph.assembler import parse_source
from contract_graph.clustering import cluster_nodes
from contract_graph.languages.move import expand_use, parse_move_tree, qualify_call
from contract_graph.languages.noir import neutralize, strip_generics
from contract_graph.models import GROUP_BY_SCOPE
from contract_graph.syntax import ParserContext, walk


def _edges(graph):
    return {(e.source, e.target) for e in graph.edges}


BANK = """
module 0x1::coin {
    public fun mint(v: u64): u64 { v }
    native fun burn(v: u64);
}

module 0x1::bank {
    use 0x1::coin;
    use 0x1::coin::{Self as c, mint as m2};

    struct Ledger has key { total: u64 }

    spec deposit { aborts_if false; }

    public entry fun deposit(v: u64) {
        let x = coin::mint(v);
        helper(x);
        m2(1);
        assert!(x > 0, 1);
        let _ = vector::empty<u64>();
    }

    fun helper(x: u64) {
        0x1::vault::lock(x);
        helper(x - 1);
    }
}
"""


def test_move_tree_shape():
    """Modules, uses, functions and calls appear as generic nodes."""
    tree = parse_move_tree(BANK)
    modules = tree.children_of_type("module_definition")
    assert [m.child_by_field("name").text for m in modules] == ["coin", "bank"]
    assert modules[0].child_by_field("address").text == "0x1"
    assert [u.text for u in modules[1].children_of_type("use_declaration")] == [
        "0x1::coin",
        "0x1::coin::{Self as c, mint as m2}",
    ]
    calls = [n.text for n in walk(modules[1]) if n.type == "call_expression"]
    assert calls == ["coin::mint", "helper", "m2", "vector::empty", "0x1::vault::lock", "helper"]


def test_move_functions_and_classifications():
    """Native functions have no body and are skipped; modifiers classify."""
    graph = parse_source(BANK, "move")
    real = [n for n in graph.nodes if n.classification != "external"]
    assert [n.id for n in real] == ["coin::mint", "bank::deposit", "bank::helper"]
    kinds = {n.id: n.classification for n in real}
    assert kinds == {"coin::mint": "public", "bank::deposit": "entry", "bank::helper": "regular"}
    assert graph.grouping == GROUP_BY_SCOPE


def test_move_calls_resolve_through_aliases():
    """Module aliases, member aliases and local names qualify call targets."""
    graph = parse_source(BANK, "move")
    assert _edges(graph) == {
        ("bank::deposit", "coin::mint"),
        ("bank::deposit", "bank::helper"),
        ("bank::deposit", "vector::empty"),
        ("bank::helper", "vault::lock"),
        ("bank::helper", "bank::helper"),
    }


def test_move_external_placeholders_and_scope_clusters():
    """Unknown qualified targets become external nodes clustered by their module."""
    graph = parse_source(BANK, "move")
    externals = {n.id: n.origin_scope for n in graph.nodes if n.classification == "external"}
    assert externals == {"vector::empty": "vector", "vault::lock": "vault"}
    clusters = cluster_nodes(graph)
    assert clusters["coin::mint"] == "coin"
    assert clusters["bank::helper"] == "bank"
    assert clusters["vault::lock"] == "vault"


def test_expand_use():
    """Brace lists, ``Self`` and ``as`` aliases expand to (alias, path) pairs."""
    assert expand_use("0x1::m::{Self, f as g}") == [("m", "0x1::m"), ("g", "0x1::m::f")]
    assert expand_use("std::vector") == [("vector", "std::vector")]
    assert expand_use("0x1::m::Self as mm") == [("mm", "0x1::m")]


def test_qualify_call():
    """Bare built-ins do not resolve; ``Self::`` means the current module."""
    aliases = {"coin": "0x1::coin", "mint_alias": "0x1::coin::mint"}
    assert qualify_call("mint_alias", "bank", aliases, set()) == "coin::mint"
    assert qualify_call("helper", "bank", aliases, {"helper"}) == "bank::helper"
    assert qualify_call("borrow_global", "bank", aliases, set()) is None
    assert qualify_call("Self::helper", "bank", aliases, set()) == "bank::helper"
    assert qualify_call("coin::burn", "bank", aliases, set()) == "coin::burn"
    assert qualify_call("0x2::pool::swap", "bank", aliases, set()) == "pool::swap"


def test_move_file_scoped_module_and_script():
    """``module a::m;`` runs to end of file; ``script {}`` blocks are modules too."""
    source = "module 0x1::solo;\nfun a() { b(); }\nfun b() { }\n"
    graph = parse_source(source, "move")
    assert graph.node_ids() == ["solo::a", "solo::b"]
    assert _edges(graph) == {("solo::a", "solo::b")}

    script = "script { use 0x1::coin; fun main() { coin::mint(1); } }"
    graph = parse_source(script, "move")
    assert [n.id for n in graph.nodes] == ["script::main", "coin::mint"]


def test_noir_neutralize_keeps_length():
    """Noir-only keywords are rewritten in place."""
    source = "unconstrained fn f(x: pub Field) -> pub Field { x }\nglobal N: u32 = 3;"
    out = neutralize(source)
    assert len(out) == len(source)
    assert "unconstrained" not in out and "pub Field" not in out
    assert "static N" in out


def test_strip_generics():
    """Turbofish and nested generic arguments are removed from call paths."""
    assert strip_generics("utils::inc::<Field>") == "utils::inc"
    assert strip_generics("Map::<K, Vec<V>>::new") == "Map::new"


NOIR = """
mod utils {
    pub fn inc(x: Field) -> Field { x + 1 }
    mod math {
        pub fn double(x: Field) -> Field { x * 2 }
    }
}

use utils::inc;

struct Box { v: Field }

impl Box {
    fn new(v: Field) -> Self { Box { v } }
    fn get(self) -> Field { self.v }
    fn bumped(self) -> Field { inc(self.get()) }
}

fn main(x: Field) -> pub Field {
    let b = Box::new(x);
    let y = utils::math::double(x);
    std::hash::pedersen(y);
    b.bumped() + y
}
"""


def test_noir_functions_are_qualified():
    """Module functions use module paths; impl methods use the type name."""
    graph = parse_source(NOIR, "noir")
    real = [n for n in graph.nodes if n.classification != "external"]
    assert [n.id for n in real] == [
        "utils::inc",
        "utils::math::double",
        "Box::new",
        "Box::get",
        "Box::bumped",
        "main",
    ]
    assert graph.get("main").parameters == ("x",)
    assert graph.get("Box::get").parameters == ("self",)
    assert graph.get("main").label == "main(x: Field)"
    assert graph.get("utils::math::double").origin_scope == "utils::math"


def test_noir_calls_resolve():
    """Use aliases, scoped paths, ``self`` methods and unique methods resolve."""
    graph = parse_source(NOIR, "noir")
    assert _edges(graph) == {
        ("Box::bumped", "utils::inc"),
        ("Box::bumped", "Box::get"),
        ("main", "Box::new"),
        ("main", "utils::math::double"),
        ("main", "std::hash::pedersen"),
        ("main", "Box::bumped"),
    }
    external = graph.get("std::hash::pedersen")
    assert external.classification == "external"


def test_noir_wildcard_and_relative_paths():
    """Glob imports and ``self::``/``super::`` prefixes find their targets."""
    source = """
    mod a {
        pub fn one() -> Field { 1 }
        mod b {
            fn two() -> Field { super::one() + self::three() }
            fn three() -> Field { 3 }
        }
    }
    use a::*;
    fn main() { one(); }
    """
    graph = parse_source(source, "noir")
    assert _edges(graph) == {
        ("a::b::two", "a::one"),
        ("a::b::two", "a::b::three"),
        ("main", "a::one"),
    }


def test_noir_incomplete_source_gives_empty_graph():
    """A declaration with no body yields no functions."""
    assert parse_source("fn foo(", "noir").nodes == []
    assert parse_source("", "noir").nodes == []


def test_parser_context_reuses_parsers():
    """A context builds each grammar once."""
    context = ParserContext()
    assert context.loaded == []
    parse_source("fn a() { }", "noir", context)
    first = context.parser("rust")
    parse_source("fn b() { }", "noir", context)
    assert context.parser("rust") is first
    assert context.loaded == ["rust"]
