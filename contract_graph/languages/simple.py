"""
Languages handled by the generic keyword scanner.

Each entry is (language id, display name, declaration keyword regex,
extensions). The keyword regex only has to match the word(s) in front of the
function name; the scanner handles the rest of the declaration shape.
"""
from __future__ import annotations

from typing import Tuple

from contract_graph.languages.base import LanguageAdapter, keyword_adapter

_KEYWORD_LANGUAGES: Tuple[Tuple[str, str, str, Tuple[str, ...]], ...] = (
    ("huff", "Huff", r"#define\s+(?:macro|fn)", (".huff",)),
    ("aiken", "Aiken", r"fn", (".ak", ".aiken")),
    ("bamboo", "Bamboo", r"function", (".bamboo",)),
    ("cadence", "Cadence", r"(?:pub\s+)?fun", (".cdc",)),
    ("cairo", "Cairo", r"func|fn", (".cairo",)),
    ("clar", "Clarity", r"fn|function|def|define", (".clar",)),
    ("fe", "Fe", r"fn", (".fe",)),
    ("flint", "Flint", r"fun", (".flint",)),
    ("glow", "Glow", r"fun|function", (".glow",)),
    ("ink", "ink!", r"fn", (".ink",)),
    ("leo", "Leo", r"function|fn", (".leo",)),
    ("ligo", "LIGO", r"function|let", (".ligo", ".mligo", ".religo", ".jsligo")),
    ("liquidity", "Liquidity", r"let", (".liq",)),
    ("marlowe", "Marlowe", r"contract|when", (".marlowe",)),
    ("michelson", "Michelson", r"entrypoint|func|function", (".tz",)),
    ("pact", "Pact", r"defun|defpact|defcap", (".pact",)),
    ("plutus", "Plutus", r"fun|function|def", (".plutus",)),
    ("reach", "Reach", r"function|fun", (".reach",)),
    ("rell", "Rell", r"function|fn", (".rell",)),
    ("rholang", "Rholang", r"contract", (".rho",)),
    ("scilla", "Scilla", r"transition|procedure|function|def", (".scilla",)),
    ("scrypto", "Scrypto", r"fn", (".rs", ".scrypto")),
    ("simplicity", "Simplicity", r"fun", (".simp",)),
    ("sophia", "Sophia", r"entrypoint|function", (".aes",)),
    ("soroban", "Soroban", r"fn", (".soroban",)),
    ("teal", "TEAL", r"sub", (".teal",)),
    ("yul", "Yul", r"function", (".yul",)),
)

# Lisp-family and ML-family sources comment differently from the C family.
_COMMENT_MARKERS = {
    "clar": (";;",),
    "pact": (";",),
    "scilla": ("(*",),
    "liquidity": ("(*",),
    "michelson": ("#",),
}

SIMPLE_ADAPTERS: Tuple[LanguageAdapter, ...] = tuple(
    keyword_adapter(
        language_id,
        display_name,
        keyword,
        extensions,
        comment_markers=_COMMENT_MARKERS.get(language_id, ("//",)),
    )
    for language_id, display_name, keyword, extensions in _KEYWORD_LANGUAGES
)
