"""
Lexical helpers shared by the extractors.

None of these build a token stream for a full grammar. They only know enough
about comments, string literals and bracket nesting to keep the structural
scans in the extractors from tripping over them.
"""
from __future__ import annotations

from typing import Iterable, Sequence, Tuple

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def _blank(text: str) -> str:
    # Keep newlines so line numbers and offsets survive.
    return "".join(ch if ch == "\n" else " " for ch in text)


def _string_end(code: str, start: int, quote: str) -> int:
    """Index just past the string literal opened at ``start``."""
    i = start + 1
    n = len(code)
    while i < n:
        ch = code[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote or ch == "\n":
            return i + 1
        i += 1
    return n


def strip_comments(
    code: str,
    line_markers: Sequence[str] = ("//",),
    block_pairs: Sequence[Tuple[str, str]] = (("/*", "*/"),),
    *,
    nested: bool = False,
    quotes: Iterable[str] = ('"',),
) -> str:
    """
    Blank out line and block comments, leaving string literals intact.

    Comment characters are replaced by spaces (newlines are kept), so every
    offset in the result points at the same place in the input.

    Args:
        code: Source text
        line_markers: Markers that start a comment running to end of line
        block_pairs: (open, close) delimiters of block comments
        nested: Whether block comments nest (FunC ``{- {- -} -}``)
        quotes: String literal delimiters

    Returns:
        The source with comments blanked
    """
    quotes = tuple(quotes)
    out: list[str] = []
    i = 0
    n = len(code)
    while i < n:
        ch = code[i]

        if ch in quotes:
            end = _string_end(code, i, ch)
            out.append(code[i:end])
            i = end
            continue

        block = next((pair for pair in block_pairs if code.startswith(pair[0], i)), None)
        if block is not None:
            opener, closer = block
            depth = 1
            j = i + len(opener)
            while j < n and depth:
                if nested and code.startswith(opener, j):
                    depth += 1
                    j += len(opener)
                elif code.startswith(closer, j):
                    depth -= 1
                    j += len(closer)
                else:
                    j += 1
            out.append(_blank(code[i:j]))
            i = j
            continue

        if any(code.startswith(marker, i) for marker in line_markers):
            j = code.find("\n", i)
            if j == -1:
                j = n
            out.append(" " * (j - i))
            i = j
            continue

        out.append(ch)
        i += 1
    return "".join(out)


def mask_strings(code: str, quotes: Iterable[str] = ('"',)) -> str:
    """Replace the contents of string literals with spaces, keeping quotes."""
    quotes = tuple(quotes)
    out: list[str] = []
    i = 0
    n = len(code)
    while i < n:
        ch = code[i]
        if ch in quotes:
            end = _string_end(code, i, ch)
            closed = end - 1 > i and code[end - 1] == ch
            inner_end = end - 1 if closed else end
            out.append(ch)
            out.append(_blank(code[i + 1 : inner_end]))
            if closed:
                out.append(ch)
            i = end
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def balanced_span(
    text: str,
    open_index: int,
    open_ch: str = "{",
    close_ch: str = "}",
    *,
    skip_strings: bool = True,
) -> int | None:
    """
    Find the delimiter closing the one at ``open_index``.

    Uses a running depth counter, so nesting of any depth is handled.

    Returns:
        Index of the matching closer, or None when the span is unterminated
    """
    if open_index >= len(text) or text[open_index] != open_ch:
        return None
    depth = 0
    i = open_index
    n = len(text)
    while i < n:
        ch = text[i]
        if skip_strings and ch == '"':
            i = _string_end(text, i, ch)
            continue
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def split_parameters(params: str) -> Tuple[str, ...]:
    """Split a parameter list on top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in params:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and depth > 0:
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return tuple(p.strip() for p in parts if p.strip())


def line_prefix(text: str, index: int) -> str:
    """Text between the start of the line holding ``index`` and ``index``."""
    return text[text.rfind("\n", 0, index) + 1 : index]
