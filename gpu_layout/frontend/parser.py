"""Lark parser setup for type table descriptions."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from lark import Lark, Tree, UnexpectedInput, UnexpectedToken, UnexpectedCharacters

from gpu_layout.internals import errors as er
from gpu_layout.internals.report import Reporter, Span
from gpu_layout.frontend.builder import TableBuilder, TypeTable

GRAMMAR_PATH = Path(__file__).parent.parent / "grammar.lark"


@lru_cache(maxsize=1)
def get_parser() -> Lark:
    return Lark.open(
        str(GRAMMAR_PATH),
        parser="lalr",
        lexer="basic",
        propagate_positions=True,
        maybe_placeholders=False,
    )


def describe_parse_error(e: UnexpectedInput) -> str:
    """Turn a lark exception into a one-line message."""
    if isinstance(e, UnexpectedToken):
        if e.token.type == "$END":
            return "unexpected end of input"
        expected = ", ".join(sorted(e.expected))
        return f"unexpected '{e.token}', expected one of: {expected}"
    if isinstance(e, UnexpectedCharacters):
        return f"unexpected character '{e.char}'"
    return "unexpected end of input"


def parse_tree(src: str, dump_parse: bool = False) -> Tree:
    tree = get_parser().parse(src)
    if dump_parse:
        print(tree.pretty())
    return tree


def parse_description(src: str, reporter: Reporter, dump_parse: bool = False) -> Optional[TypeTable]:
    """Parse a description into type and constant arenas.

    Returns:
        The populated TypeTable, or None if any error was reported.
    """
    try:
        tree = parse_tree(src, dump_parse=dump_parse)
    except UnexpectedInput as e:
        line = getattr(e, "line", -1)
        column = getattr(e, "column", -1)
        span = Span(line, column, line, column) if line > 0 and column > 0 else None
        er.emit(reporter, er.ERR.CE1001, span, detail=describe_parse_error(e))
        return None

    return TableBuilder(reporter).build(tree)
