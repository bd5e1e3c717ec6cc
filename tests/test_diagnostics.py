from __future__ import annotations

import io

import pytest

from gpu_layout.internals import errors as er
from gpu_layout.internals.errors import ERR, REGISTRY, LayoutError, Severity, raise_internal_error
from gpu_layout.internals.report import Reporter, Span


def test_catalog_lookup_by_attribute_and_key() -> None:
    assert ERR.CE1003 is ERR["CE1003"]
    assert ERR.CW1001.severity is Severity.WARNING
    with pytest.raises(AttributeError):
        ERR.CE9999


def test_duplicate_codes_are_rejected() -> None:
    with pytest.raises(ValueError):
        er._add(REGISTRY["CE0001"])


def test_internal_codes_are_errors() -> None:
    internal = [m for m in REGISTRY.values() if m.category is er.Category.INTERNAL]
    assert {m.code for m in internal} == {"CE0001", "CE0002", "CE0003", "CE0004", "CE0005"}
    assert all(m.severity is Severity.ERROR for m in internal)


def test_raise_internal_error_keeps_context() -> None:
    with pytest.raises(LayoutError) as exc_info:
        raise_internal_error("CE0002", handle="[3]", count=2)

    err = exc_info.value
    assert str(err) == "CE0002: type handle [3] is not in the layout table (2 layouts)"
    assert err.context == {"handle": "[3]", "count": 2}


def test_missing_format_key_is_reported() -> None:
    with pytest.raises(KeyError, match="missing text key 'count'"):
        raise_internal_error("CE0002", handle="[3]")


def test_emit_routes_by_severity() -> None:
    r = Reporter()
    er.emit(r, ERR.CE1003, None, name="X")
    er.emit(r, ERR.CW1001, None, name="S")

    assert [(d.kind, d.code) for d in r.items] == [("error", "CE1003"), ("warning", "CW1001")]
    assert r.has_errors and r.has_warnings


def test_format_plain_with_snippet() -> None:
    r = Reporter(source="type A = array<B>;\n", filename="t.types")
    er.emit(r, ERR.CE1003, Span(1, 16, 1, 17), name="B")

    assert r.format(use_color=False, use_unicode=False).splitlines() == [
        "t.types:1:16: error [CE1003]: unknown name 'B'.",
        "  | type A = array<B>;",
        "  ` " + " " * 15 + "^",
    ]


def test_format_unicode_guides() -> None:
    r = Reporter(source="type A = array<B>;\n", filename="t.types")
    er.emit(r, ERR.CE1003, Span(1, 16, 1, 17), name="B")

    lines = r.format(use_color=False, use_unicode=True).splitlines()
    assert lines[0] == "  ╭──┤ t.types:1:16: error [CE1003]: unknown name 'B'."
    assert lines[2].endswith("┯")
    assert lines[3].startswith("  ╰")


def test_format_without_span() -> None:
    r = Reporter(filename="t.types")
    r.error("CE0001", "boom", None)

    assert r.format(use_color=False) == "t.types: error [CE0001]: boom."


def test_print_disables_color_for_non_tty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    r = Reporter(filename="t.types")
    r.warn("CW1001", "struct 'S' has no members", None)
    stream = io.StringIO()

    r.print(stream)

    assert stream.getvalue() == "t.types: warning [CW1001]: struct 'S' has no members.\n"


def test_print_nothing_when_empty() -> None:
    stream = io.StringIO()
    Reporter().print(stream)
    assert stream.getvalue() == ""
