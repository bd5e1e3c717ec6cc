from __future__ import annotations

import pytest

from gpu_layout.internals.errors import LayoutError
from gpu_layout.ir.arena import Arena, Handle
from gpu_layout.ir.typesys import Type, Scalar, ScalarKind


def test_append_returns_dense_handles_in_order() -> None:
    arena: Arena[str] = Arena()
    handles = [arena.append(v) for v in ("a", "b", "c")]

    assert [h.index for h in handles] == [0, 1, 2]
    assert list(arena) == ["a", "b", "c"]
    assert [(h.index, v) for h, v in arena.items()] == [(0, "a"), (1, "b"), (2, "c")]
    assert len(arena) == 3


def test_getitem_by_handle() -> None:
    arena: Arena[str] = Arena()
    h = arena.append("x")

    assert arena[h] == "x"
    assert arena.contains(h)


def test_fetch_or_append_deduplicates_equal_values() -> None:
    arena: Arena[Type] = Arena()
    first = arena.fetch_or_append(Type(Scalar(ScalarKind.FLOAT, 4)))
    again = arena.fetch_or_append(Type(Scalar(ScalarKind.FLOAT, 4)))
    other = arena.fetch_or_append(Type(Scalar(ScalarKind.SINT, 4)))

    assert first == again
    assert other != first
    assert len(arena) == 2


def test_append_does_not_deduplicate() -> None:
    arena: Arena[str] = Arena()
    first = arena.append("x")
    second = arena.append("x")

    assert first != second
    assert arena.fetch_if("x") == first


def test_arena_from_existing_data_indexes_values() -> None:
    arena = Arena(["a", "b"])

    assert arena.fetch_or_append("b") == Handle(1)
    assert len(arena) == 2


def test_foreign_handle_is_internal_error() -> None:
    arena: Arena[str] = Arena()
    arena.append("only")

    with pytest.raises(LayoutError) as exc_info:
        arena[Handle(5)]
    assert exc_info.value.code == "CE0005"
    assert exc_info.value.context["count"] == 1


def test_handles_are_ordered_and_hashable() -> None:
    assert Handle(1) < Handle(2)
    assert len({Handle(3), Handle(3)}) == 1
    assert str(Handle(7)) == "[7]"


def test_negative_handle_rejected() -> None:
    with pytest.raises(ValueError):
        Handle(-1)
