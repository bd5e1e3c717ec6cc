from __future__ import annotations

import pytest

from gpu_layout.backend.lowering import LLVMLowering
from gpu_layout.frontend import parse_description
from gpu_layout.internals.report import Reporter
from gpu_layout.ir.arena import Arena
from gpu_layout.ir.typesys import Type, Scalar, ScalarKind, Struct, StructMember
from gpu_layout.proc.layouter import Layouter

LIGHT_STR = "<{[3 x float], <{float, [4 x i8]}>}>"


def _lower(src: str):
    reporter = Reporter(source=src)
    table = parse_description(src, reporter)
    assert table is not None, reporter.format(use_color=False)
    layouter = Layouter.new(table.types, table.constants)
    return table, LLVMLowering(table.types, layouter)


@pytest.mark.parametrize(("decl", "expected"), [
    ("f32", "float"),
    ("f16", "half"),
    ("f64", "double"),
    ("i32", "i32"),
    ("u64", "i64"),
    ("bool", "i8"),
    ("vec<3, f32>", "[3 x float]"),
    ("mat<4, 3, f32>", "[4 x [3 x float]]"),
    ("ptr<f32>", "i32"),
    ("value_ptr<vec<4, f32>>", "i32"),
    ("image<d2>", "{}"),
    ("sampler", "{}"),
])
def test_leaf_types(decl: str, expected: str) -> None:
    table, lowering = _lower(f"type T = {decl};")

    assert lowering.describe(table.type_handle("T")) == expected


def test_struct_with_size_override_is_padded() -> None:
    table, lowering = _lower(
        "type Light = struct { position: vec<3, f32>, @size(8) intensity: f32 };"
    )

    assert lowering.describe(table.type_handle("Light")) == LIGHT_STR


def test_array_elements_padded_to_stride() -> None:
    table, lowering = _lower("""
        type Light = struct { position: vec<3, f32>, @size(8) intensity: f32 };
        type Lights = @stride(32) array<Light, 4>;
        type Tail = array<Light>;
    """)

    assert lowering.describe(table.type_handle("Lights")) == f"[4 x <{{{LIGHT_STR}, [12 x i8]}}>]"
    assert lowering.describe(table.type_handle("Tail")) == f"[0 x {LIGHT_STR}]"


def test_padding_between_members() -> None:
    types: Arena[Type] = Arena()
    h_f32 = types.append(Type(Scalar(ScalarKind.FLOAT, 4)))
    h_struct = types.append(Type(Struct((
        StructMember(h_f32, name="a"),
        StructMember(h_f32, name="b", align=12),
    ))))
    lowering = LLVMLowering(types, Layouter.new(types, Arena()))

    # round_up(12, 4) places b at 12
    assert lowering.describe(h_struct) == "<{float, [8 x i8], float}>"


def test_size_override_below_natural_size_keeps_bytes() -> None:
    table, lowering = _lower("type S = struct { @size(2) x: f32, y: u32 };")

    assert lowering.describe(table.type_handle("S")) == "<{[2 x i8], i32}>"


def test_lowered_types_are_cached() -> None:
    table, lowering = _lower("type S = struct { x: f32 };")
    handle = table.type_handle("S")

    assert lowering.ll_type(handle) is lowering.ll_type(handle)
