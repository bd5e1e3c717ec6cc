from __future__ import annotations

from pathlib import Path

import pytest

from gpu_layout.ir.arena import Arena
from gpu_layout.ir.typesys import (
    Type, Constant, Scalar, Vector, ScalarKind, VectorSize, StructMember, Struct,
)


@pytest.fixture
def types() -> Arena[Type]:
    return Arena()


@pytest.fixture
def constants() -> Arena[Constant]:
    return Arena()


@pytest.fixture
def f32() -> Type:
    return Type(Scalar(ScalarKind.FLOAT, 4), name="f32")


@pytest.fixture
def vec3f() -> Type:
    return Type(Vector(VectorSize.TRI, ScalarKind.FLOAT, 4), name="vec3f")


@pytest.fixture
def light_arenas(types: Arena[Type], constants: Arena[Constant], f32: Type, vec3f: Type):
    """struct Light { position: vec3<f32>, intensity: f32 } and its handles."""
    h_vec = types.append(vec3f)
    h_f32 = types.append(f32)
    h_light = types.append(Type(Struct((
        StructMember(h_vec, name="position"),
        StructMember(h_f32, name="intensity"),
    )), name="Light"))
    return types, constants, {"vec3f": h_vec, "f32": h_f32, "Light": h_light}


@pytest.fixture
def write_source(tmp_path: Path):
    def _write(text: str, name: str = "table.types") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write
