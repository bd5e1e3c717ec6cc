from __future__ import annotations
from enum import Enum, IntEnum
from typing import Optional, Union
from dataclasses import dataclass

from gpu_layout.ir.arena import Handle

BOOL_WIDTH = 1

class ScalarKind(Enum):
    SINT = "sint"
    UINT = "uint"
    FLOAT = "float"
    BOOL = "bool"

    def prefix(self) -> str:
        return {"sint": "i", "uint": "u", "float": "f", "bool": "bool"}[self.value]


class VectorSize(IntEnum):
    BI = 2
    TRI = 3
    QUAD = 4


def scalar_name(kind: ScalarKind, width: int) -> str:
    if kind is ScalarKind.BOOL:
        return "bool"
    return f"{kind.prefix()}{width * 8}"


# ------------------------
# Type variants
# ------------------------

@dataclass(frozen=True)
class Scalar:
    kind: ScalarKind
    width: int  # bytes

    def __str__(self) -> str:
        return scalar_name(self.kind, self.width)

@dataclass(frozen=True)
class Vector:
    size: VectorSize
    kind: ScalarKind
    width: int

    def __str__(self) -> str:
        return f"vec{int(self.size)}<{scalar_name(self.kind, self.width)}>"

@dataclass(frozen=True)
class Matrix:
    """Column-major float matrix."""
    columns: VectorSize
    rows: VectorSize
    width: int

    def __str__(self) -> str:
        return f"mat{int(self.columns)}x{int(self.rows)}<f{self.width * 8}>"

@dataclass(frozen=True)
class Pointer:
    base: Handle

    def __str__(self) -> str:
        return f"ptr<{self.base}>"

@dataclass(frozen=True)
class ValuePointer:
    """Pointer to a scalar or vector that has no type of its own in the arena."""
    size: Optional[VectorSize]
    kind: ScalarKind
    width: int

    def __str__(self) -> str:
        target = scalar_name(self.kind, self.width)
        if self.size is not None:
            target = f"vec{int(self.size)}<{target}>"
        return f"ptr<{target}>"

@dataclass(frozen=True)
class ConstantArraySize:
    constant: Handle

    def __str__(self) -> str:
        return f"const{self.constant}"

@dataclass(frozen=True)
class DynamicArraySize:
    def __str__(self) -> str:
        return "dynamic"

DYNAMIC = DynamicArraySize()

ArraySize = Union[ConstantArraySize, DynamicArraySize]

@dataclass(frozen=True)
class Array:
    base: Handle
    size: ArraySize
    stride: Optional[int] = None  # explicit stride, None derives it from the base layout

    def __str__(self) -> str:
        if isinstance(self.size, DynamicArraySize):
            return f"array<{self.base}>"
        return f"array<{self.base}, {self.size}>"

@dataclass(frozen=True)
class StructMember:
    ty: Handle
    name: Optional[str] = None
    align: Optional[int] = None  # power of two
    size: Optional[int] = None   # nonzero byte count

@dataclass(frozen=True)
class Struct:
    """Struct with members in declaration order.

    Members are kept in a tuple so the type stays hashable and can be
    deduplicated by the arena.
    """
    members: tuple[StructMember, ...]

    def __str__(self) -> str:
        return f"struct({len(self.members)} members)"

class ImageDimension(Enum):
    D1 = "d1"
    D2 = "d2"
    D3 = "d3"
    CUBE = "cube"

@dataclass(frozen=True)
class Image:
    dim: ImageDimension = ImageDimension.D2
    arrayed: bool = False

    def __str__(self) -> str:
        suffix = "_array" if self.arrayed else ""
        return f"image_{self.dim.value}{suffix}"

@dataclass(frozen=True)
class Sampler:
    comparison: bool = False

    def __str__(self) -> str:
        return "sampler_comparison" if self.comparison else "sampler"

TypeInner = Union[
    Scalar,
    Vector,
    Matrix,
    Pointer,
    ValuePointer,
    Array,
    Struct,
    Image,
    Sampler,
]

@dataclass(frozen=True)
class Type:
    inner: TypeInner
    name: Optional[str] = None

    def __str__(self) -> str:
        return self.name or str(self.inner)


# ------------------------
# Constants
# ------------------------

@dataclass(frozen=True)
class Sint:
    value: int

@dataclass(frozen=True)
class Uint:
    value: int

@dataclass(frozen=True)
class Float:
    value: float

@dataclass(frozen=True)
class Bool:
    value: bool

ScalarValue = Union[Sint, Uint, Float, Bool]

@dataclass(frozen=True)
class ScalarConstant:
    width: int
    value: ScalarValue

    def __str__(self) -> str:
        return f"{type(self.value).__name__.lower()}({self.value.value})"

@dataclass(frozen=True)
class CompositeConstant:
    ty: Handle
    components: tuple[Handle, ...]

    def __str__(self) -> str:
        return f"composite<{self.ty}>"

ConstantInner = Union[ScalarConstant, CompositeConstant]

@dataclass(frozen=True)
class Constant:
    inner: ConstantInner
    name: Optional[str] = None

    def __str__(self) -> str:
        return self.name or str(self.inner)


def variant_name(inner: TypeInner) -> str:
    """Lower-case variant tag used in listings and error context."""
    return {
        Scalar: "scalar",
        Vector: "vector",
        Matrix: "matrix",
        Pointer: "pointer",
        ValuePointer: "value_pointer",
        Array: "array",
        Struct: "struct",
        Image: "image",
        Sampler: "sampler",
    }[type(inner)]
