"""Size and alignment of every type in a type arena.

The layout follows the default table used by GPU shading languages:

- scalars are aligned to their width
- 2-component vectors to twice the width, 3- and 4-component vectors to
  four times the width
- matrices like a column vector with ``rows`` components
- arrays to their stride, which defaults to the element size rounded up to
  the element alignment
- structs to the largest member alignment, with trailing padding

Pointers get a 4-byte, 1-aligned sentinel layout; images and samplers are
not memory resident and take no space.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from gpu_layout.internals.errors import LayoutError, emit, ERR, raise_internal_error
from gpu_layout.internals.report import Reporter
from gpu_layout.ir.arena import Arena, Handle
from gpu_layout.ir.typesys import (
    Type, Scalar, Vector, Matrix, Pointer, ValuePointer, Array, Struct,
    Image, Sampler, StructMember, VectorSize, ConstantArraySize,
    DynamicArraySize, Constant, ScalarConstant, Sint, Uint, variant_name,
)

U32_MAX = 0xFFFF_FFFF

POINTER_SIZE = 4
POINTER_ALIGNMENT = 1


@dataclass(frozen=True)
class TypeLayout:
    size: int
    alignment: int


@dataclass(frozen=True)
class MemberPlacement:
    """Byte range and effective alignment of one struct member."""
    index: int
    name: Optional[str]
    span: range
    alignment: int

    @property
    def offset(self) -> int:
        return self.span.start

    @property
    def size(self) -> int:
        return len(self.span)


def round_up(alignment: int, offset: int) -> int:
    """Round ``offset`` up for ``alignment``.

    The test masks with the alignment itself rather than ``alignment - 1``.
    Downstream offsets depend on this exact formula, so keep it as is.
    """
    rem = offset & alignment
    if rem == 0:
        return offset
    return offset + alignment - rem


class Layouter:
    """Dense table of TypeLayout, index-aligned with a type arena.

    Build it once per snapshot of the arenas with ``Layouter.new`` (or
    ``initialize`` on an existing instance) and treat it as read-only
    afterwards. Rebuilding is an explicit full pass.
    """

    round_up = staticmethod(round_up)

    def __init__(self) -> None:
        self.layouts: List[TypeLayout] = []

    @classmethod
    def new(cls, types: Arena[Type], constants: Arena[Constant]) -> Layouter:
        this = cls()
        this.initialize(types, constants)
        return this

    @classmethod
    def try_new(
        cls,
        types: Arena[Type],
        constants: Arena[Constant],
        reporter: Reporter,
    ) -> Optional[Layouter]:
        """Build a table, reporting internal errors instead of raising them.

        This trades the fatal guarantee of ``new`` for a diagnostic: callers
        using it accept that malformed input reaches them as a reported
        error and a ``None`` result.
        """
        try:
            return cls.new(types, constants)
        except LayoutError as e:
            emit(reporter, ERR[e.code], None, **e.context)
            return None

    def clear(self) -> None:
        self.layouts.clear()

    def __len__(self) -> int:
        return len(self.layouts)

    def __iter__(self) -> Iterator[TypeLayout]:
        return iter(self.layouts)

    def resolve(self, handle: Handle[Type]) -> TypeLayout:
        if not 0 <= handle.index < len(self.layouts):
            raise_internal_error("CE0002", handle=handle, count=len(self.layouts))
        return self.layouts[handle.index]

    def member_placement(self, offset: int, member: StructMember) -> tuple[range, int]:
        layout = self.resolve(member.ty)
        alignment = member.align if member.align is not None else layout.alignment
        start = round_up(alignment, offset)
        end = start + (member.size if member.size is not None else layout.size)
        return range(start, end), alignment

    def struct_placements(self, members: Iterable[StructMember]) -> List[MemberPlacement]:
        """Place every member of a struct, threading the running offset."""
        placements: List[MemberPlacement] = []
        offset = 0
        for index, member in enumerate(members):
            span, alignment = self.member_placement(offset, member)
            placements.append(MemberPlacement(index, member.name, span, alignment))
            offset = span.stop
        return placements

    def initialize(self, types: Arena[Type], constants: Arena[Constant]) -> None:
        self.layouts.clear()

        for handle, ty in types.items():
            layout = self._layout_of(handle, ty, constants)
            if layout.alignment == 0:
                raise_internal_error("CE0003", handle=handle, variant=variant_name(ty.inner))
            if layout.size > U32_MAX:
                raise_internal_error(
                    "CE0004", handle=handle, variant=variant_name(ty.inner), size=layout.size
                )
            self.layouts.append(layout)

    def _layout_of(self, handle: Handle[Type], ty: Type, constants: Arena[Constant]) -> TypeLayout:
        match ty.inner:
            case Scalar(width=width):
                return TypeLayout(size=width, alignment=width)
            case Vector(size=size, width=width):
                count = 4 if size >= VectorSize.TRI else 2
                return TypeLayout(size=int(size) * width, alignment=count * width)
            case Matrix(columns=columns, rows=rows, width=width):
                count = 4 if rows >= VectorSize.TRI else 2
                return TypeLayout(size=int(columns) * int(rows) * width, alignment=count * width)
            case Pointer() | ValuePointer():
                return TypeLayout(size=POINTER_SIZE, alignment=POINTER_ALIGNMENT)
            case Array(base=base, size=size, stride=stride):
                count = self._array_count(handle, size, constants)
                if stride is None:
                    base_layout = self.resolve(base)
                    stride = round_up(base_layout.alignment, base_layout.size)
                return TypeLayout(size=count * stride, alignment=stride)
            case Struct(members=members):
                total = 0
                biggest_alignment = 1
                for member in members:
                    placement, alignment = self.member_placement(total, member)
                    biggest_alignment = max(biggest_alignment, alignment)
                    total = placement.stop
                return TypeLayout(
                    size=round_up(biggest_alignment, total),
                    alignment=biggest_alignment,
                )
            case Image() | Sampler():
                return TypeLayout(size=0, alignment=1)
        raise TypeError(f"unknown type variant: {ty.inner!r}")

    def _array_count(self, handle: Handle[Type], size, constants: Arena[Constant]) -> int:
        match size:
            case DynamicArraySize():
                # Bound later, at binding time
                return 0
            case ConstantArraySize(constant=const_handle):
                inner = constants[const_handle].inner
                match inner:
                    # Signed lengths are accepted so sizes need no explicit
                    # unsigned literal; both wrap to u32.
                    case ScalarConstant(value=Uint(value=value) | Sint(value=value)):
                        return value & U32_MAX
                raise_internal_error(
                    "CE0001",
                    handle=handle,
                    variant="array",
                    constant=const_handle,
                    found=inner,
                )
        raise TypeError(f"unknown array size: {size!r}")
