"""Lowering of laid-out types to explicitly padded LLVM IR types.

Every lowered type occupies exactly ``TypeLayout.size`` bytes when packed:
structs become packed literal structs with ``[n x i8]`` padding between
members and at the tail, and array elements are padded out to the stride.
Alignment is not expressed in the LLVM type; it stays with the layout.
"""
from __future__ import annotations

from typing import Dict, List

from llvmlite import ir

from gpu_layout.ir.arena import Arena, Handle
from gpu_layout.ir.typesys import (
    Type, ScalarKind, Scalar, Vector, Matrix, Pointer, ValuePointer, Array,
    Struct, Image, Sampler,
)
from gpu_layout.proc.layouter import Layouter, POINTER_SIZE

BYTE_BIT_WIDTH = 8


class LLVMLowering:
    """Maps type handles to LLVM IR types, caching per handle."""

    def __init__(self, types: Arena[Type], layouter: Layouter):
        self.types = types
        self.layouter = layouter
        self.i8: ir.IntType = ir.IntType(BYTE_BIT_WIDTH)
        # Opaque pointer sentinel, same footprint as the pointer layout
        self.pointer: ir.IntType = ir.IntType(POINTER_SIZE * BYTE_BIT_WIDTH)
        self.empty: ir.LiteralStructType = ir.LiteralStructType([])
        self._cache: Dict[Handle, ir.Type] = {}

    def scalar(self, kind: ScalarKind, width: int) -> ir.Type:
        if kind is ScalarKind.FLOAT:
            match width:
                case 2:
                    return ir.HalfType()
                case 4:
                    return ir.FloatType()
                case 8:
                    return ir.DoubleType()
            raise TypeError(f"unsupported float width: {width}")
        return ir.IntType(width * BYTE_BIT_WIDTH)

    def padding(self, count: int) -> ir.ArrayType:
        return ir.ArrayType(self.i8, count)

    def ll_type(self, handle: Handle) -> ir.Type:
        cached = self._cache.get(handle)
        if cached is not None:
            return cached
        lowered = self._lower(handle)
        self._cache[handle] = lowered
        return lowered

    def _lower(self, handle: Handle) -> ir.Type:
        inner = self.types[handle].inner
        match inner:
            case Scalar(kind=kind, width=width):
                return self.scalar(kind, width)
            case Vector(size=size, kind=kind, width=width):
                return ir.ArrayType(self.scalar(kind, width), int(size))
            case Matrix(columns=columns, rows=rows, width=width):
                column = ir.ArrayType(self.scalar(ScalarKind.FLOAT, width), int(rows))
                return ir.ArrayType(column, int(columns))
            case Pointer() | ValuePointer():
                return self.pointer
            case Array(base=base):
                return self._lower_array(handle, base)
            case Struct(members=members):
                return self._lower_struct(handle, members)
            case Image() | Sampler():
                return self.empty
        raise TypeError(f"unknown type variant: {inner!r}")

    def _lower_array(self, handle: Handle, base: Handle) -> ir.ArrayType:
        layout = self.layouter.resolve(handle)
        stride = layout.alignment
        element = self._sized(self.ll_type(base), self.layouter.resolve(base).size, stride)
        return ir.ArrayType(element, layout.size // stride)

    def _lower_struct(self, handle: Handle, members) -> ir.LiteralStructType:
        elements: List[ir.Type] = []
        offset = 0
        for placement, member in zip(self.layouter.struct_placements(members), members):
            if placement.offset > offset:
                elements.append(self.padding(placement.offset - offset))
            base_size = self.layouter.resolve(member.ty).size
            elements.append(self._sized(self.ll_type(member.ty), base_size, placement.size))
            offset = placement.span.stop
        total = self.layouter.resolve(handle).size
        if total > offset:
            elements.append(self.padding(total - offset))
        return ir.LiteralStructType(elements, packed=True)

    def _sized(self, ty: ir.Type, size: int, target: int) -> ir.Type:
        """Fit ``ty`` (``size`` bytes) into exactly ``target`` bytes."""
        if target == size:
            return ty
        if target > size:
            return ir.LiteralStructType([ty, self.padding(target - size)], packed=True)
        # Overridden below the natural size; only the bytes are kept
        return self.padding(target)

    def describe(self, handle: Handle) -> str:
        return str(self.ll_type(handle))
