"""Build type and constant arenas from a description parse tree.

Items are processed in file order, so every name must be defined before it
is used and the resulting type arena is forward-ordered. Inline type
expressions (``array<vec<3, f32>, 4>``) are appended as anonymous types
just before the type that uses them.

The builder only checks what it needs to build the arenas. Layout
semantics, including whether an array length constant is an integer, are
left to the Layouter.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from lark import Tree, Token

from gpu_layout.internals import errors as er
from gpu_layout.internals.errors import ERR
from gpu_layout.internals.report import Reporter, span_of
from gpu_layout.ir.arena import Arena, Handle
from gpu_layout.ir.typesys import (
    BOOL_WIDTH, ScalarKind, VectorSize, ImageDimension,
    Type, Scalar, Vector, Matrix, Pointer, ValuePointer, Array, Struct,
    StructMember, Image, Sampler, ConstantArraySize, DYNAMIC,
    Constant, ScalarConstant, Sint, Uint, Float, Bool,
)

PREDECLARED_SCALARS: Dict[str, Tuple[ScalarKind, int]] = {
    "bool": (ScalarKind.BOOL, BOOL_WIDTH),
    "i32": (ScalarKind.SINT, 4),
    "u32": (ScalarKind.UINT, 4),
    "f16": (ScalarKind.FLOAT, 2),
    "f32": (ScalarKind.FLOAT, 4),
    "i64": (ScalarKind.SINT, 8),
    "u64": (ScalarKind.UINT, 8),
    "f64": (ScalarKind.FLOAT, 8),
}

KNOWN_ATTRIBUTES = ("align", "size", "stride")

INT_CONSTANT_WIDTH = 4
FLOAT_CONSTANT_WIDTH = 4


@dataclass
class TypeTable:
    """Arenas built from one description, plus the names defined in it."""
    types: Arena[Type] = field(default_factory=Arena)
    constants: Arena[Constant] = field(default_factory=Arena)
    type_names: Dict[str, Handle] = field(default_factory=dict)
    constant_names: Dict[str, Handle] = field(default_factory=dict)

    def type_handle(self, name: str) -> Handle:
        return self.type_names[name]

    def constant_handle(self, name: str) -> Handle:
        return self.constant_names[name]


def parse_int_literal(text: str) -> Optional[Tuple[int, str]]:
    """Split an INT_LIT into its value and suffix ('', 'i' or 'u')."""
    suffix = ""
    if text and text[-1] in "iu":
        suffix = text[-1]
        text = text[:-1]
    try:
        value = int(text)
    except ValueError:
        return None
    if suffix == "u" and value < 0:
        return None
    return value, suffix


class TableBuilder:
    """Walks a parse tree and fills a TypeTable, reporting problems."""

    def __init__(self, reporter: Reporter) -> None:
        self.r = reporter
        self.table = TypeTable()

    def build(self, tree: Tree) -> Optional[TypeTable]:
        for item in tree.children:
            if not isinstance(item, Tree):
                continue
            if item.data == "const_def":
                self._const_def(item)
            elif item.data == "type_def":
                self._type_def(item)

        if self.r.has_errors:
            return None
        return self.table

    # ------------------------
    # Items
    # ------------------------

    def _const_def(self, node: Tree) -> None:
        name_tok, literal = node.children
        inner = self._literal(literal)
        if inner is None:
            return
        if not self._check_unique(name_tok):
            return
        handle = self.table.constants.append(Constant(inner, name=str(name_tok)))
        self.table.constant_names[str(name_tok)] = handle

    def _type_def(self, node: Tree) -> None:
        name_tok, expr = node.children
        if not self._check_unique(name_tok):
            return
        handle = self._type_expr(expr, name=str(name_tok))
        if handle is not None:
            self.table.type_names[str(name_tok)] = handle

    def _check_unique(self, name_tok: Token) -> bool:
        name = str(name_tok)
        if (name in self.table.type_names or name in self.table.constant_names
                or name in PREDECLARED_SCALARS):
            er.emit(self.r, ERR.CE1002, span_of(name_tok), name=name)
            return False
        return True

    def _literal(self, node: Tree) -> Optional[ScalarConstant]:
        match node.data:
            case "int_lit":
                tok = node.children[0]
                parsed = parse_int_literal(str(tok))
                if parsed is None:
                    er.emit(self.r, ERR.CE1005, span_of(tok), literal=str(tok))
                    return None
                value, suffix = parsed
                scalar = Uint(value) if suffix == "u" else Sint(value)
                return ScalarConstant(INT_CONSTANT_WIDTH, scalar)
            case "float_lit":
                return ScalarConstant(FLOAT_CONSTANT_WIDTH, Float(float(node.children[0])))
            case "true_lit":
                return ScalarConstant(BOOL_WIDTH, Bool(True))
            case "false_lit":
                return ScalarConstant(BOOL_WIDTH, Bool(False))
        raise NotImplementedError(f"unknown literal node '{node.data}'")

    # ------------------------
    # Type expressions
    # ------------------------

    def _type_expr(self, node: Tree, name: Optional[str] = None) -> Optional[Handle]:
        """Resolve a type expression to a handle, appending types as needed.

        A named expression (``type A = ...``) always gets a fresh arena
        entry, except for plain references which make ``A`` an alias.
        """
        *attr_nodes, body = node.children
        allowed = ("stride",) if body.data == "array_t" else ()
        attrs = self._attributes(attr_nodes, allowed, target=_target_name(body))
        if attrs is None:
            return None

        if body.data == "named_t":
            return self._resolve_type_name(body.children[0])

        inner = self._type_body(body, attrs, name)
        if inner is None:
            return None
        if name is not None:
            return self.table.types.append(Type(inner, name=name))
        return self.table.types.fetch_or_append(Type(inner))

    def _type_body(self, body: Tree, attrs: Dict[str, int], name: Optional[str]):
        match body.data:
            case "vector_t":
                size_tok, comp_tok = body.children
                size = self._vector_size(size_tok, "vector")
                comp = self._scalar_component(comp_tok)
                if size is None or comp is None:
                    return None
                return Vector(size, comp.kind, comp.width)
            case "matrix_t":
                cols_tok, rows_tok, comp_tok = body.children
                columns = self._vector_size(cols_tok, "matrix")
                rows = self._vector_size(rows_tok, "matrix")
                comp = self._scalar_component(comp_tok)
                if comp is not None and comp.kind is not ScalarKind.FLOAT:
                    er.emit(self.r, ERR.CE1011, span_of(comp_tok),
                            name=str(comp_tok), expected="float scalar")
                    return None
                if columns is None or rows is None or comp is None:
                    return None
                return Matrix(columns, rows, comp.width)
            case "pointer_t":
                base = self._type_expr(body.children[0])
                return None if base is None else Pointer(base)
            case "value_pointer_t":
                return self._value_pointer(body.children[0])
            case "array_t":
                return self._array(body, attrs)
            case "struct_t":
                return self._struct(body, name)
            case "image_t":
                return self._image(body)
            case "sampler_t":
                return Sampler(comparison=False)
            case "sampler_comparison_t":
                return Sampler(comparison=True)
        raise NotImplementedError(f"unknown type node '{body.data}'")

    def _resolve_type_name(self, name_tok: Token) -> Optional[Handle]:
        name = str(name_tok)
        if name in self.table.type_names:
            return self.table.type_names[name]
        if name in PREDECLARED_SCALARS:
            kind, width = PREDECLARED_SCALARS[name]
            return self.table.types.fetch_or_append(Type(Scalar(kind, width)))
        if name in self.table.constant_names:
            er.emit(self.r, ERR.CE1004, span_of(name_tok), name=name, found="constant", expected="type")
            return None
        er.emit(self.r, ERR.CE1003, span_of(name_tok), name=name)
        return None

    def _scalar_component(self, name_tok: Token) -> Optional[Scalar]:
        handle = self._resolve_type_name(name_tok)
        if handle is None:
            return None
        inner = self.table.types[handle].inner
        if not isinstance(inner, Scalar):
            er.emit(self.r, ERR.CE1011, span_of(name_tok), name=str(name_tok), expected="scalar type")
            return None
        return inner

    def _vector_size(self, tok: Token, what: str) -> Optional[VectorSize]:
        parsed = parse_int_literal(str(tok))
        if parsed is None or parsed[0] not in (2, 3, 4):
            er.emit(self.r, ERR.CE1010, span_of(tok), what=what, size=str(tok))
            return None
        return VectorSize(parsed[0])

    def _value_pointer(self, node: Tree) -> Optional[ValuePointer]:
        target = self._type_expr(node)
        if target is None:
            return None
        inner = self.table.types[target].inner
        match inner:
            case Scalar(kind=kind, width=width):
                return ValuePointer(None, kind, width)
            case Vector(size=size, kind=kind, width=width):
                return ValuePointer(size, kind, width)
        er.emit(self.r, ERR.CE1013, span_of(node), found=str(self.table.types[target]))
        return None

    def _array(self, body: Tree, attrs: Dict[str, int]) -> Optional[Array]:
        base = self._type_expr(body.children[0])
        len_node = body.children[1] if len(body.children) > 1 else None
        if len_node is None:
            size = DYNAMIC
        else:
            const = self._array_len(len_node.children[0])
            if const is None:
                return None
            size = ConstantArraySize(const)
        if base is None:
            return None
        return Array(base, size, attrs.get("stride"))

    def _array_len(self, tok: Token) -> Optional[Handle]:
        if tok.type == "NAME":
            name = str(tok)
            if name in self.table.constant_names:
                return self.table.constant_names[name]
            if name in self.table.type_names or name in PREDECLARED_SCALARS:
                er.emit(self.r, ERR.CE1004, span_of(tok), name=name, found="type", expected="constant")
                return None
            er.emit(self.r, ERR.CE1003, span_of(tok), name=name)
            return None

        parsed = parse_int_literal(str(tok))
        if parsed is None:
            er.emit(self.r, ERR.CE1005, span_of(tok), literal=str(tok))
            return None
        value, suffix = parsed
        scalar = Sint(value) if suffix == "i" or value < 0 else Uint(value)
        return self.table.constants.fetch_or_append(
            Constant(ScalarConstant(INT_CONSTANT_WIDTH, scalar))
        )

    def _struct(self, body: Tree, name: Optional[str]) -> Optional[Struct]:
        members: List[StructMember] = []
        seen: set[str] = set()
        ok = True
        for member in body.children:
            *attr_nodes, name_tok, expr = member.children
            attrs = self._attributes(attr_nodes, ("align", "size"), target="struct member")
            ty = self._type_expr(expr)
            member_name = str(name_tok)
            if member_name in seen:
                er.emit(self.r, ERR.CE1002, span_of(name_tok), name=member_name)
                ok = False
            seen.add(member_name)
            if attrs is None or ty is None:
                ok = False
                continue
            members.append(StructMember(
                ty=ty, name=member_name, align=attrs.get("align"), size=attrs.get("size"),
            ))
        if not ok:
            return None
        if not members:
            er.emit(self.r, ERR.CW1001, span_of(body), name=name or "<anonymous>")
        return Struct(tuple(members))

    def _image(self, body: Tree) -> Optional[Image]:
        dim_tok = body.children[0]
        try:
            dim = ImageDimension(str(dim_tok))
        except ValueError:
            er.emit(self.r, ERR.CE1012, span_of(dim_tok), dim=str(dim_tok))
            return None
        arrayed = False
        if len(body.children) > 1:
            flag = body.children[1]
            if str(flag) != "arrayed":
                er.emit(self.r, ERR.CE1001, span_of(flag),
                        detail=f"unexpected '{flag}', expected 'arrayed'")
                return None
            arrayed = True
        return Image(dim, arrayed)

    # ------------------------
    # Attributes
    # ------------------------

    def _attributes(self, nodes: List[Tree], allowed: Tuple[str, ...], target: str) -> Optional[Dict[str, int]]:
        """Collect @name(value) attributes; None if any of them is invalid."""
        attrs: Dict[str, int] = {}
        ok = True
        for node in nodes:
            name_tok, value_tok = node.children
            attr = str(name_tok)
            span = span_of(node)
            if attr not in KNOWN_ATTRIBUTES:
                er.emit(self.r, ERR.CE1006, span, attr=attr)
                ok = False
                continue
            if attr not in allowed:
                er.emit(self.r, ERR.CE1008, span, attr=attr, target=target)
                ok = False
                continue
            if attr in attrs:
                er.emit(self.r, ERR.CE1007, span, attr=attr)
                ok = False
                continue
            parsed = parse_int_literal(str(value_tok))
            if parsed is None or parsed[0] <= 0:
                er.emit(self.r, ERR.CE1009, span, value=str(value_tok), attr=attr, reason="must be positive")
                ok = False
                continue
            value = parsed[0]
            if attr == "align" and value & (value - 1):
                er.emit(self.r, ERR.CE1009, span, value=value, attr=attr, reason="must be a power of two")
                ok = False
                continue
            attrs[attr] = value
        return attrs if ok else None


def _target_name(body: Tree) -> str:
    if body.data == "named_t":
        return "a type reference"
    return body.data.removesuffix("_t").replace("_", " ") + " type"
