# internals/errors.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NoReturn, Optional

from gpu_layout.internals.report import Span, Reporter


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Category(str, Enum):
    GENERAL   = "general"
    SYNTAX    = "syntax"
    NAME      = "name"
    TYPE      = "type"
    ATTRIBUTE = "attribute"
    INTERNAL  = "internal"


@dataclass(frozen=True)
class ErrorMessage:
    code: str
    severity: Severity
    text: str
    category: Category = Category.GENERAL
    doc: str = ""


class LayoutError(RuntimeError):
    """Internal error raised by the layout core.

    Internal errors signal that an earlier stage handed the core malformed
    input (or a handle from another table). They are not meant to be caught
    by ordinary callers; ``Layouter.try_new`` is the one place that turns
    them into diagnostics.
    """

    def __init__(self, code: str, text: str, context: Dict[str, Any]) -> None:
        super().__init__(f"{code}: {text}")
        self.code = code
        self.text = text
        self.context = context


REGISTRY: Dict[str, ErrorMessage] = {}

class _ErrorCatalog:
    def __init__(self, backing: Dict[str, ErrorMessage]) -> None:
        self._registry = backing

    def __getattr__(self, name: str) -> ErrorMessage:
        try:
            return self._registry[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __getitem__(self, code: str) -> ErrorMessage:
        return self._registry[code]


ERR = _ErrorCatalog(REGISTRY)

def emit(r: Reporter, em: ErrorMessage, span: Optional[Span], **kwargs) -> None:
    text = _fmt(em.code, **kwargs)
    if em.severity == Severity.ERROR:
        r.error(em.code, text, span)
    else:
        r.warn(em.code, text, span)

def raise_internal_error(code: str, **kwargs) -> NoReturn:
    """Raise a LayoutError for internal errors.

    Internal errors (CE0xxx codes) indicate malformed input that an earlier
    stage should have rejected, not problems in a description file.

    Args:
        code: Error code (e.g., "CE0001")
        **kwargs: Format parameters for the error message, kept as context

    Raises:
        LayoutError: Always raises with formatted error message
    """
    text = _fmt(code, **kwargs)
    raise LayoutError(code, text, dict(kwargs))


#
# --- Helpers
#

def _add(msg: ErrorMessage) -> None:
    if msg.code in REGISTRY:
        raise ValueError(f"duplicate error code {REGISTRY[msg.code]} in {msg}")
    REGISTRY[msg.code] = msg

def _get(code: str) -> ErrorMessage:
    try:
        return REGISTRY[code]
    except KeyError:
        raise KeyError(f"unknown error code: {code}")

def _fmt(code: str, **kwargs) -> str:
    msg = _get(code)
    try:
        return msg.text.format(**kwargs)
    except KeyError as key_error:
        missing = key_error.args[0]
        raise KeyError(f"missing text key '{missing}' for {code} "
                       f"(needed by: {msg.text!r})") from None

#
# --- Registry population
#

# Internal errors (malformed input reaching the core) - CE0xxx range
_add(ErrorMessage("CE0001", Severity.ERROR,
    "array {handle} ({variant}) has size constant {constant} which is not a scalar integer (found {found})",
    Category.INTERNAL, "Array lengths must be folded to a signed or unsigned integer before layout."))

_add(ErrorMessage("CE0002", Severity.ERROR,
    "type handle {handle} is not in the layout table ({count} layouts)",
    Category.INTERNAL, "Stale or foreign handle, or a type referencing a type defined after it."))

_add(ErrorMessage("CE0003", Severity.ERROR,
    "type {handle} ({variant}) has zero alignment",
    Category.INTERNAL, "Alignments must be nonzero; zero-width scalars and zero default strides are rejected."))

_add(ErrorMessage("CE0004", Severity.ERROR,
    "size of type {handle} ({variant}) does not fit in 32 bits: {size}",
    Category.INTERNAL, "Byte sizes are unsigned 32-bit quantities."))

_add(ErrorMessage("CE0005", Severity.ERROR,
    "handle {handle} is not in this arena ({count} items)",
    Category.INTERNAL, "Handles are only valid for the arena that produced them."))

# Description file errors - CE1xxx range
_add(ErrorMessage("CE1001", Severity.ERROR,
    "syntax error: {detail}",
    Category.SYNTAX, "The description file could not be parsed."))

_add(ErrorMessage("CE1002", Severity.ERROR,
    "'{name}' is already defined",
    Category.NAME, "Every type and constant name must be unique."))

_add(ErrorMessage("CE1003", Severity.ERROR,
    "unknown name '{name}'",
    Category.NAME, "Names must be defined before they are used; forward references are not supported."))

_add(ErrorMessage("CE1004", Severity.ERROR,
    "'{name}' is a {found}, expected a {expected}",
    Category.NAME, "A constant was used where a type was expected, or the other way around."))

_add(ErrorMessage("CE1005", Severity.ERROR,
    "invalid literal '{literal}'",
    Category.SYNTAX, "Integer literals take an optional 'i' or 'u' suffix; widths must be positive."))

_add(ErrorMessage("CE1006", Severity.ERROR,
    "unknown attribute '@{attr}'",
    Category.ATTRIBUTE, "Supported attributes are @align, @size and @stride."))

_add(ErrorMessage("CE1007", Severity.ERROR,
    "attribute '@{attr}' given more than once",
    Category.ATTRIBUTE, "Each attribute may appear once per target."))

_add(ErrorMessage("CE1008", Severity.ERROR,
    "attribute '@{attr}' is not allowed on {target}",
    Category.ATTRIBUTE, "@align and @size apply to struct members, @stride applies to arrays."))

_add(ErrorMessage("CE1009", Severity.ERROR,
    "invalid value {value} for '@{attr}': {reason}",
    Category.ATTRIBUTE, "Attribute values must be positive; alignments must be powers of two."))

_add(ErrorMessage("CE1010", Severity.ERROR,
    "invalid {what} size {size} (expected 2, 3 or 4)",
    Category.TYPE, "Vectors have 2 to 4 components; matrices have 2 to 4 columns and rows."))

_add(ErrorMessage("CE1011", Severity.ERROR,
    "component type '{name}' is not a {expected}",
    Category.TYPE, "Vector components must be scalars; matrix components must be floats."))

_add(ErrorMessage("CE1012", Severity.ERROR,
    "unknown image dimension '{dim}'",
    Category.TYPE, "Image dimensions are d1, d2, d3 and cube."))

_add(ErrorMessage("CE1013", Severity.ERROR,
    "value pointer target must be a scalar or vector, got {found}",
    Category.TYPE, "value_ptr<...> points at a scalar or vector value."))

# Warnings
_add(ErrorMessage("CW1001", Severity.WARNING,
    "struct '{name}' has no members",
    Category.TYPE, "An empty struct has size 0 and alignment 1."))
