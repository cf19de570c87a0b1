"""Positional slot specification and signature extraction for callables.

This module provides:
- SlotType: the closed set of argument variants a slot can be bound to
- SlotSpec: a self-contained specification of a single positional slot
- Signature: arity, slots and variadic flag of a callable
- extract_signature: build a Signature from any Python callable
"""

from __future__ import annotations

import dataclasses
import enum
import inspect
import logging
import sys
import types
from collections.abc import Mapping as _AbcMapping
from collections.abc import Sequence as _AbcSequence
from collections.abc import Set as _AbcSet
from typing import Annotated, Any, Callable, Mapping, Optional, Union, get_args, get_origin

from pydantic import BaseModel

from .Exceptions import ToolDefinitionError
from .sentinels import NO_VAL

logger = logging.getLogger(__name__)

__all__ = ["SlotType", "SlotSpec", "Signature", "extract_signature", "classify_annotation"]

# Parameter kinds that occupy a positional slot
_POSITIONAL_KINDS = ("POSITIONAL_ONLY", "POSITIONAL_OR_KEYWORD")
_VAR_POSITIONAL = "VAR_POSITIONAL"


class SlotType(str, enum.Enum):
    """Argument variant of a positional slot."""

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    SEQUENCE = "sequence"
    OBJECT = "object"
    MESSAGE = "message"
    ANY = "any"


class SlotSpec(dict):
    """Typed specification of one positional slot.

    Behaves like a read-only mapping (JSON-serialisable) while exposing
    attribute access for internal code. Fields:

      - name: str (parameter name)
      - index: int (slot position)
      - kind: str (POSITIONAL_ONLY, POSITIONAL_OR_KEYWORD or VAR_POSITIONAL)
      - type: str (human-readable type name)
      - slot_type: SlotType
      - default: Any or ``NO_VAL`` when absent

    ``annotation`` holds the resolved annotation object used for coercion and
    is not part of the mapping view. For a VAR_POSITIONAL slot it is the
    *element* annotation.

    ``slot_type`` is descriptive only (logs, ``to_dict`` snapshots). Coercion
    never dispatches on it; the binder validates against ``annotation``.
    """

    __slots__ = ("_name", "_index", "_kind", "_type", "_slot_type", "_annotation", "_default")

    def __init__(
        self,
        name: str,
        index: int,
        kind: str,
        type: str,
        slot_type: SlotType,
        annotation: Any = Any,
        default: Any = NO_VAL,
    ) -> None:
        dict.__init__(self, name=name, index=index, kind=kind, type=type, slot_type=slot_type.value)
        if default is not NO_VAL:
            dict.__setitem__(self, "default", default)
        self._name = name
        self._index = index
        self._kind = kind
        self._type = type
        self._slot_type = slot_type
        self._annotation = annotation
        self._default = default

    @property
    def name(self) -> str:
        return self._name

    @property
    def index(self) -> int:
        return self._index

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def type(self) -> str:
        return self._type

    @property
    def slot_type(self) -> SlotType:
        return self._slot_type

    @property
    def annotation(self) -> Any:
        return self._annotation

    @property
    def default(self) -> Any:
        return self._default

    @property
    def is_variadic(self) -> bool:
        return self._kind == _VAR_POSITIONAL

    def __setitem__(self, key, value):  # pragma: no cover - trivial immutability
        raise TypeError("SlotSpec is immutable")

    def __delitem__(self, key):  # pragma: no cover - trivial immutability
        raise TypeError("SlotSpec is immutable")

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict representation of this SlotSpec."""
        return dict(self)


@dataclasses.dataclass(frozen=True)
class Signature:
    """Positional view of a callable: ordered slots plus the variadic flag."""

    slots: tuple[SlotSpec, ...]
    return_type: str = "Any"
    returns_none: bool = False

    @property
    def arity(self) -> int:
        return len(self.slots)

    @property
    def variadic(self) -> bool:
        return bool(self.slots) and self.slots[-1].is_variadic

    def names(self) -> list[str]:
        return [s.name for s in self.slots]

    def __str__(self) -> str:
        parts = []
        for s in self.slots:
            prefix = "*" if s.is_variadic else ""
            parts.append(f"{prefix}{s.name}: {s.type}")
        return f"({', '.join(parts)}) -> {self.return_type}"


def _format_annotation(ann: Any) -> str:
    """Convert a type annotation into a readable string.

    - missing/empty → ``'Any'``
    - string (forward reference) → returned as-is
    - parameterized generics → nested structure, e.g. ``list[int]``
    - plain classes → their name
    """
    if ann is inspect.Parameter.empty or ann is None or ann is Any:
        return "Any"
    if ann is type(None):
        return "None"
    if isinstance(ann, str):
        return ann

    origin = get_origin(ann)
    if origin is not None:
        args = get_args(ann)
        if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
            return " | ".join(_format_annotation(a) for a in args)
        origin_str = _format_annotation(origin)
        if not args:
            return origin_str
        args_str = ", ".join("..." if a is Ellipsis else _format_annotation(a) for a in args)
        return f"{origin_str}[{args_str}]"

    name = getattr(ann, "__name__", None)
    if name:
        return name
    return str(ann)


def _unwrap_optional(ann: Any) -> Any:
    """Strip ``Annotated`` and ``Optional`` wrappers down to the core type."""
    origin = get_origin(ann)
    if origin is Annotated:
        return _unwrap_optional(get_args(ann)[0])
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        members = [a for a in get_args(ann) if a is not type(None)]
        if len(members) == 1:
            return _unwrap_optional(members[0])
    return ann


def classify_annotation(ann: Any) -> SlotType:
    """Map an annotation onto its :class:`SlotType` variant."""
    ann = _unwrap_optional(ann)
    if ann is inspect.Parameter.empty or ann is Any or ann is object or isinstance(ann, str):
        return SlotType.ANY

    target = get_origin(ann) or ann
    if not isinstance(target, type):
        return SlotType.ANY

    # bool before int: bool is an int subclass
    if issubclass(target, bool):
        return SlotType.BOOLEAN
    if issubclass(target, enum.Enum):
        return SlotType.ANY
    if issubclass(target, int):
        return SlotType.INTEGER
    if issubclass(target, float):
        return SlotType.FLOAT
    if issubclass(target, (str, bytes)):
        return SlotType.STRING
    if issubclass(target, BaseModel) or dataclasses.is_dataclass(target):
        return SlotType.MESSAGE
    if issubclass(target, _AbcMapping):
        return SlotType.OBJECT
    if issubclass(target, (_AbcSequence, _AbcSet)):
        return SlotType.SEQUENCE
    return SlotType.ANY


def _annotation_namespace(function: Callable) -> dict:
    """Globals the callable's string annotations were written against."""
    target = inspect.unwrap(getattr(function, "__func__", function))
    if not inspect.isroutine(target) and not inspect.isclass(target):
        # callable instance: annotations live on its __call__
        target = getattr(type(target).__call__, "__func__", type(target).__call__)
    namespace = getattr(target, "__globals__", None)
    if namespace is None:
        module = sys.modules.get(getattr(target, "__module__", None) or "")
        namespace = vars(module) if module is not None else {}
    return namespace


def _resolved_signature(function: Callable) -> inspect.Signature:
    """``inspect.signature`` with string annotations evaluated when possible.

    When one annotation cannot be evaluated (typically a name imported only
    under ``TYPE_CHECKING``), the others are still evaluated one by one; only
    the failing ones degrade to ``Any``.
    """
    try:
        return inspect.signature(function, eval_str=True)
    except (NameError, TypeError, SyntaxError, AttributeError) as exc:
        first_error = exc

    sig = inspect.signature(function)
    namespace = _annotation_namespace(function)
    unresolved: list[str] = []

    def resolve(name: str, ann: Any) -> Any:
        if not isinstance(ann, str):
            return ann
        try:
            # same evaluation inspect.get_annotations(eval_str=True) performs
            return eval(ann, namespace, None)
        except (NameError, TypeError, SyntaxError, AttributeError):
            unresolved.append(f"{name}: {ann}")
            return Any

    params = [p.replace(annotation=resolve(p.name, p.annotation)) for p in sig.parameters.values()]
    return_ann = resolve("return", sig.return_annotation)
    if unresolved:
        logger.warning(
            "Could not resolve annotations of %r (%s); treating %s as Any",
            getattr(function, "__qualname__", function),
            first_error,
            ", ".join(unresolved),
        )
    return sig.replace(parameters=params, return_annotation=return_ann)


def extract_signature(
    function: Callable,
    slot_types: Optional[Mapping[str, Any]] = None,
) -> Signature:
    """Build the positional :class:`Signature` of ``function``.

    Parameters
    ----------
    function : Callable
        Any Python callable (function, bound method, lambda, callable object).
    slot_types : Mapping[str, Any], optional
        Explicit annotations by parameter name. They take precedence over the
        callable's own annotations, which lets callers register functions that
        carry no (or misleading) annotations.

    Raises
    ------
    ToolDefinitionError
        If ``function`` is not callable, its signature cannot be read, a
        ``slot_types`` key names no positional parameter, or a keyword-only
        parameter has no default (it could never be bound positionally).
    """
    if not callable(function):
        raise ToolDefinitionError(f"Function must wrap a callable, got {type(function)!r}")

    try:
        sig = _resolved_signature(function)
    except (TypeError, ValueError) as exc:
        raise ToolDefinitionError(f"cannot read signature of {function!r}: {exc}") from exc

    overrides = dict(slot_types or {})
    slots: list[SlotSpec] = []

    for name, param in sig.parameters.items():
        kind_name = param.kind.name
        if kind_name == "KEYWORD_ONLY":
            if param.default is inspect.Parameter.empty:
                raise ToolDefinitionError(
                    f"keyword-only parameter {name!r} has no default and cannot be bound positionally"
                )
            continue
        if kind_name == "VAR_KEYWORD":
            continue

        ann = overrides.pop(name, param.annotation)
        if isinstance(ann, str):
            # string override, never evaluated
            ann = Any
        if ann is inspect.Parameter.empty:
            ann = Any

        default = param.default if param.default is not inspect.Parameter.empty else NO_VAL
        type_str = _format_annotation(ann)
        if kind_name == _VAR_POSITIONAL:
            type_str = f"{type_str}..."

        slots.append(
            SlotSpec(
                name=name,
                index=len(slots),
                kind=kind_name,
                type=type_str,
                slot_type=classify_annotation(ann),
                annotation=ann,
                default=default,
            )
        )

    if overrides:
        raise ToolDefinitionError(f"slot_types names unknown positional parameters: {sorted(overrides)}")

    ret_ann = sig.return_annotation
    returns_none = ret_ann is None or ret_ann is type(None)
    return_type = "None" if returns_none else _format_annotation(ret_ann)
    return Signature(slots=tuple(slots), return_type=return_type, returns_none=returns_none)
