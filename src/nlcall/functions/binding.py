"""Two-phase binding of parameter sources onto a Function.

``bind(function, params)`` coerces every externally supplied value into its
slot's declared type and returns a :class:`BoundCall`. The bound call keeps
holes for the function's ignored slots; calling it with exactly that many
deferred values fills the holes (ascending slot order) and runs the function.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from pydantic import ConfigDict, PydanticSchemaGenerationError, PydanticUserError, TypeAdapter, ValidationError

from ..core.Exceptions import (
    InvocationContractError,
    ParamCountMismatch,
    ToolDefinitionError,
    ToolInvocationError,
    TypeCoercionError,
)
from ..core.Parameters import Signature, SlotSpec
from ..core.sentinels import NO_VAL
from .params import Params

if TYPE_CHECKING:  # pragma: no cover
    from .base import Function

logger = logging.getLogger(__name__)

__all__ = ["SlotCoercer", "ArgumentVector", "BoundCall", "bind", "build_coercers"]


def _type_adapter(annotation: Any) -> TypeAdapter:
    try:
        return TypeAdapter(annotation)
    except PydanticSchemaGenerationError:
        # plain classes (sessions, handles, ...) are checked with isinstance
        return TypeAdapter(annotation, config=ConfigDict(arbitrary_types_allowed=True))


def _summarize(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(err.get("msg", "") for err in exc.errors()[:3])
    return str(exc)


class SlotCoercer:
    """Coerces external values into one slot's declared type.

    Raw fragments are parsed with ``TypeAdapter.validate_json`` in strict mode.
    Typed values are checked with ``validate_python`` in strict mode and then
    passed through untouched. The variadic tail coerces a whole sequence of
    elements at once.
    """

    __slots__ = ("slot", "_element", "_sequence")

    def __init__(self, slot: SlotSpec) -> None:
        self.slot = slot
        try:
            self._element = _type_adapter(slot.annotation)
            self._sequence: Optional[TypeAdapter] = (
                _type_adapter(List[slot.annotation]) if slot.is_variadic else None
            )
        except PydanticUserError as exc:
            raise ToolDefinitionError(
                f"cannot build a validator for parameter {slot.name!r} ({slot.type}): {exc}"
            ) from exc

    def from_json(self, fragment: Any, function_name: str) -> Any:
        adapter = self._sequence or self._element
        try:
            return adapter.validate_json(fragment, strict=True)
        except (ValidationError, ValueError, TypeError) as exc:
            raise TypeCoercionError(self.slot.index, fragment, function_name, _summarize(exc)) from exc

    def check(self, value: Any, function_name: str) -> Any:
        try:
            if self._sequence is None:
                self._element.validate_python(value, strict=True)
                return value
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"variadic parameter {self.slot.name!r} expects a list or tuple")
            for item in value:
                self._element.validate_python(item, strict=True)
            return list(value)
        except (ValidationError, TypeError) as exc:
            raise TypeCoercionError(self.slot.index, repr(value), function_name, _summarize(exc)) from exc


def build_coercers(signature: Signature) -> tuple[SlotCoercer, ...]:
    return tuple(SlotCoercer(slot) for slot in signature.slots)


class ArgumentVector:
    """Accumulates fixed positional values and records holes for deferred ones."""

    def __init__(self, signature: Signature) -> None:
        self._variadic = signature.variadic
        head_len = signature.arity - 1 if self._variadic else signature.arity
        self._head: list[Any] = [NO_VAL] * head_len
        self._tail: list[Any] = []
        self._holes: list[int] = []

    def fix(self, index: int, value: Any) -> "ArgumentVector":
        self._head[index] = value
        return self

    def spread(self, values: Sequence[Any]) -> "ArgumentVector":
        self._tail = list(values)
        return self

    def defer(self, index: int) -> "ArgumentVector":
        self._holes.append(index)
        return self

    def build(self, function: "Function") -> "BoundCall":
        return BoundCall(function, tuple(self._head), tuple(self._tail), tuple(self._holes))


class BoundCall:
    """A Function with its external parameters already coerced.

    ``bound(*ignore_params)`` requires exactly one deferred value per ignored
    slot, in ascending slot order, and returns the function's results as a
    list (``[]`` for functions annotated ``-> None``, ``[value]`` otherwise).
    Exceptions raised by the function propagate unchanged.
    """

    __slots__ = ("_function", "_head", "_tail", "_holes")

    def __init__(
        self,
        function: "Function",
        head: tuple[Any, ...],
        tail: tuple[Any, ...],
        holes: tuple[int, ...],
    ) -> None:
        self._function = function
        self._head = head
        self._tail = tail
        self._holes = holes

    @property
    def function(self) -> "Function":
        return self._function

    @property
    def name(self) -> str:
        return self._function.name

    @property
    def ignore_idx(self) -> tuple[int, ...]:
        return self._holes

    @property
    def args(self) -> tuple[Any, ...]:
        """Positional arguments bound so far; holes show up as ``NO_VAL``."""
        return self._head + self._tail

    def _assemble(self, ignore_params: tuple[Any, ...]) -> list[Any]:
        if len(ignore_params) != len(self._holes):
            raise InvocationContractError(
                f"function {self.name} ignoreIdx and ignoreParams length mismatch, "
                f"required {len(self._holes)} ignoreParams, {len(ignore_params)} provided"
            )
        args = list(self._head)
        tail = list(self._tail)
        for idx, value in zip(self._holes, ignore_params):
            if idx < len(args):
                args[idx] = value
                continue
            # the variadic tail itself was deferred
            if not isinstance(value, (list, tuple)):
                raise InvocationContractError(
                    f"function {self.name}: deferred value for variadic slot {idx} must be a list or tuple"
                )
            tail = list(value)
        args.extend(tail)
        return args

    def __call__(self, *ignore_params: Any) -> list[Any]:
        args = self._assemble(ignore_params)
        logger.debug("Invoking %s with %d positional argument(s)", self.name, len(args))
        result = self._function.fn(*args)
        if self._function.signature.returns_none:
            return []
        return [result]

    def __repr__(self) -> str:
        return f"BoundCall({self.name}, args={self.args!r}, holes={list(self._holes)})"


def bind(function: "Function", params: Params) -> BoundCall:
    """Coerce ``params`` onto ``function``'s non-ignored slots.

    Raises
    ------
    ParamCountMismatch
        ``len(params)`` differs from the function's external arity.
    TypeCoercionError
        A value could not be coerced into its slot's type. Nothing is
        returned, so no partially bound state escapes.
    """
    if not isinstance(params, Params):
        raise ToolInvocationError(f"{function.name}: params must be a Params instance, got {type(params)!r}")

    expected = function.external_arity
    if len(params) != expected:
        raise ParamCountMismatch(function.name, expected, len(params))

    raw = params.is_raw()
    ignored = set(function.ignore_idx)
    vector = ArgumentVector(function.signature)

    # i walks every slot, j walks the external parameter source
    j = 0
    for coercer in function.coercers:
        slot = coercer.slot
        i = slot.index
        if i in ignored:
            vector.defer(i)
            continue
        if raw:
            value = coercer.from_json(params.get_raw(j), function.name)
        else:
            value = coercer.check(params.get(j), function.name)
        if slot.is_variadic:
            vector.spread(value)
        else:
            vector.fix(i, value)
        j += 1

    bound = vector.build(function)
    logger.debug("Bound %r (%s mode)", bound, "raw" if raw else "typed")
    return bound
