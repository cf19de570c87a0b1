from __future__ import annotations

import dataclasses
import json
import logging
import re
import threading
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from ..core.Exceptions import (
    ArityMismatch,
    DefinitionError,
    InvalidIgnoreIndex,
    IntrospectionUnavailable,
    ToolDefinitionError,
)
from ..core.Introspection import FuncInfo, get_function_details
from ..core.Parameters import Signature, extract_signature
from .binding import BoundCall, SlotCoercer, bind, build_coercers
from .params import Params

logger = logging.getLogger(__name__)

__all__ = ["Definition", "Function"]

# Valid name: the tool-name charset accepted by function-calling APIs
_VALID_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


# ───────────────────────────────────────────────────────────────────────────────
# Definition
# ───────────────────────────────────────────────────────────────────────────────
@dataclasses.dataclass(frozen=True)
class Definition:
    """Calling information of a function, as shown to resolvers.

    ``name`` must be unique among registered functions. ``parameters`` is an
    opaque JSON schema (or ``None`` for functions without external
    parameters); the engine never interprets it.
    """

    name: str
    description: str = ""
    parameters: Optional[Any] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _VALID_NAME.fullmatch(self.name):
            raise DefinitionError(
                f"definition name must be 1-64 letters, digits, underscores or dashes; got {self.name!r}"
            )
        if not isinstance(self.description, str):
            raise DefinitionError("definition description must be a string")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Definition":
        if not isinstance(data, Mapping):
            raise DefinitionError(f"definition must be a mapping, got {type(data)!r}")
        if "name" not in data:
            raise DefinitionError("definition is missing required key 'name'")
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            parameters=data.get("parameters"),
        )

    @classmethod
    def coerce(cls, value: Union["Definition", Mapping[str, Any]]) -> "Definition":
        if isinstance(value, Definition):
            return value
        return cls.from_dict(value)

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("ensure_ascii", False)
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Definition":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DefinitionError(f"invalid definition JSON: {exc}") from exc
        return cls.from_dict(data)

    def __str__(self) -> str:
        return self.to_json(separators=(",", ":"))


# ───────────────────────────────────────────────────────────────────────────────
# Function descriptor
# ───────────────────────────────────────────────────────────────────────────────
def _normalize_ignore_idx(ignore_idx: Iterable[int], arity: int, name: str) -> tuple[int, ...]:
    seen: set[int] = set()
    for idx in ignore_idx:
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < arity:
            raise InvalidIgnoreIndex(idx, arity, name)
        seen.add(idx)
    return tuple(sorted(seen))


class Function:
    """A registered callable plus the metadata needed to call it.

    Construction validates the ignored slot indices, stores them deduplicated
    and ascending, and checks that a function with external parameters comes
    with a parameter schema. The callable is neither invoked nor inspected
    beyond its signature.

    Typical use::

        f = Function(add, {"name": "add", "description": "...", "parameters": {...}}, ignore_idx=[0])
        bound = f.bind(Params.raw("1", "2"))
        bound(ctx)  # -> [3]

    Parameters
    ----------
    fn : Callable
        The underlying callable.
    definition : Definition or mapping
        ``{"name", "description", "parameters"}``.
    ignore_idx : iterable of int
        Positional slots the resolver never supplies. Their values are passed
        to the bound call instead, in ascending slot order.
    slot_types : mapping, optional
        Explicit annotations per parameter name, overriding the callable's.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        definition: Union[Definition, Mapping[str, Any]],
        ignore_idx: Iterable[int] = (),
        *,
        slot_types: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if not callable(fn):
            raise ToolDefinitionError(f"Function must wrap a callable, got {type(fn)!r}")
        definition = Definition.coerce(definition)
        signature = extract_signature(fn, slot_types)
        ignore = _normalize_ignore_idx(ignore_idx, signature.arity, definition.name)

        external_arity = signature.arity - len(ignore)
        if definition.parameters is None and external_arity != 0:
            raise ArityMismatch(
                f"function {definition.name} does not match the number of parameters as the def "
                f"({len(ignore)} ignored, {external_arity} external, no parameter schema)"
            )

        self._fn = fn
        self._definition = definition
        self._signature: Signature = signature
        self._ignore_idx = ignore
        self._coercers: tuple[SlotCoercer, ...] = build_coercers(signature)
        self._module: Optional[str] = getattr(fn, "__module__", None)
        self._qualname: Optional[str] = getattr(fn, "__qualname__", None)

        self._info: Optional[FuncInfo] = None
        self._info_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self._definition.name

    @property
    def description(self) -> str:
        return self._definition.description

    @property
    def definition(self) -> Definition:
        return self._definition

    @property
    def fn(self) -> Callable[..., Any]:
        return self._fn

    @property
    def ignore_idx(self) -> tuple[int, ...]:
        return self._ignore_idx

    @property
    def signature(self) -> Signature:
        return self._signature

    @property
    def coercers(self) -> tuple[SlotCoercer, ...]:
        return self._coercers

    @property
    def arity(self) -> int:
        return self._signature.arity

    @property
    def external_arity(self) -> int:
        return self._signature.arity - len(self._ignore_idx)

    @property
    def variadic(self) -> bool:
        return self._signature.variadic

    @property
    def module(self) -> Optional[str]:
        return self._module

    @property
    def qualname(self) -> Optional[str]:
        return self._qualname

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    def get_or_gen_func_info(self) -> FuncInfo:
        """Return the cached :class:`FuncInfo`, computing it on first use.

        At most one computation runs even under concurrent first access.
        Failures raise :class:`IntrospectionUnavailable` and are not cached.
        """
        info = self._info
        if info is not None:
            return info
        with self._info_lock:
            if self._info is None:
                try:
                    self._info = get_function_details(self._fn)
                except IntrospectionUnavailable:
                    logger.debug("Introspection unavailable for %s", self.name)
                    raise
            return self._info

    # ------------------------------------------------------------------ #
    # Binding / calling
    # ------------------------------------------------------------------ #
    def bind(self, params: Params) -> BoundCall:
        """Coerce ``params`` and return a :class:`BoundCall` awaiting the ignored values."""
        return bind(self, params)

    # kept for callers that think in terms of the callable it produces
    get_callable = bind

    def call(self, params: Params, *ignore_params: Any) -> list[Any]:
        """Bind ``params`` and invoke immediately with ``ignore_params``."""
        return self.bind(params)(*ignore_params)

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #
    def to_dict(self) -> Dict[str, Any]:
        """Diagnostic snapshot for logging."""
        return {
            "type": type(self).__name__,
            "definition": self._definition.to_dict(),
            "ignore_idx": list(self._ignore_idx),
            "slots": [slot.to_dict() for slot in self._signature.slots],
            "return_type": self._signature.return_type,
            "module": self._module,
            "qualname": self._qualname,
        }

    def __str__(self) -> str:
        return f"<{type(self).__name__}.{self.name}{self._signature} - {self.description}>"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, signature={str(self._signature)!r}, ignore_idx={list(self._ignore_idx)})"
