from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping, Union

from ..core.Exceptions import DefinitionError
from ..functions import Definition

__all__ = ["Definer", "StaticDefiner"]


class Definer(ABC):
    """Produces the :class:`Definition` a callable is registered with."""

    @abstractmethod
    def define(self, fn: Callable[..., Any]) -> Definition:
        raise NotImplementedError


class StaticDefiner(Definer):
    """Looks definitions up by the callable's ``__name__``.

    For callers that write their function descriptions by hand instead of
    generating them.
    """

    def __init__(self, definitions: Iterable[Union[Definition, Mapping[str, Any]]] = ()) -> None:
        self._definitions: dict[str, Definition] = {}
        for d in definitions:
            self.add(d)

    def add(self, definition: Union[Definition, Mapping[str, Any]]) -> Definition:
        definition = Definition.coerce(definition)
        self._definitions[definition.name] = definition
        return definition

    def define(self, fn: Callable[..., Any]) -> Definition:
        name = getattr(fn, "__name__", None)
        definition = self._definitions.get(name) if name else None
        if definition is None:
            raise DefinitionError(f"no definition known for {fn!r}")
        return definition
