from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Iterator, List

from .core.Exceptions import FunctionNotFound, ToolRegistrationError
from .functions import Definition, Function

logger = logging.getLogger(__name__)

__all__ = ["FunctionRegistry"]


class FunctionRegistry:
    """Name-keyed store of :class:`Function` descriptors.

    Names are unique: a second function with an existing name is rejected,
    never swapped in. Registration order is preserved. All access goes
    through an internal lock, so one registry can be shared between threads.
    """

    def __init__(self) -> None:
        self._functions: "OrderedDict[str, Function]" = OrderedDict()
        self._lock = threading.RLock()

    def add(self, function: Function) -> bool:
        """Store ``function``; return False if its name is already taken."""
        if not isinstance(function, Function):
            raise ToolRegistrationError(f"expected a Function, got {type(function)!r}")
        with self._lock:
            if function.name in self._functions:
                logger.debug("FunctionRegistry rejected duplicate %s", function.name)
                return False
            self._functions[function.name] = function
        logger.info("Registered function %s", function.name)
        return True

    def register(self, function: Function) -> Function:
        """Like :meth:`add` but raises :class:`ToolRegistrationError` on duplicates."""
        if not self.add(function):
            raise ToolRegistrationError(f"function {function.name} already exists")
        return function

    def get(self, name: str) -> Function:
        with self._lock:
            function = self._functions.get(name)
        if function is None:
            raise FunctionNotFound(name)
        return function

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._functions

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._functions.pop(name, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._functions.clear()

    def names(self) -> List[str]:
        with self._lock:
            return list(self._functions)

    def definitions(self) -> List[Definition]:
        with self._lock:
            return [f.definition for f in self._functions.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._functions)

    def __iter__(self) -> Iterator[Function]:
        with self._lock:
            return iter(list(self._functions.values()))
