from __future__ import annotations

import dataclasses
from typing import Any, Optional, Sequence

__all__ = ["Params", "Call"]


class Params:
    """Parameter source for one call.

    Either a sequence of already-typed values, or a sequence of raw JSON
    fragments ("raw mode"). Raw mode is selected whenever ``params`` is
    ``None``; the mode never changes after construction.
    """

    __slots__ = ("_params", "_raw_params")

    def __init__(
        self,
        params: Optional[Sequence[Any]] = None,
        raw_params: Optional[Sequence[str]] = None,
    ) -> None:
        if params is not None and raw_params is not None:
            raise ValueError("Params takes either typed params or raw_params, not both")
        if params is not None:
            if isinstance(params, (str, bytes)):
                raise TypeError("params must be a sequence of values, not a string")
            self._params: Optional[tuple[Any, ...]] = tuple(params)
            self._raw_params: tuple[str, ...] = ()
        else:
            raw = tuple(raw_params or ())
            for idx, fragment in enumerate(raw):
                if not isinstance(fragment, (str, bytes, bytearray)):
                    raise TypeError(f"raw param {idx} must be a JSON string, got {type(fragment)!r}")
            self._params = None
            self._raw_params = raw

    @classmethod
    def typed(cls, *values: Any) -> "Params":
        return cls(params=values)

    @classmethod
    def raw(cls, *fragments: str) -> "Params":
        return cls(raw_params=fragments)

    def is_raw(self) -> bool:
        return self._params is None

    def __len__(self) -> int:
        if self._params is not None:
            return len(self._params)
        return len(self._raw_params)

    def get(self, i: int) -> Any:
        if self._params is None:
            raise TypeError("Params.get is only valid for typed params")
        return self._params[i]

    def get_raw(self, i: int) -> str:
        if self._params is not None:
            raise TypeError("Params.get_raw is only valid for raw params")
        return self._raw_params[i]

    @property
    def values(self) -> tuple[Any, ...]:
        return self._params if self._params is not None else self._raw_params

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Params):
            return NotImplemented
        return self.is_raw() == other.is_raw() and self.values == other.values

    def __repr__(self) -> str:
        if self.is_raw():
            return f"Params(raw_params={list(self._raw_params)!r})"
        return f"Params(params={list(self._params or ())!r})"


@dataclasses.dataclass
class Call:
    """A resolved call: the target function name and its parameter source."""

    name: str
    params: Params = dataclasses.field(default_factory=Params)
