from __future__ import annotations

from typing import Any


class _NoValSentinel:
    """Marker for "no value here".

    Used for parameters without a default and for the holes a bound call
    leaves in its argument vector until the deferred values arrive. Compare
    with ``is NO_VAL``; ``None`` stays available as a real argument.
    """
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "NO_VAL"

    def __bool__(self) -> bool:
        return False


NO_VAL: Any = _NoValSentinel()

__all__ = ["NO_VAL"]
