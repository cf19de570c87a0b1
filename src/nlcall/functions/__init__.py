from .params import Call, Params
from .binding import ArgumentVector, BoundCall, bind
from .base import Definition, Function

__all__ = [
    "Call",
    "Params",
    "ArgumentVector",
    "BoundCall",
    "bind",
    "Definition",
    "Function",
]
