"""Best-effort source and documentation lookup for callables.

Only the LLM-backed definer and the tool-calling resolver need this; binding
and invoking a Function never touch it.
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
import logging
import textwrap
from typing import Any, Callable, Dict

from .Exceptions import IntrospectionUnavailable

logger = logging.getLogger(__name__)

__all__ = ["ParamInfo", "FuncInfo", "get_function_details"]


@dataclasses.dataclass(frozen=True)
class ParamInfo:
    name: str
    index: int


@dataclasses.dataclass(frozen=True)
class FuncInfo:
    """Declared name, leading comments and source text of a callable.

    ``params`` maps each declared parameter name to its positional index and
    is deliberately left out of :meth:`to_dict` (it is not sent to models).
    """

    name: str
    comments: str
    source_code: str
    params: Dict[str, ParamInfo] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "comments": self.comments, "source_code": self.source_code}

    def ordered_params(self) -> list[ParamInfo]:
        """Parameters sorted by positional index."""
        return sorted(self.params.values(), key=lambda p: p.index)


def _unwrap(fn: Callable) -> Callable:
    # functools.partial hides the real declaration site
    while isinstance(fn, functools.partial):
        fn = fn.func
    fn = inspect.unwrap(fn)
    return getattr(fn, "__func__", fn)


def get_function_details(fn: Callable) -> FuncInfo:
    """Read the declaration of ``fn`` from its source file.

    Raises
    ------
    IntrospectionUnavailable
        If ``fn`` is not a Python function/method or its source cannot be
        retrieved (builtins, C extensions, interactive definitions).
    """
    if not callable(fn):
        raise IntrospectionUnavailable(f"fn is not a function: {type(fn)!r}")

    target = _unwrap(fn)
    if not (inspect.isfunction(target) or inspect.ismethod(target)):
        raise IntrospectionUnavailable(f"unable to get function info for {fn!r}")

    try:
        source = inspect.getsource(target)
        leading = inspect.getcomments(target) or ""
    except (OSError, TypeError) as exc:
        raise IntrospectionUnavailable(f"failed to read source of {target.__qualname__}: {exc}") from exc

    logger.debug(
        "Function %s defined in file: %s at line: %s",
        target.__qualname__,
        inspect.getsourcefile(target),
        target.__code__.co_firstlineno,
    )

    comment_lines = [line.strip().lstrip("#").strip() for line in leading.splitlines() if line.strip()]
    doc = inspect.getdoc(target) or ""
    comments = "\n".join(part for part in ("\n".join(comment_lines), doc) if part)

    # parameter indices follow the public signature (bound methods drop self)
    try:
        names = list(inspect.signature(fn).parameters)
    except (TypeError, ValueError) as exc:
        raise IntrospectionUnavailable(f"failed to read signature of {target.__qualname__}: {exc}") from exc
    params = {name: ParamInfo(name=name, index=i) for i, name in enumerate(names)}

    return FuncInfo(
        name=target.__name__,
        comments=comments,
        source_code=textwrap.dedent(source).strip(),
        params=params,
    )
