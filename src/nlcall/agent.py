from __future__ import annotations

import logging
import os
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from .core.Exceptions import DefinitionError, EmptyUserInputError, ToolRegistrationError
from .definers import Definer, LLMDefiner
from .engines.LLMEngines import LLMEngine
from .functions import BoundCall, Function, Params
from .registry import FunctionRegistry
from .resolvers import LLMResolver, Resolver
from .storage import DefinitionStore, fn_key

logger = logging.getLogger(__name__)

__all__ = ["Agent", "new_llm_agent"]

PathLike = Union[str, "os.PathLike[str]"]


class Agent:
    """Natural-language front door to a set of registered functions.

    Each function lives in the agent's :class:`FunctionRegistry` and is made
    known to its :class:`Resolver`. A call goes user input -> resolver ->
    :class:`Call` -> registry lookup -> :meth:`Function.bind` -> invocation.

    Parameters
    ----------
    resolver : Resolver
        Maps user input to a function name plus parameters.
    definer : Definer, optional
        Produces definitions for :meth:`register_fn`. Without one, only
        :meth:`register_func` and definitions loaded from disk are usable.
    registry : FunctionRegistry, optional
        Shared registry; a private one is created when omitted.
    """

    def __init__(
        self,
        resolver: Resolver,
        definer: Optional[Definer] = None,
        *,
        registry: Optional[FunctionRegistry] = None,
    ) -> None:
        if not isinstance(resolver, Resolver):
            raise TypeError(f"Agent requires a Resolver, got {type(resolver)!r}")
        if definer is not None and not isinstance(definer, Definer):
            raise TypeError(f"definer must be a Definer, got {type(definer)!r}")
        self._resolver = resolver
        self._definer = definer
        self._registry = registry if registry is not None else FunctionRegistry()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def resolver(self) -> Resolver:
        return self._resolver

    @property
    def definer(self) -> Optional[Definer]:
        return self._definer

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def register_func(self, function: Function) -> Function:
        """Register an already built :class:`Function`.

        Raises :class:`ToolRegistrationError` when the name is taken, either in
        the registry or in the resolver. In the latter case the registry entry
        is removed again so both stay in step.
        """
        self._registry.register(function)
        if not self._resolver.add_func(function):
            self._registry.remove(function.name)
            raise ToolRegistrationError(f"function {function.name} already exists in resolver")
        return function

    def register_fn(
        self,
        fn: Callable[..., Any],
        *,
        ignore_idx: Iterable[int] = (),
        slot_types: Optional[Mapping[str, Any]] = None,
        load_def_dir: Optional[PathLike] = None,
        save_def_dir: Optional[PathLike] = None,
        overwrite: bool = False,
    ) -> Function:
        """Define, wrap and register a plain callable.

        When ``load_def_dir`` holds a stored definition for ``fn`` it is used
        as is; otherwise the definer is asked. With ``save_def_dir`` set, the
        definition is written there afterwards (an existing file is kept
        unless ``overwrite``). ``slot_types`` overrides the callable's own
        annotations per parameter name.
        """
        key = fn_key(fn)

        definition = None
        if load_def_dir is not None:
            definition = DefinitionStore(load_def_dir).load(key)
        if definition is None:
            if self._definer is None:
                raise DefinitionError(f"no definer configured and no stored definition for {key}")
            definition = self._definer.define(fn)

        function = self.register_func(Function(fn, definition, ignore_idx, slot_types=slot_types))

        if save_def_dir is not None:
            DefinitionStore(save_def_dir).save(key, definition, overwrite=overwrite)
        return function

    def get_func(self, name: str) -> Function:
        return self._registry.get(name)

    # ------------------------------------------------------------------ #
    # Calling
    # ------------------------------------------------------------------ #
    def assign_func(self, user_input: str) -> Tuple[Function, Params]:
        """Resolve ``user_input`` to a registered function and its parameters."""
        if not user_input or not user_input.strip():
            raise EmptyUserInputError()
        call = self._resolver.resolve(user_input)
        function = self._registry.get(call.name)
        logger.debug("Agent assigned %r to %s%s", user_input, call.name, call.params)
        return function, call.params

    def assign_callable(self, user_input: str) -> BoundCall:
        """Resolve and bind, leaving the ignored slots to the caller."""
        function, params = self.assign_func(user_input)
        return function.bind(params)

    def call(self, user_input: str, *ignore_params: Any) -> list[Any]:
        return self.assign_callable(user_input)(*ignore_params)


def new_llm_agent(client: LLMEngine) -> Agent:
    """Agent that resolves and defines with the same completion engine."""
    return Agent(LLMResolver(client), LLMDefiner(client))
