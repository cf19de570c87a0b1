"""LLM-backed resolver.

Two strategies, picked from the engine's capabilities:

- tool calling: function definitions are offered as tools; the model's first
  tool call is reordered from its JSON object into positional raw fragments.
- prompt: definitions are listed in the system prompt and the model answers
  with a call string ``name(arg1,arg2,...)`` that :func:`parse_func_str`
  splits into raw fragments.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections import OrderedDict
from typing import Any, List

from ..core.Exceptions import FuncStrParseError, FunctionNotFound, IntrospectionUnavailable, ResolveError
from ..core.Prompts import RESOLVER_PROMPT
from ..engines.LLMEngines import ChoiceContent, LLMEngine, MessageContent
from ..functions import Call, Definition, Function, Params
from .base import Resolver

logger = logging.getLogger(__name__)

__all__ = ["LLMResolver", "parse_func_str"]

_FUNC_RE = re.compile(r"([\w-]+)\((.*)\)", re.DOTALL)


def _fragment(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def parse_func_str(func_str: str) -> Call:
    """Parse ``name(arg1,arg2,...)`` into a raw-mode :class:`Call`.

    Each argument must be a JSON literal; the argument list is parsed as one
    JSON array and every element is re-encoded as an independent fragment.
    """
    if not isinstance(func_str, str):
        raise FuncStrParseError(f"invalid funcStr {func_str!r}")
    match = _FUNC_RE.search(func_str)
    if match is None:
        raise FuncStrParseError(f"invalid funcStr {func_str}")

    name, param_str = match.group(1), match.group(2)
    try:
        values = json.loads(f"[{param_str}]")
    except json.JSONDecodeError as exc:
        raise FuncStrParseError(f"invalid parameters to parse: {param_str}") from exc
    return Call(name=name, params=Params(raw_params=[_fragment(v) for v in values]))


class LLMResolver(Resolver):
    """Resolve user input with a completion engine."""

    def __init__(self, client: LLMEngine, *, prompt_template: str = RESOLVER_PROMPT) -> None:
        if not isinstance(client, LLMEngine):
            raise TypeError(f"LLMResolver requires an LLMEngine, got {type(client)!r}")
        self._client = client
        self._prompt_template = prompt_template
        self._functions: "OrderedDict[str, Function]" = OrderedDict()
        self._sys_prompt = ""
        self._lock = threading.RLock()
        self._refresh_sys_prompt()

    @property
    def client(self) -> LLMEngine:
        return self._client

    @property
    def sys_prompt(self) -> str:
        return self._sys_prompt

    @property
    def uses_tools(self) -> bool:
        return bool(self._client.supports_tools)

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def add_func(self, function: Function) -> bool:
        with self._lock:
            if function.name in self._functions:
                return False
            self._functions[function.name] = function
            self._refresh_sys_prompt()
        return True

    def get_func_defs(self) -> List[Definition]:
        with self._lock:
            return [f.definition for f in self._functions.values()]

    def _refresh_sys_prompt(self) -> None:
        lines = [str(d) for d in self.get_func_defs()]
        self._sys_prompt = self._prompt_template.format(FUNCTIONS="\n".join(lines))

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #
    def resolve(self, user_input: str) -> Call:
        if self.uses_tools:
            return self._resolve_by_tool(user_input)
        return self._resolve_by_prompt(user_input)

    def _first_choice(self, choices: List[ChoiceContent]) -> ChoiceContent:
        if not choices:
            raise ResolveError("no choices returned")
        return choices[0]

    def _resolve_by_prompt(self, user_input: str) -> Call:
        messages = [
            MessageContent(role="system", content=self._sys_prompt),
            MessageContent(role="user", content=user_input),
        ]
        func_str = self._first_choice(self._client.complete(messages)).content
        logger.debug("LLMResolver call string: %s", func_str)
        return parse_func_str(func_str)

    def _resolve_by_tool(self, user_input: str) -> Call:
        messages = [MessageContent(role="user", content=user_input)]
        choice = self._first_choice(self._client.complete_with_tools(messages, self.get_func_defs()))
        if not choice.tool_calls:
            raise ResolveError("no calls returned")

        tool_call = choice.tool_calls[0]
        with self._lock:
            function = self._functions.get(tool_call.name)
        if function is None:
            raise FunctionNotFound(tool_call.name)

        try:
            args = json.loads(tool_call.args or "{}")
        except json.JSONDecodeError as exc:
            raise ResolveError(f"invalid tool call arguments for {tool_call.name}: {tool_call.args}") from exc
        if not isinstance(args, dict):
            raise ResolveError(f"tool call arguments for {tool_call.name} must be a JSON object")

        raw_params = [_fragment(args.get(name)) for name in self._external_param_names(function)]
        logger.debug("LLMResolver tool call %s -> %s", tool_call.name, raw_params)
        return Call(name=tool_call.name, params=Params(raw_params=raw_params))

    @staticmethod
    def _external_param_names(function: Function) -> List[str]:
        """Parameter names of the non-ignored slots, in positional order."""
        ignored = set(function.ignore_idx)
        try:
            ordered = [(p.index, p.name) for p in function.get_or_gen_func_info().ordered_params()]
        except IntrospectionUnavailable:
            ordered = [(s.index, s.name) for s in function.signature.slots]
        # keep only positional slots (keyword-only parameters are never bound)
        ordered = [(i, n) for i, n in ordered if i < function.arity]
        return [name for idx, name in ordered if idx not in ignored]
