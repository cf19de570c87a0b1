from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from ..core.Exceptions import DefinitionError
from ..core.Introspection import get_function_details
from ..core.Prompts import DEFINER_PROMPT
from ..engines.LLMEngines import LLMEngine, MessageContent
from ..functions import Definition
from .base import Definer

logger = logging.getLogger(__name__)

__all__ = ["LLMDefiner"]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMDefiner(Definer):
    """Asks a completion engine to describe a function from its source.

    Requires the callable's source to be readable; otherwise
    :class:`IntrospectionUnavailable` propagates.
    """

    def __init__(self, client: LLMEngine, *, system_prompt: str = DEFINER_PROMPT) -> None:
        if not isinstance(client, LLMEngine):
            raise TypeError(f"LLMDefiner requires an LLMEngine, got {type(client)!r}")
        self._client = client
        self._system_prompt = system_prompt

    def define(self, fn: Callable[..., Any]) -> Definition:
        info = get_function_details(fn)
        choices = self._client.complete([
            MessageContent(role="system", content=self._system_prompt),
            MessageContent(role="user", content=json.dumps(info.to_dict(), ensure_ascii=False)),
        ])
        if not choices:
            raise DefinitionError("no choices returned")

        text = _FENCE_RE.sub("", choices[0].content.strip())
        if not text:
            raise DefinitionError(f"empty definition returned for {info.name}")
        definition = Definition.from_json(text)
        logger.debug("LLMDefiner defined %s: %s", info.name, definition)
        return definition
