from __future__ import annotations

# LLMEngines.py
# Engines are stateless completion clients around provider SDKs. Resolvers and
# definers own the prompts; engines map messages (+ optional tool definitions)
# to provider requests and normalise the replies into ChoiceContent objects.

import dataclasses
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import openai
from openai import OpenAI

# Google (optional extra)
try:
    from google import genai
except ImportError:  # pragma: no cover - optional dependency
    genai = None

from ..core.Exceptions import LLMEngineError
from ..functions import Definition

logger = logging.getLogger(__name__)

__all__ = [
    "MessageContent",
    "ToolCall",
    "ChoiceContent",
    "LLMEngine",
    "OpenAIEngine",
    "GeminiEngine",
]


# ───────────────────────────────────────────────────────────────────────────────
# Wire types
# ───────────────────────────────────────────────────────────────────────────────
@dataclasses.dataclass
class MessageContent:
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclasses.dataclass
class ToolCall:
    name: str
    args: str = "{}"  # JSON object string


@dataclasses.dataclass
class ChoiceContent:
    content: str = ""
    tool_calls: List[ToolCall] = dataclasses.field(default_factory=list)


MessageLike = Union[MessageContent, Mapping[str, Any]]


# ───────────────────────────────────────────────────────────────────────────────
# Base engine
# ───────────────────────────────────────────────────────────────────────────────
class LLMEngine(ABC):
    """
    Base template-method primitive for completion clients.

    Public contract
    ---------------
    - `complete(messages) -> list[ChoiceContent]`
    - `complete_with_tools(messages, tools) -> list[ChoiceContent]`, available
      when `supports_tools` is True.

    Subclasses customise the protected hooks; they must not override the two
    public entrypoints.
    """

    supports_tools: bool = False

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 1,
        retry_backoff_base: float = 0.5,
        retry_backoff_max: float = 8.0,
    ) -> None:
        """
        Parameters
        ----------
        name:
            Optional human-friendly identifier for logging/introspection.
        timeout_seconds:
            Suggested per-call timeout; subclasses honor this where their SDKs allow it.
        max_retries:
            Maximum number of *retries* after the initial call (so total
            attempts is `max_retries + 1`).
        retry_backoff_base:
            Base seconds for exponential backoff (approx base * 2^(attempt-1)).
        retry_backoff_max:
            Upper bound in seconds for backoff delay.
        """
        self._name = name or type(self).__name__
        self._timeout_seconds = float(timeout_seconds)
        self._max_retries = int(max_retries)
        self._retry_backoff_base = float(retry_backoff_base)
        self._retry_backoff_max = float(retry_backoff_max)

    @property
    def name(self) -> str:
        return self._name

    # Template entrypoints ------------------------------------------------ #

    def complete(self, messages: Sequence[MessageLike]) -> List[ChoiceContent]:
        """Plain chat completion."""
        return self._run(messages, None)

    def complete_with_tools(
        self,
        messages: Sequence[MessageLike],
        tools: Sequence[Definition],
    ) -> List[ChoiceContent]:
        """Chat completion with function definitions offered as tools."""
        if not self.supports_tools:
            raise LLMEngineError(f"{self._name} does not support tool calling")
        return self._run(messages, list(tools))

    def _run(
        self,
        messages: Sequence[MessageLike],
        tools: Optional[List[Definition]],
    ) -> List[ChoiceContent]:
        start = time.time()
        try:
            normalized = self._normalize_messages(messages)
            payload = self._build_provider_payload(normalized, tools)
            response = self._call_with_retries(payload)
            choices = self._extract_choices(response)
            if not isinstance(choices, list):
                raise LLMEngineError(
                    f"{type(self).__name__}._extract_choices must return a list; got {type(choices)!r}"
                )
            return choices
        except LLMEngineError:
            raise
        except Exception as exc:
            raise LLMEngineError(f"{self._name}.complete failed: {exc}") from exc
        finally:
            logger.debug("LLMEngine %s completed in %.3fs", self._name, time.time() - start)

    # Shared helpers ------------------------------------------------------ #

    def _normalize_messages(self, messages: Sequence[MessageLike]) -> List[Dict[str, str]]:
        """
        Validate and normalize chat messages into `{"role", "content"}` dicts.
        Accepts MessageContent objects or mappings; lower-cases roles.
        """
        if isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence):
            raise LLMEngineError("LLMEngine.complete: messages must be a list")
        if not messages:
            raise LLMEngineError("LLMEngine.complete: messages must not be empty")

        normalized: List[Dict[str, str]] = []
        for idx, msg in enumerate(messages):
            if isinstance(msg, MessageContent):
                role, content = msg.role, msg.content
            elif isinstance(msg, Mapping):
                role, content = msg.get("role"), msg.get("content")
            else:
                raise LLMEngineError(f"LLMEngine.complete: message {idx} has unsupported type {type(msg)!r}")
            if not isinstance(role, str) or not isinstance(content, str):
                raise LLMEngineError("LLMEngine.complete: each message must have 'role' and 'content' as strings")
            normalized.append({"role": role.lower(), "content": content})
        return normalized

    def _call_with_retries(self, payload: Any) -> Any:
        """Call `_call_provider` with exponential backoff and jitter."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._call_provider(payload)
            except LLMEngineError:
                raise
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise
                sleep = min(
                    self._retry_backoff_base * (2 ** (attempt - 1)),
                    self._retry_backoff_max,
                )
                sleep *= random.uniform(0.8, 1.2)
                logger.debug(
                    "LLMEngine %s attempt %d failed with %r; retrying in %.2fs",
                    self._name,
                    attempt,
                    exc,
                    sleep,
                )
                time.sleep(sleep)

    def _should_retry(self, exc: Exception, attempt: int) -> bool:
        """
        Default policy: stay within `max_retries`, retry on timeouts and
        connection errors only.
        """
        if attempt > self._max_retries:
            return False
        return isinstance(exc, (TimeoutError, ConnectionError))

    # Abstract hooks ------------------------------------------------------ #

    @abstractmethod
    def _build_provider_payload(
        self,
        messages: List[Dict[str, str]],
        tools: Optional[List[Definition]],
    ) -> Any:
        raise NotImplementedError

    @abstractmethod
    def _call_provider(self, payload: Any) -> Any:
        """One provider call; should honor `self._timeout_seconds`."""
        raise NotImplementedError

    @abstractmethod
    def _extract_choices(self, response: Any) -> List[ChoiceContent]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        """Shallow, non-secret configuration snapshot for debugging / logging."""
        return {
            "name": self._name,
            "timeout_seconds": self._timeout_seconds,
            "max_retries": self._max_retries,
            "supports_tools": self.supports_tools,
            "provider": type(self).__name__,
        }


# ── OPENAI (Chat Completions; also OpenAI-compatible local servers) ────────────
class OpenAIEngine(LLMEngine):
    """
    OpenAI adapter using the Chat Completions API.

    Works with api.openai.com and with OpenAI-compatible servers (LM Studio,
    vLLM, llama.cpp server, ...) through `base_url`. Function definitions are
    sent as `{"type": "function", "function": <definition>}` tools.
    """

    supports_tools = True

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 1.0,
        *,
        name: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 1,
        retry_backoff_base: float = 0.5,
        retry_backoff_max: float = 8.0,
        client: Optional[Any] = None,
    ) -> None:
        """
        Parameters
        ----------
        model:
            Model identifier (e.g. "gpt-4o-mini", "qwen2.5-14b-instruct").
        api_key:
            Optional API key; falls back to `OPENAI_API_KEY`. Local servers
            usually accept any non-empty value.
        base_url:
            Optional endpoint; falls back to `OPENAI_BASE_URL`, then the SDK default.
        temperature:
            Sampling temperature.
        client:
            Pre-built `openai.OpenAI`-compatible client (mainly for tests).
        """
        super().__init__(
            name=name or f"openai:{model}",
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            retry_backoff_base=retry_backoff_base,
            retry_backoff_max=retry_backoff_max,
        )
        self.model = model
        self.temperature = float(temperature)
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL")
        if client is not None:
            self.llm = client
        else:
            self.llm = OpenAI(
                api_key=api_key or os.getenv("OPENAI_API_KEY") or "not-needed",
                base_url=self.base_url,
                timeout=self._timeout_seconds,
            )

    def _build_provider_payload(
        self,
        messages: List[Dict[str, str]],
        tools: Optional[List[Definition]],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = [self._tool_spec(d) for d in tools]
        return payload

    @staticmethod
    def _tool_spec(definition: Definition) -> Dict[str, Any]:
        function: Dict[str, Any] = {"name": definition.name, "description": definition.description}
        # the API requires an object schema even for argument-less functions
        function["parameters"] = definition.parameters or {"type": "object", "properties": {}}
        return {"type": "function", "function": function}

    def _call_provider(self, payload: Dict[str, Any]) -> Any:
        return self.llm.chat.completions.create(**payload)

    def _should_retry(self, exc: Exception, attempt: int) -> bool:
        if attempt > self._max_retries:
            return False
        transient = (openai.APIConnectionError, openai.APITimeoutError, openai.RateLimitError)
        return isinstance(exc, transient) or super()._should_retry(exc, attempt)

    def _extract_choices(self, response: Any) -> List[ChoiceContent]:
        choices: List[ChoiceContent] = []
        for choice in getattr(response, "choices", None) or []:
            message = choice.message
            calls = []
            for tc in getattr(message, "tool_calls", None) or []:
                calls.append(ToolCall(name=tc.function.name, args=tc.function.arguments or "{}"))
            choices.append(ChoiceContent(content=(message.content or "").strip(), tool_calls=calls))
        return choices

    def to_dict(self) -> OrderedDict[str, Any]:
        base = OrderedDict(super().to_dict())
        base.update(model=self.model, temperature=self.temperature, base_url=self.base_url)
        return base


# ── GEMINI (text completion only) ──────────────────────────────────────────────
class GeminiEngine(LLMEngine):
    """
    Google Gemini adapter using the Google Gen AI SDK.

    System messages become `system_instruction`; the remaining turns are sent
    as a flat list of strings. Tool calling is not offered, so resolvers fall
    back to the prompt strategy.
    """

    supports_tools = False

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        temperature: float = 1.0,
        *,
        name: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 1,
        retry_backoff_base: float = 0.5,
        retry_backoff_max: float = 8.0,
    ) -> None:
        """
        Parameters
        ----------
        model:
            Gemini model identifier (e.g. "gemini-2.5-flash").
        api_key:
            Optional API key. If omitted, the SDK reads GOOGLE_API_KEY.
        temperature:
            Sampling temperature.
        """
        super().__init__(
            name=name or f"gemini:{model}",
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            retry_backoff_base=retry_backoff_base,
            retry_backoff_max=retry_backoff_max,
        )
        if genai is None:
            raise RuntimeError(
                "GeminiEngine requires the `google-genai` package; install `nlcall[gemini]` to use it."
            )

        client_kwargs: Dict[str, Any] = {"http_options": {"timeout": int(self._timeout_seconds * 1000)}}
        if api_key is not None:
            client_kwargs["api_key"] = api_key
        self.client = genai.Client(**client_kwargs)
        self.model = model
        self.temperature = float(temperature)

    def _build_provider_payload(
        self,
        messages: List[Dict[str, str]],
        tools: Optional[List[Definition]],
    ) -> Dict[str, Any]:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system" and m["content"])
        contents = [m["content"] for m in messages if m["role"] != "system" and m["content"]]
        return {"system_instruction": system or None, "contents": contents}

    def _call_provider(self, payload: Dict[str, Any]) -> Any:
        cfg = genai.types.GenerateContentConfig(
            temperature=self.temperature,
            system_instruction=payload.get("system_instruction"),
        )
        return self.client.models.generate_content(
            model=self.model,
            contents=payload["contents"],
            config=cfg,
        )

    def _extract_choices(self, response: Any) -> List[ChoiceContent]:
        return [ChoiceContent(content=(response.text or "").strip())]

    def to_dict(self) -> OrderedDict[str, Any]:
        base = OrderedDict(super().to_dict())
        base.update(model=self.model, temperature=self.temperature)
        return base
