# ───────────────────────────────────────────────────────────────────────────────
# Exceptions
# ───────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from typing import Any, Optional

__all__ = [
    "NlcallError",
    "LLMEngineError",
    "ToolError",
    "ToolDefinitionError",
    "InvalidIgnoreIndex",
    "ArityMismatch",
    "ToolInvocationError",
    "ParamCountMismatch",
    "TypeCoercionError",
    "IntrospectionUnavailable",
    "AgentError",
    "EmptyUserInputError",
    "FunctionNotFound",
    "ResolveError",
    "FuncStrParseError",
    "DefinitionError",
    "ToolRegistrationError",
    "InvocationContractError",
]


class NlcallError(Exception):
    """Root of every recoverable error raised by this package."""


class LLMEngineError(RuntimeError):
    """Raised when an LLM engine fails to complete an invocation."""


# ── Function construction / binding ──────────────────────────────────────────
class ToolError(NlcallError):
    """Base exception for Function-related errors."""


class ToolDefinitionError(ToolError):
    """Raised when a callable is incompatible at Function construction time."""


class InvalidIgnoreIndex(ToolDefinitionError):
    """Raised when an ignored slot index falls outside ``[0, arity)``."""

    def __init__(self, index: Any, arity: int, function_name: Optional[str] = None) -> None:
        self.index = index
        self.arity = arity
        self.function_name = function_name
        where = f" for function {function_name!r}" if function_name else ""
        super().__init__(f"invalid ignore index {index!r}{where}: expected 0 <= idx < {arity}")


class ArityMismatch(ToolDefinitionError):
    """Raised when external parameters exist but the definition carries no schema."""


class ToolInvocationError(ToolError):
    """Raised when inputs are invalid for invocation or binding fails."""


class ParamCountMismatch(ToolInvocationError):
    """Raised when a parameter source does not match the external arity."""

    def __init__(self, function_name: str, expected: int, got: int) -> None:
        self.function_name = function_name
        self.expected = expected
        self.got = got
        super().__init__(
            f"parameter count mismatch for function {function_name}: expected {expected}, got {got}"
        )


class TypeCoercionError(ToolInvocationError):
    """Raised when a parameter cannot be coerced into its slot's declared type."""

    def __init__(self, slot_index: int, raw_value: Any, function_name: str, reason: str = "") -> None:
        self.slot_index = slot_index
        self.raw_value = raw_value
        self.function_name = function_name
        self.reason = reason
        msg = f"invalid parameter: <{raw_value}> for function <{function_name}> (slot {slot_index})"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class IntrospectionUnavailable(NlcallError):
    """Raised when a callable's declaration site (source, docs) cannot be read."""


# ── Agent / collaborators ────────────────────────────────────────────────────
class AgentError(NlcallError):
    """Base class for Agent-related errors."""


class EmptyUserInputError(AgentError, ValueError):
    """Raised when an Agent is asked to resolve empty user input."""

    def __init__(self, msg: str = "empty user input") -> None:
        super().__init__(msg)


class FunctionNotFound(AgentError, KeyError):
    """Raised when a function name is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"function {name} does not exist")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class ResolveError(AgentError):
    """Raised when a resolver cannot turn user input into a call."""


class FuncStrParseError(ResolveError):
    """Raised when a ``name(arg, ...)`` call string cannot be parsed."""


class DefinitionError(AgentError):
    """Raised when a function definition cannot be produced or loaded."""


class ToolRegistrationError(AgentError):
    """Raised when registering functions fails due to collisions or bad inputs."""


# ── Programming errors ───────────────────────────────────────────────────────
class InvocationContractError(RuntimeError):
    """Raised when a bound call is invoked in violation of its contract.

    This is a caller bug (wrong number of deferred values), not bad external
    input, so it sits outside the :class:`NlcallError` hierarchy.
    """
