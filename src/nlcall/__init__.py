from importlib.metadata import PackageNotFoundError, version

try:  # populated when installed or when a wheel is built
    __version__ = version("nlcall")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .core.Exceptions import (
    NlcallError,
    ToolDefinitionError,
    ToolInvocationError,
    TypeCoercionError,
    ParamCountMismatch,
    FunctionNotFound,
    InvocationContractError,
)
from .functions import Call, Definition, Function, Params, BoundCall
from .registry import FunctionRegistry
from .agent import Agent, new_llm_agent

__all__ = [
    "Agent",
    "new_llm_agent",
    "Function",
    "Definition",
    "Params",
    "Call",
    "BoundCall",
    "FunctionRegistry",
    "NlcallError",
    "ToolDefinitionError",
    "ToolInvocationError",
    "TypeCoercionError",
    "ParamCountMismatch",
    "FunctionNotFound",
    "InvocationContractError",
]
