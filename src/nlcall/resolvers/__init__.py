from .base import Resolver
from .llm import LLMResolver, parse_func_str

__all__ = ["Resolver", "LLMResolver", "parse_func_str"]
