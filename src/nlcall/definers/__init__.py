from .base import Definer, StaticDefiner
from .llm import LLMDefiner

__all__ = ["Definer", "StaticDefiner", "LLMDefiner"]
