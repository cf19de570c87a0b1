from .LLMEngines import ChoiceContent, GeminiEngine, LLMEngine, MessageContent, OpenAIEngine, ToolCall

__all__ = [
    "ChoiceContent",
    "GeminiEngine",
    "LLMEngine",
    "MessageContent",
    "OpenAIEngine",
    "ToolCall",
]
