"""Shared fixtures: a scripted completion engine standing in for a real provider."""

from typing import Any, Dict, List, Optional

import pytest

from nlcall.engines import ChoiceContent, LLMEngine, ToolCall


class FakeEngine(LLMEngine):
    """Replays queued replies and records every payload it was sent."""

    def __init__(self, replies: Optional[List[Any]] = None, *, supports_tools: bool = False) -> None:
        super().__init__(name="fake", max_retries=0)
        self.supports_tools = supports_tools
        self.replies: List[Any] = list(replies or [])
        self.payloads: List[Dict[str, Any]] = []

    def queue_text(self, text: str) -> "FakeEngine":
        self.replies.append([ChoiceContent(content=text)])
        return self

    def queue_tool_call(self, name: str, args: str) -> "FakeEngine":
        self.replies.append([ChoiceContent(tool_calls=[ToolCall(name=name, args=args)])])
        return self

    def _build_provider_payload(self, messages, tools):
        return {"messages": messages, "tools": tools}

    def _call_provider(self, payload):
        self.payloads.append(payload)
        if not self.replies:
            raise AssertionError("FakeEngine ran out of replies")
        return self.replies.pop(0)

    def _extract_choices(self, response):
        return response


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def tool_engine():
    return FakeEngine(supports_tools=True)
