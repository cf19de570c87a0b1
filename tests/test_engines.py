"""Engine plumbing: payload building, choice extraction and retries."""

from types import SimpleNamespace

import pytest

from nlcall.core.Exceptions import LLMEngineError
from nlcall.engines import ChoiceContent, MessageContent, OpenAIEngine
from nlcall.functions import Definition


def _response(content="", tool_calls=()):
    calls = [
        SimpleNamespace(function=SimpleNamespace(name=name, arguments=args))
        for name, args in tool_calls
    ]
    message = SimpleNamespace(content=content, tool_calls=calls or None)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(*outcomes):
    completions = FakeCompletions(outcomes)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestOpenAIEngine:

    def test_text_completion(self):
        client, completions = _client(_response("  greet(\"Ann\",30) "))
        engine = OpenAIEngine("local-model", client=client, temperature=0.2)
        choices = engine.complete([MessageContent("System", "sys"), {"role": "user", "content": "hi"}])
        assert choices == [ChoiceContent(content='greet("Ann",30)')]
        request = completions.requests[0]
        assert request["model"] == "local-model"
        assert request["temperature"] == 0.2
        assert request["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
        assert "tools" not in request

    def test_tool_completion(self):
        client, completions = _client(_response(tool_calls=[("greet", '{"name":"Ann","age":30}')]))
        engine = OpenAIEngine("local-model", client=client)
        tools = [Definition(name="greet", description="hi", parameters={"type": "object"}), Definition(name="no")]
        [choice] = engine.complete_with_tools([MessageContent("user", "hi Ann")], tools)
        assert choice.tool_calls[0].name == "greet"
        assert choice.tool_calls[0].args == '{"name":"Ann","age":30}'
        sent = completions.requests[0]["tools"]
        assert sent[0] == {
            "type": "function",
            "function": {"name": "greet", "description": "hi", "parameters": {"type": "object"}},
        }
        # argument-less functions still get an object schema
        assert sent[1]["function"]["parameters"] == {"type": "object", "properties": {}}

    def test_transient_errors_are_retried(self):
        client, completions = _client(ConnectionError("reset"), _response("ok"))
        engine = OpenAIEngine("m", client=client, max_retries=1, retry_backoff_base=0.0)
        assert engine.complete([MessageContent("user", "hi")])[0].content == "ok"
        assert len(completions.requests) == 2

    def test_retries_are_bounded(self):
        client, completions = _client(ConnectionError("reset"), ConnectionError("reset"))
        engine = OpenAIEngine("m", client=client, max_retries=1, retry_backoff_base=0.0)
        with pytest.raises(LLMEngineError):
            engine.complete([MessageContent("user", "hi")])
        assert len(completions.requests) == 2

    def test_other_errors_are_not_retried(self):
        client, completions = _client(ValueError("bad request"), _response("ok"))
        engine = OpenAIEngine("m", client=client, max_retries=3, retry_backoff_base=0.0)
        with pytest.raises(LLMEngineError):
            engine.complete([MessageContent("user", "hi")])
        assert len(completions.requests) == 1

    def test_to_dict_has_no_secrets(self):
        client, _ = _client()
        snap = OpenAIEngine("m", api_key="sk-secret", base_url="http://localhost:1234/v1", client=client).to_dict()
        assert snap["model"] == "m"
        assert snap["base_url"] == "http://localhost:1234/v1"
        assert "sk-secret" not in str(snap)


class TestMessageValidation:

    @pytest.mark.parametrize("messages", [[], "hello", [42], [{"role": "user"}]])
    def test_bad_messages(self, engine, messages):
        with pytest.raises(LLMEngineError):
            engine.complete(messages)

    def test_tools_need_support(self, engine):
        with pytest.raises(LLMEngineError):
            engine.complete_with_tools([MessageContent("user", "hi")], [])
