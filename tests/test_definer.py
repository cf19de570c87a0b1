import json

import pytest

from nlcall.core.Exceptions import DefinitionError, IntrospectionUnavailable
from nlcall.definers import LLMDefiner, StaticDefiner
from nlcall.functions import Definition

GREET_DEF = {
    "name": "greet",
    "description": 'greet a person. Call string example: greet("Ann",30)',
    "parameters": {
        "type": "object",
        "properties": {"name": {"type": "string"}, "age": {"type": "integer"}},
    },
}


# says hello
def greet(name: str, age: int) -> str:
    return f"Hello, {name}! You are {age} years old."


class TestLLMDefiner:

    def test_sends_function_details(self, engine):
        engine.queue_text(json.dumps(GREET_DEF))
        definition = LLMDefiner(engine).define(greet)
        assert definition == Definition.from_dict(GREET_DEF)

        system, user = engine.payloads[0]["messages"]
        assert system["role"] == "system"
        assert "# OBJECTIVE" in system["content"]
        info = json.loads(user["content"])
        assert info["name"] == "greet"
        assert info["comments"] == "says hello"
        assert "def greet(name: str, age: int)" in info["source_code"]

    def test_code_fences_are_stripped(self, engine):
        engine.queue_text("```json\n" + json.dumps(GREET_DEF) + "\n```")
        assert LLMDefiner(engine).define(greet).name == "greet"

    def test_empty_reply(self, engine):
        engine.queue_text("   ")
        with pytest.raises(DefinitionError):
            LLMDefiner(engine).define(greet)

    def test_invalid_reply(self, engine):
        engine.queue_text("greet is a function that greets")
        with pytest.raises(DefinitionError):
            LLMDefiner(engine).define(greet)

    def test_source_is_required(self, engine):
        with pytest.raises(IntrospectionUnavailable):
            LLMDefiner(engine).define(print)
        assert engine.payloads == []


class TestStaticDefiner:

    def test_lookup_by_function_name(self):
        definer = StaticDefiner([GREET_DEF])
        assert definer.define(greet).name == "greet"

    def test_unknown_function(self):
        definer = StaticDefiner()
        definer.add(Definition(name="other"))
        with pytest.raises(DefinitionError):
            definer.define(greet)
