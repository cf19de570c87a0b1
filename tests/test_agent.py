"""End-to-end agent flows with a scripted engine."""

import json

import pytest

from nlcall import Agent, new_llm_agent
from nlcall.core.Exceptions import (
    DefinitionError,
    EmptyUserInputError,
    FunctionNotFound,
    ToolRegistrationError,
    TypeCoercionError,
)
from nlcall.definers import StaticDefiner
from nlcall.functions import Call, Function, Params
from nlcall.registry import FunctionRegistry
from nlcall.resolvers import Resolver
from nlcall.storage import DefinitionStore, fn_key

GREET_DEF = {
    "name": "greet",
    "description": "greet a person",
    "parameters": {
        "type": "object",
        "properties": {"name": {"type": "string"}, "age": {"type": "integer"}},
    },
}
ADD_DEF = {
    "name": "add",
    "description": "add two integers",
    "parameters": {
        "type": "object",
        "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
    },
}


class Ctx:
    def __init__(self, calls=0):
        self.calls = calls


def greet(name: str, age: int) -> str:
    return f"Hello, {name}! You are {age} years old."


def add(ctx: Ctx, a: int, b: int) -> int:
    ctx.calls += 1
    return a + b


class FixedResolver(Resolver):
    """Always resolves to the same call; optionally refuses registrations."""

    def __init__(self, call=None, accept=True):
        self.call = call
        self.accept = accept
        self.seen = []

    def add_func(self, function):
        self.seen.append(function.name)
        return self.accept

    def resolve(self, user_input):
        return self.call


class TestRegistration:

    def test_register_func(self):
        resolver = FixedResolver()
        agent = Agent(resolver)
        fn = Function(greet, GREET_DEF)
        assert agent.register_func(fn) is fn
        assert agent.get_func("greet") is fn
        assert resolver.seen == ["greet"]

    def test_duplicate_is_rejected(self):
        agent = Agent(FixedResolver())
        agent.register_func(Function(greet, GREET_DEF))
        with pytest.raises(ToolRegistrationError):
            agent.register_func(Function(greet, GREET_DEF))

    def test_resolver_refusal_rolls_back(self):
        registry = FunctionRegistry()
        agent = Agent(FixedResolver(accept=False), registry=registry)
        with pytest.raises(ToolRegistrationError):
            agent.register_func(Function(greet, GREET_DEF))
        assert "greet" not in registry

    def test_register_fn_uses_the_definer(self):
        agent = Agent(FixedResolver(), StaticDefiner([ADD_DEF]))
        fn = agent.register_fn(add, ignore_idx=[0])
        assert fn.name == "add"
        assert fn.ignore_idx == (0,)

    def test_register_fn_with_explicit_slot_types(self):
        def untyped(name, age):
            return f"{name}:{age}"

        agent = Agent(
            FixedResolver(Call("untyped", Params.raw('"Ann"', '"30"'))),
            StaticDefiner([dict(GREET_DEF, name="untyped")]),
        )
        fn = agent.register_fn(untyped, slot_types={"name": str, "age": int})
        assert [s.annotation for s in fn.signature.slots] == [str, int]
        with pytest.raises(TypeCoercionError):
            agent.call("greet Ann")

    def test_register_fn_without_definer(self):
        with pytest.raises(DefinitionError):
            Agent(FixedResolver()).register_fn(greet)

    def test_stored_definition_wins(self, tmp_path):
        DefinitionStore(tmp_path).save(fn_key(greet), Function(greet, GREET_DEF).definition)
        agent = Agent(FixedResolver())
        assert agent.register_fn(greet, load_def_dir=tmp_path).definition.description == "greet a person"

    def test_missing_stored_definition_falls_back_and_saves(self, tmp_path):
        agent = Agent(FixedResolver(), StaticDefiner([GREET_DEF]))
        agent.register_fn(greet, load_def_dir=tmp_path, save_def_dir=tmp_path)
        stored = DefinitionStore(tmp_path).load(fn_key(greet))
        assert stored is not None
        assert stored.name == "greet"

    def test_rejects_non_resolvers(self):
        with pytest.raises(TypeError):
            Agent(object())


class TestCalling:

    def test_call_with_deferred_context(self):
        agent = Agent(FixedResolver(Call("add", Params.raw("1", "2"))))
        agent.register_func(Function(add, ADD_DEF, ignore_idx=[0]))
        ctx = Ctx()
        assert agent.call("what is one plus two", ctx) == [3]
        assert ctx.calls == 1

    def test_assign_func(self):
        agent = Agent(FixedResolver(Call("greet", Params.raw('"Ann"', "30"))))
        fn = agent.register_func(Function(greet, GREET_DEF))
        assigned, params = agent.assign_func("say hi to Ann")
        assert assigned is fn
        assert params == Params.raw('"Ann"', "30")

    def test_assign_callable(self):
        agent = Agent(FixedResolver(Call("greet", Params.raw('"Ann"', "30"))))
        agent.register_func(Function(greet, GREET_DEF))
        assert agent.assign_callable("say hi to Ann")() == ["Hello, Ann! You are 30 years old."]

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_input(self, text):
        agent = Agent(FixedResolver())
        with pytest.raises(EmptyUserInputError):
            agent.call(text)

    def test_unregistered_name(self):
        agent = Agent(FixedResolver(Call("missing", Params())))
        with pytest.raises(FunctionNotFound):
            agent.call("do something")


class TestLLMAgent:

    def test_prompt_flow(self, engine):
        agent = new_llm_agent(engine)
        engine.queue_text(json.dumps(GREET_DEF))
        agent.register_fn(greet)
        assert "greet a person" in agent.resolver.sys_prompt

        engine.queue_text('greet("Ann",30)')
        assert agent.call("say hi to Ann, she is 30") == ["Hello, Ann! You are 30 years old."]

    def test_tool_flow(self, tool_engine):
        agent = new_llm_agent(tool_engine)
        tool_engine.queue_text(json.dumps(ADD_DEF))
        agent.register_fn(add, ignore_idx=[0])

        tool_engine.queue_tool_call("add", '{"a": 1, "b": 2}')
        ctx = Ctx()
        assert agent.call("one plus two", ctx) == [3]
        assert [d.name for d in tool_engine.payloads[-1]["tools"]] == ["add"]
