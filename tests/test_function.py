"""Function descriptors: construction rules, definitions and the introspection cache."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import nlcall.functions.base as function_base
from nlcall.core.Exceptions import (
    ArityMismatch,
    DefinitionError,
    IntrospectionUnavailable,
    InvalidIgnoreIndex,
    ToolDefinitionError,
)
from nlcall.core.Introspection import get_function_details
from nlcall.functions import Definition, Function

SCHEMA = {"type": "object", "properties": {}}


# greet people politely
def greet(name: str, age: int) -> str:
    """Greets a person by name."""
    return f"Hello, {name}! You are {age} years old."


def pair(a, b):
    return a, b


class TestConstruction:

    def test_properties(self):
        fn = Function(greet, {"name": "greet", "description": "say hi", "parameters": SCHEMA})
        assert fn.name == "greet"
        assert fn.description == "say hi"
        assert fn.fn is greet
        assert fn.arity == 2
        assert fn.external_arity == 2
        assert fn.ignore_idx == ()
        assert not fn.variadic
        assert fn.qualname == "greet"

    def test_ignore_indices_are_deduplicated_and_sorted(self):
        fn = Function(pair, {"name": "pair"}, ignore_idx=[1, 0, 1])
        assert fn.ignore_idx == (0, 1)
        assert fn.external_arity == 0

    @pytest.mark.parametrize("bad", [-1, 2, 5, True, "0", 1.0])
    def test_invalid_ignore_index(self, bad):
        with pytest.raises(InvalidIgnoreIndex) as exc_info:
            Function(pair, {"name": "pair", "parameters": SCHEMA}, ignore_idx=[bad])
        assert exc_info.value.arity == 2

    def test_external_params_need_a_schema(self):
        with pytest.raises(ArityMismatch):
            Function(pair, {"name": "pair"}, ignore_idx=[0])

    def test_no_external_params_need_no_schema(self):
        fn = Function(pair, Definition(name="pair"), ignore_idx=[0, 1])
        assert fn.definition.parameters is None

    def test_non_callable(self):
        with pytest.raises(ToolDefinitionError):
            Function("greet", {"name": "greet"})

    def test_keyword_only_without_default(self):
        def kw(*, token):
            return token

        with pytest.raises(ToolDefinitionError):
            Function(kw, {"name": "kw"})

    def test_slot_types_override(self):
        fn = Function(pair, {"name": "pair", "parameters": SCHEMA}, slot_types={"a": int})
        assert fn.signature.slots[0].annotation is int

    def test_to_dict_and_str(self):
        fn = Function(greet, {"name": "greet", "description": "say hi", "parameters": SCHEMA}, ignore_idx=[0])
        snap = fn.to_dict()
        assert snap["definition"]["name"] == "greet"
        assert snap["ignore_idx"] == [0]
        assert [s["name"] for s in snap["slots"]] == ["name", "age"]
        assert str(fn) == "<Function.greet(name: str, age: int) -> str - say hi>"


class TestDefinition:

    def test_round_trip_through_json(self):
        d = Definition(name="greet", description="hi", parameters=SCHEMA)
        assert Definition.from_json(d.to_json()) == d
        assert str(d) == '{"name":"greet","description":"hi","parameters":{"type":"object","properties":{}}}'

    @pytest.mark.parametrize("name", ["", "has space", "dot.ted", "a" * 65, None])
    def test_invalid_names(self, name):
        with pytest.raises(DefinitionError):
            Definition(name=name)

    @pytest.mark.parametrize("name", ["get-weather", "1abc", "_x", "a" * 64])
    def test_tool_name_charset_is_accepted(self, name):
        assert Definition(name=name).name == name

    def test_from_dict_requires_name(self):
        with pytest.raises(DefinitionError):
            Definition.from_dict({"description": "x"})

    def test_from_json_rejects_garbage(self):
        with pytest.raises(DefinitionError):
            Definition.from_json("not json")
        with pytest.raises(DefinitionError):
            Definition.from_json("[1, 2]")

    def test_missing_description_defaults_to_empty(self):
        assert Definition.from_dict({"name": "no", "parameters": None}).description == ""


class TestIntrospection:

    def test_details_of_plain_function(self):
        info = get_function_details(greet)
        assert info.name == "greet"
        assert "greet people politely" in info.comments
        assert "Greets a person by name." in info.comments
        assert info.source_code.startswith("def greet(")
        assert [p.name for p in info.ordered_params()] == ["name", "age"]
        assert set(info.to_dict()) == {"name", "comments", "source_code"}

    def test_builtins_are_unavailable(self):
        with pytest.raises(IntrospectionUnavailable):
            get_function_details(len)

    def test_info_is_cached(self, monkeypatch):
        calls = []

        def counting(fn):
            calls.append(fn)
            return get_function_details(fn)

        monkeypatch.setattr(function_base, "get_function_details", counting)
        fn = Function(greet, {"name": "greet", "parameters": SCHEMA})
        first = fn.get_or_gen_func_info()
        assert fn.get_or_gen_func_info() is first
        assert len(calls) == 1

    def test_concurrent_first_access_computes_once(self, monkeypatch):
        calls = []
        gate = threading.Event()

        def slow(fn):
            calls.append(fn)
            gate.wait(1)
            return get_function_details(fn)

        monkeypatch.setattr(function_base, "get_function_details", slow)
        fn = Function(greet, {"name": "greet", "parameters": SCHEMA})
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(fn.get_or_gen_func_info) for _ in range(8)]
            gate.set()
            results = [f.result() for f in futures]
        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_failures_are_not_cached(self, monkeypatch):
        outcomes = [IntrospectionUnavailable("flaky"), None]

        def flaky(fn):
            outcome = outcomes.pop(0)
            if outcome is not None:
                raise outcome
            return get_function_details(fn)

        monkeypatch.setattr(function_base, "get_function_details", flaky)
        fn = Function(greet, {"name": "greet", "parameters": SCHEMA})
        with pytest.raises(IntrospectionUnavailable):
            fn.get_or_gen_func_info()
        assert fn.get_or_gen_func_info().name == "greet"
