"""
Functions that need values the model never sees (sessions, handles, request
context) mark those slots as ignored and receive them at call time.

The first half binds parameters by hand, no model involved. The second half
lets the model pick the function and fill the remaining arguments.
"""
import logging
import os

from dotenv import load_dotenv

from nlcall import Agent, Function, Params
from nlcall.core.Exceptions import TypeCoercionError
from nlcall.definers import StaticDefiner
from nlcall.engines import OpenAIEngine
from nlcall.resolvers import LLMResolver

logging.basicConfig(level=logging.INFO)
load_dotenv()


class Session:
    def __init__(self, user: str) -> None:
        self.user = user
        self.log: list[str] = []


def transfer(session: Session, to: str, amount: float) -> str:
    session.log.append(f"{session.user} -> {to}: {amount:.2f}")
    return f"sent {amount:.2f} to {to}"


TRANSFER_DEF = {
    "name": "transfer",
    "description": 'send money to someone. Call string example: transfer("bob",12.5)',
    "parameters": {
        "type": "object",
        "properties": {
            "to": {"type": "string", "description": "recipient"},
            "amount": {"type": "number", "description": "amount to send"},
        },
    },
}

# --- 1) manual binding: raw JSON fragments or typed values ---
fn = Function(transfer, TRANSFER_DEF, ignore_idx=[0])
print(fn)

alice = Session("alice")
print(fn.call(Params.raw('"bob"', "12.5"), alice))
print(fn.call(Params.typed("carol", 3.0), alice))
print(alice.log)

try:
    fn.bind(Params.raw('"bob"', "twelve"))
except TypeCoercionError as e:
    print(f"rejected: {e}")

# --- 2) model-driven: the same function behind an agent ---
llm = OpenAIEngine(
    model=os.getenv("NLCALL_MODEL", "qwen2.5-14b-instruct"),
    base_url=os.getenv("OPENAI_BASE_URL", "http://127.0.0.1:1234/v1"),
)
agent = Agent(LLMResolver(llm), StaticDefiner([TRANSFER_DEF]))
agent.register_fn(transfer, ignore_idx=[0])

bob = Session("bob")
print(agent.call("please send 20 bucks to dave", bob))
print(bob.log)
