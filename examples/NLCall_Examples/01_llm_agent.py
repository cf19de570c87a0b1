"""
Natural-language calls against a local OpenAI-compatible server (LM Studio, vLLM, ...).

Definitions are generated by the model on first run and cached in ./fn_def,
so later runs skip the definer entirely.
"""
import logging
import os

from dotenv import load_dotenv

from nlcall import new_llm_agent
from nlcall.engines import OpenAIEngine

from funcs import add, greet, length_of_longest_substring, mul, no, weather

logging.basicConfig(level=logging.INFO)
load_dotenv()

DEF_DIR = "./fn_def"

# --- the completion engine (any OpenAI-compatible endpoint works) ---
llm = OpenAIEngine(
    model=os.getenv("NLCALL_MODEL", "qwen2.5-14b-instruct"),
    base_url=os.getenv("OPENAI_BASE_URL", "http://127.0.0.1:1234/v1"),
)
# llm = GeminiEngine(api_key=os.getenv("GOOGLE_API_KEY"), model="gemini-2.5-flash")

# --- register plain functions; definitions come from disk or from the model ---
agent = new_llm_agent(llm)
for fn in (add, greet, weather, length_of_longest_substring, mul, no):
    agent.register_fn(fn, load_def_dir=DEF_DIR, save_def_dir=DEF_DIR)

# --- resolve, bind and call ---
bound = agent.assign_callable("1*3*34234*991238=?")
print(f"{bound.name}{bound.args} -> {bound()}")

query = input("YOU: ")
while query.strip().lower() not in ["q", "exit"]:
    print(agent.call(query))
    query = input("YOU: ")
