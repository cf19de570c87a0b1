"""Plain Python functions shared by the NLCall examples."""


def greet(name: str, age: int) -> str:
    return f"Hello, {name}! You are {age} years old."


def add(*nums: int) -> int:
    return sum(nums)


def mul(*nums: int) -> int:
    res = 1
    for num in nums:
        res *= num
    return res


def no() -> str:
    return "Sorry, I can't help you with that."


# weather is a function that returns the weather in a city
def weather(city: str) -> str:
    return f"The weather in {city} is sunny."


def length_of_longest_substring(s: str) -> int:
    """Length of the longest substring of `s` without repeating characters."""
    seen: dict[str, int] = {}
    start = best = 0
    for i, ch in enumerate(s):
        if seen.get(ch, -1) >= start:
            start = seen[ch] + 1
        seen[ch] = i
        best = max(best, i - start + 1)
    return best
