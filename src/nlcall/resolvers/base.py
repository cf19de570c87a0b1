from __future__ import annotations

from abc import ABC, abstractmethod

from ..functions import Call, Function

__all__ = ["Resolver"]


class Resolver(ABC):
    """Turns user input into a :class:`Call` against known functions."""

    @abstractmethod
    def add_func(self, function: Function) -> bool:
        """Make ``function`` resolvable; return False if its name is taken."""
        raise NotImplementedError

    @abstractmethod
    def resolve(self, user_input: str) -> Call:
        raise NotImplementedError
