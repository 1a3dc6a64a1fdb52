"""Identifier generation."""

import itertools
import uuid
from abc import ABC, abstractmethod


class IdGenerator(ABC):
    """Produces unique identifiers for locally generated records."""

    @abstractmethod
    def new_id(self, prefix: str = "") -> str:
        """Return a new identifier, optionally prefixed."""
        pass


class UUIDGenerator(IdGenerator):
    """Random UUID4-based identifiers."""

    def new_id(self, prefix: str = "") -> str:
        value = uuid.uuid4().hex.upper()
        return f"{prefix}{value}" if prefix else value


class SequentialIdGenerator(IdGenerator):
    """Deterministic identifiers for tests: ``PREFIX-1``, ``PREFIX-2``..."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def new_id(self, prefix: str = "") -> str:
        value = str(next(self._counter))
        return f"{prefix}{value}" if prefix else value
