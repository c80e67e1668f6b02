from __future__ import annotations

import math
from typing import Optional

from .errors import ArgumentError
from .observable import Observable


class Quote(Observable):
    """Market observable: a number that can change and tell its dependents."""

    def value(self) -> float:
        raise NotImplementedError

    def is_valid(self) -> bool:
        raise NotImplementedError


class SimpleQuote(Quote):
    def __init__(self, value: Optional[float] = None):
        super().__init__()
        self._value = value

    def value(self) -> float:
        if not self.is_valid():
            raise ArgumentError("invalid SimpleQuote: no value set")
        return float(self._value)

    def is_valid(self) -> bool:
        return self._value is not None and not math.isnan(self._value)

    def set_value(self, value: Optional[float]) -> float:
        """Set a new value, notifying observers only if it changed. Returns the change."""
        previous = self._value
        if value == previous:
            return 0.0
        self._value = value
        self.notify_change()
        if value is None or previous is None:
            return math.nan
        return float(value) - float(previous)

    def reset(self) -> None:
        self.set_value(None)

    def __repr__(self) -> str:
        return f"SimpleQuote({self._value!r})"
