"""
Observer pattern with weakly held subscribers and once-per-cascade delivery.

A quote change calls ``notify_observers`` on the quote; every observer's
callback may in turn notify its own observers. The whole chain is one
cascade: a callback reached twice through a diamond-shaped graph runs once.
A mutation made from inside a callback (``notify_change``) opens its own
cascade, so observers already reached are notified of it too.
"""
from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Callable, List, Optional, Set

logger = logging.getLogger(__name__)

_cascade = threading.local()


def _make_ref(callback: Callable[[], None]):
    if hasattr(callback, "__self__") and hasattr(callback, "__func__"):
        return weakref.WeakMethod(callback)
    return weakref.ref(callback)


def _callback_key(callback: Callable[[], None]):
    if hasattr(callback, "__self__") and hasattr(callback, "__func__"):
        return (id(callback.__self__), callback.__func__)
    return (id(callback), None)


@contextmanager
def new_cascade():
    """Delivery scope for one mutation; observers reached by an enclosing cascade are notified again."""
    outer = getattr(_cascade, "visited", None)
    _cascade.visited = None
    try:
        yield
    finally:
        _cascade.visited = outer


class Observable:
    """Subject holding an ordered list of weakly referenced callbacks."""

    def __init__(self) -> None:
        self._observers: List[weakref.ref] = []

    def register_observer(self, callback: Callable[[], None]) -> None:
        key = _callback_key(callback)
        for ref in self._observers:
            cb = ref()
            if cb is not None and _callback_key(cb) == key:
                return
        self._observers.append(_make_ref(callback))

    def unregister_observer(self, callback: Callable[[], None]) -> None:
        key = _callback_key(callback)
        self._observers = [
            ref for ref in self._observers if ref() is not None and _callback_key(ref()) != key
        ]

    @property
    def observer_count(self) -> int:
        return sum(1 for ref in self._observers if ref() is not None)

    def notify_change(self) -> None:
        """Notify observers of a mutation of this object in its own cascade."""
        with new_cascade():
            self.notify_observers()

    def notify_observers(self) -> None:
        visited: Optional[Set] = getattr(_cascade, "visited", None)
        outermost = visited is None
        if outermost:
            visited = set()
            _cascade.visited = visited

        try:
            for ref in list(self._observers):
                callback = ref()
                if callback is None:
                    continue
                key = _callback_key(callback)
                if key in visited:
                    continue
                visited.add(key)
                callback()
            self._observers = [r for r in self._observers if r() is not None]
        finally:
            if outermost:
                _cascade.visited = None
                logger.debug("Notification cascade reached %d observers", len(visited))


class Observer:
    """Mixin subscribing ``update`` to observables."""

    def register_with(self, observable: Optional[Observable]) -> None:
        if observable is not None:
            observable.register_observer(self.update)

    def unregister_with(self, observable: Optional[Observable]) -> None:
        if observable is not None:
            observable.unregister_observer(self.update)

    def update(self) -> None:
        raise NotImplementedError


class LazyObject(Observable, Observer):
    """
    Cached computation invalidated by notifications.

    ``calculate`` flags the object as calculated before running
    ``perform_calculations`` so that reads issued from inside the computation
    (a helper reading the curve it is bootstrapping) see the partial state
    instead of recursing.
    """

    def __init__(self) -> None:
        Observable.__init__(self)
        self._calculated = False
        self._frozen = False

    def update(self) -> None:
        if self._frozen:
            return
        self._calculated = False
        self.notify_observers()

    def recalculate(self) -> None:
        self._calculated = False
        self.calculate()
        self.notify_change()

    def freeze(self) -> None:
        self._frozen = True

    def unfreeze(self) -> None:
        if self._frozen:
            self._frozen = False
            self._calculated = False
            self.notify_change()

    @property
    def is_calculated(self) -> bool:
        return self._calculated

    def calculate(self) -> None:
        if self._calculated or self._frozen:
            return
        self._calculated = True
        try:
            self.perform_calculations()
        except Exception:
            self._calculated = False
            raise

    def perform_calculations(self) -> None:
        raise NotImplementedError
