import gc

import pytest

from cashflow_engine.observable import LazyObject, Observable, Observer
from cashflow_engine.quotes import SimpleQuote


class Counter(Observer):
    def __init__(self):
        self.count = 0

    def update(self):
        self.count += 1


class Relay(Observable, Observer):
    def __init__(self, source):
        Observable.__init__(self)
        self.register_with(source)

    def update(self):
        self.notify_observers()


class Squared(LazyObject):
    def __init__(self, quote):
        super().__init__()
        self.quote = quote
        self.runs = 0
        self.register_with(quote)

    def perform_calculations(self):
        self.runs += 1
        self.result = self.quote.value() ** 2

    def value(self):
        self.calculate()
        return self.result


def test_diamond_delivers_once():
    quote = SimpleQuote(1.0)
    left, right = Relay(quote), Relay(quote)
    sink = Counter()
    sink.register_with(left)
    sink.register_with(right)

    quote.set_value(2.0)
    assert sink.count == 1

    quote.set_value(3.0)
    assert sink.count == 2, "each cascade delivers once"


class Mutator(Observer):
    """Changes another quote whenever notified."""

    def __init__(self, target):
        self.target = target

    def update(self):
        self.target.set_value(self.target.value() + 1.0)


def test_mutation_inside_callback_is_delivered_separately():
    q1, q2 = SimpleQuote(1.0), SimpleQuote(10.0)
    sink = Counter()
    sink.register_with(q1)
    sink.register_with(q2)
    mutator = Mutator(q2)
    mutator.register_with(q1)

    q1.set_value(2.0)
    assert q2.value() == 11.0
    assert sink.count == 2


def test_relay_inside_callback_still_joins_the_cascade():
    quote = SimpleQuote(1.0)
    relay = Relay(quote)
    sink = Counter()
    sink.register_with(quote)
    sink.register_with(relay)

    quote.set_value(2.0)
    assert sink.count == 1


def test_register_is_idempotent_and_unregister_stops_delivery():
    quote = SimpleQuote(1.0)
    sink = Counter()
    sink.register_with(quote)
    sink.register_with(quote)
    assert quote.observer_count == 1

    quote.set_value(2.0)
    sink.unregister_with(quote)
    quote.set_value(3.0)
    assert sink.count == 1
    assert quote.observer_count == 0


def test_observers_are_weakly_held():
    quote = SimpleQuote(1.0)
    sink = Counter()
    sink.register_with(quote)
    assert quote.observer_count == 1

    del sink
    gc.collect()
    assert quote.observer_count == 0
    quote.set_value(2.0)


def test_set_value_notifies_only_on_change():
    quote = SimpleQuote(1.0)
    sink = Counter()
    sink.register_with(quote)

    assert quote.set_value(1.0) == 0.0
    assert sink.count == 0
    assert quote.set_value(1.5) == pytest.approx(0.5)
    assert sink.count == 1


def test_lazy_object_recomputes_after_notification():
    quote = SimpleQuote(2.0)
    lazy = Squared(quote)

    assert lazy.value() == 4.0
    assert lazy.value() == 4.0
    assert lazy.runs == 1

    quote.set_value(3.0)
    assert not lazy.is_calculated
    assert lazy.value() == 9.0
    assert lazy.runs == 2


def test_frozen_lazy_object_ignores_updates():
    quote = SimpleQuote(2.0)
    lazy = Squared(quote)
    sink = Counter()
    sink.register_with(lazy)
    assert lazy.value() == 4.0

    lazy.freeze()
    quote.set_value(5.0)
    assert lazy.value() == 4.0
    assert sink.count == 0

    lazy.unfreeze()
    assert sink.count == 1
    assert lazy.value() == 25.0


def test_failed_calculation_is_retried():
    quote = SimpleQuote()
    lazy = Squared(quote)
    with pytest.raises(ValueError):
        lazy.value()
    assert not lazy.is_calculated

    quote.set_value(4.0)
    assert lazy.value() == 16.0
