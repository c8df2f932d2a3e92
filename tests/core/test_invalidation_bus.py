"""Tests for the InvalidationBus publish/subscribe channel."""

import logging

import pytest

from signalgraph.core.bus import InvalidationBus
from signalgraph.schemas.events import BandAdded, DefinitionAdded

pytestmark = [pytest.mark.unit, pytest.mark.core]


def test_subscribers_called_in_registration_order():
    bus = InvalidationBus()
    seen = []
    bus.subscribe("first", lambda e: seen.append(("first", e.kind)))
    bus.subscribe("second", lambda e: seen.append(("second", e.kind)))

    bus.publish(DefinitionAdded(signal_id="a"))

    assert seen == [("first", "definition_added"), ("second", "definition_added")]


def test_failing_subscriber_does_not_block_others(caplog):
    bus = InvalidationBus()
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    bus.subscribe("broken", broken)
    bus.subscribe("healthy", seen.append)

    with caplog.at_level(logging.ERROR):
        bus.publish(BandAdded(band_id="kick"))

    assert len(seen) == 1
    assert "broken" in caplog.text


def test_unsubscribe_stops_delivery():
    bus = InvalidationBus()
    seen = []
    unsubscribe = bus.subscribe("cache", seen.append)

    unsubscribe()
    bus.publish(DefinitionAdded(signal_id="a"))

    assert seen == []
    assert bus.listener_ids() == []


def test_stale_unsubscribe_keeps_replacement():
    bus = InvalidationBus()
    seen = []
    old_unsubscribe = bus.subscribe("cache", lambda e: None)
    bus.subscribe("cache", seen.append)

    old_unsubscribe()
    bus.publish(DefinitionAdded(signal_id="a"))

    assert len(seen) == 1
    assert bus.listener_ids() == ["cache"]


def test_subscriber_may_unsubscribe_during_publish():
    bus = InvalidationBus()
    seen = []
    handles = {}

    def once(event):
        seen.append(event.kind)
        handles["once"]()

    handles["once"] = bus.subscribe("once", once)
    bus.publish(DefinitionAdded(signal_id="a"))
    bus.publish(DefinitionAdded(signal_id="b"))

    assert seen == ["definition_added"]


def test_clear_removes_every_listener():
    bus = InvalidationBus()
    bus.subscribe("a", lambda e: None)
    bus.subscribe("b", lambda e: None)
    bus.clear()
    assert bus.listener_ids() == []
