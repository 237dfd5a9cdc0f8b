"""Tests for the endpoint slot."""

from __future__ import annotations

from loadpulse.engine.endpoint import EndpointSlot


def test_load_returns_initial():
    slot = EndpointSlot("localhost:8080")
    assert slot.load() == "localhost:8080"


def test_store_replaces_value():
    slot = EndpointSlot("localhost:8080")
    slot.store("10.0.0.2:8080")
    assert slot.load() == "10.0.0.2:8080"


def test_last_store_wins():
    slot = EndpointSlot("a:1")
    for value in ("b:2", "c:3", "d:4"):
        slot.store(value)
    assert slot.load() == "d:4"
