"""Tests for reading the server-suggested host from response bodies."""

from __future__ import annotations

import json

import pytest

from loadpulse.engine.executor import extract_host
from loadpulse.engine.workload import RequestKind


def _body(data: object) -> bytes:
    return json.dumps(data).encode()


class TestExtractHost:
    def test_post_object(self):
        assert extract_host(RequestKind.POST, _body({"id": 1, "host_ip": "10.0.0.5:8080"})) == (
            "10.0.0.5:8080"
        )

    def test_get_uses_first_element(self):
        body = _body([{"host_ip": "first:1"}, {"host_ip": "second:2"}])
        assert extract_host(RequestKind.GET, body) == "first:1"

    @pytest.mark.parametrize(
        ("kind", "body"),
        [
            (RequestKind.GET, _body([])),
            (RequestKind.GET, _body({"host_ip": "x:1"})),
            (RequestKind.POST, _body([{"host_ip": "x:1"}])),
            (RequestKind.POST, _body({"id": 1})),
            (RequestKind.POST, _body({"host_ip": ""})),
            (RequestKind.POST, _body({"host_ip": 42})),
            (RequestKind.GET, _body([1, 2])),
            (RequestKind.POST, b"not json"),
            (RequestKind.GET, b"\xff\xfe"),
            (RequestKind.POST, b""),
        ],
    )
    def test_unusable_bodies_yield_none(self, kind: RequestKind, body: bytes):
        assert extract_host(kind, body) is None
