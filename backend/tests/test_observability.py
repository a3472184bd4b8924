"""
Structured logging, operation timing and rate-limit keying.
"""

import json
import logging
from types import SimpleNamespace

import pytest
from starlette.requests import Request

from tour_search.core.monitoring import JSONFormatter, track_performance
from tour_search.core.rate_limiting import client_key


def _request(headers=()):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.encode(), v.encode()) for k, v in headers],
        "client": ("127.0.0.1", 5050),
    })


class TestJSONFormatter:
    """log_format=json output"""

    def test_structured_fields_are_copied(self):
        record = logging.LogRecord("tour_search.x", logging.INFO, __file__, 1, "search done", None, None)
        record.duration_ms = 12.5
        record.result_count = 3
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "search done"
        assert payload["level"] == "INFO"
        assert payload["duration_ms"] == 12.5
        assert payload["result_count"] == 3
        assert "status_code" not in payload


class TestTrackPerformance:
    """Timing decorator"""

    def test_logs_match_count(self, caplog):
        caplog.set_level(logging.INFO, logger="tour_search.core.monitoring")

        @track_performance("package search")
        def run():
            return SimpleNamespace(meta=SimpleNamespace(total=3))

        assert run().meta.total == 3
        record = next(r for r in caplog.records if r.name == "tour_search.core.monitoring")
        assert record.operation == "package search"
        assert record.result_count == 3

    def test_errors_propagate(self, caplog):
        caplog.set_level(logging.ERROR, logger="tour_search.core.monitoring")

        @track_performance("nearby search")
        def run():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run()
        assert any("nearby search failed" in r.getMessage() for r in caplog.records)


class TestClientKey:
    """Rate-limit client identity"""

    def test_forwarded_first_hop(self):
        assert client_key(_request([("x-forwarded-for", "203.0.113.5, 10.0.0.1")])) == "203.0.113.5"

    def test_peer_address_fallback(self):
        assert client_key(_request()) == "127.0.0.1"
