"""Property-based tests for the readiness gate."""

import asyncio
from types import SimpleNamespace

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from groundwork.app.http.middleware import ReadinessGate

paths = st.text(alphabet="abcdefghijklmnopqrstuvwxyz/._-", max_size=30).map(
    lambda s: "/" + s
)
methods = st.sampled_from(["GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS"])


async def _call(gate, method, path):
    statuses = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        if message["type"] == "http.response.start":
            statuses.append(message["status"])

    scope = {"type": "http", "method": method, "path": path, "headers": [], "query_string": b""}
    await gate(scope, receive, send)
    return statuses[0]


async def _ok(scope, receive, send):
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b""})


@pytest.mark.property
@pytest.mark.unit
class TestReadinessGateProperties:
    @given(requests=st.lists(st.tuples(methods, paths), min_size=1, max_size=20), opened_at=st.integers(0, 20))
    @settings(max_examples=50, deadline=None)
    def test_503_before_and_passthrough_after(self, requests, opened_at):
        """Every request before the transition is 503, every one after passes."""
        context = SimpleNamespace(started=False)
        gate = ReadinessGate(_ok, context)

        async def run():
            results = []
            for index, (method, path) in enumerate(requests):
                if index == opened_at:
                    context.started = True
                results.append((index, await _call(gate, method, path)))
            return results

        for index, status in asyncio.run(run()):
            assert status == (200 if index >= opened_at else 503)
