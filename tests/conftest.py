"""
Pytest configuration for http1_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import pytest
from typing import List, Optional

from http1_core.http_primitives import ServerRequest
from http1_core.sinks import MemorySink, ResponseSink


class FailingSink(ResponseSink):
    """Sink whose write or end raises the given error."""

    def __init__(self, fail_write: Optional[Exception] = None, fail_end: Optional[Exception] = None) -> None:
        self.fail_write = fail_write
        self.fail_end = fail_end
        self.writes: List[bytes] = []
        self.end_calls = 0

    async def write(self, data: bytes) -> None:
        if self.fail_write is not None:
            raise self.fail_write
        self.writes.append(data)

    async def end(self) -> None:
        self.end_calls += 1
        if self.fail_end is not None:
            raise self.fail_end


@pytest.fixture
def sink():
    """Create an in-memory response sink."""
    return MemorySink()


@pytest.fixture
def failing_sink():
    """Create a sink that fails on demand."""
    def _create_sink(fail_write=None, fail_end=None) -> FailingSink:
        return FailingSink(fail_write=fail_write, fail_end=fail_end)
    return _create_sink


@pytest.fixture
def make_request():
    """Create a ServerRequest for a given protocol version."""
    def _create_request(http_version="1.1", headers=None, body=None) -> ServerRequest:
        return ServerRequest.create("GET", "/", http_version=http_version, headers=headers, body=body)
    return _create_request


@pytest.fixture
def sample_headers():
    """Sample response headers for testing."""
    return {"Date": "today", "Server": "X"}
