"""
Network components for http1_core.

This module provides the stream abstraction the server connection runs
on, together with an asyncio adapter and an in-memory mock.
"""

from .stream import NetworkStream
from .mock import MockNetworkStream
from .aio import AsyncioNetworkStream

__all__ = [
    "NetworkStream",
    "MockNetworkStream",
    "AsyncioNetworkStream",
]
