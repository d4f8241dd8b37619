"""
Response sinks for http1_core.

A sink is the narrow output contract a ResponseWriter talks to: it accepts
raw bytes and a distinct end-of-response signal. What happens to the
connection afterwards is up to whoever owns the sink.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from .exceptions import SinkWriteFailure
from .network.stream import NetworkStream

logger = logging.getLogger(__name__)


class ResponseSink(ABC):
    """
    Interface for the byte sink behind a ResponseWriter.

    Implementations must keep the order of write calls and must be able to
    tell "more writes may come" apart from "response finished", which is
    what end() signals.
    """

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Accept bytes for buffering or transmission.

        Raises:
            SinkWriteFailure: If the bytes cannot be accepted.
        """
        pass

    @abstractmethod
    async def end(self) -> None:
        """
        Mark the logical end of one response.

        Raises:
            SinkWriteFailure: If the end signal cannot be delivered.
        """
        pass


class MemorySink(ResponseSink):
    """
    In-memory sink.

    Records every write and whether end() was received. Used by tests and
    for rendering a response to bytes without a connection.
    """

    def __init__(self) -> None:
        self._writes: List[bytes] = []
        self._got_end = False

    async def write(self, data: bytes) -> None:
        if self._got_end:
            raise SinkWriteFailure("write after end")
        self._writes.append(bytes(data))

    async def end(self) -> None:
        if self._got_end:
            raise SinkWriteFailure("end after end")
        self._got_end = True

    @property
    def buffer(self) -> bytes:
        """Everything written so far, joined."""
        return b"".join(self._writes)

    @property
    def writes(self) -> List[bytes]:
        """Individual write calls in the order they were made."""
        return list(self._writes)

    @property
    def got_end(self) -> bool:
        return self._got_end


class StreamSink(ResponseSink):
    """
    Sink that forwards a response onto a NetworkStream.

    end() only marks the response as finished; the stream stays open so
    the connection that owns it can reuse or close it depending on the
    writer's keep-alive decision.
    """

    def __init__(self, stream: NetworkStream) -> None:
        self._stream = stream
        self._ended = False
        self._bytes_sent = 0

    async def write(self, data: bytes) -> None:
        if self._ended:
            raise SinkWriteFailure("write after end")
        if self._stream.is_closed:
            raise SinkWriteFailure("stream is closed")

        try:
            await self._stream.write(data)
        except (OSError, RuntimeError) as e:
            raise SinkWriteFailure(f"stream write failed: {e}", cause=e) from e

        self._bytes_sent += len(data)

    async def end(self) -> None:
        if self._ended:
            raise SinkWriteFailure("end after end")
        if self._stream.is_closed:
            raise SinkWriteFailure("stream is closed")

        self._ended = True
        logger.debug(f"Response finished after {self._bytes_sent} bytes")

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent
