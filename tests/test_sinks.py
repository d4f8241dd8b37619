"""
Unit tests for response sinks.
"""

import pytest

from http1_core.exceptions import SinkWriteFailure
from http1_core.http_primitives import ServerRequest
from http1_core.network.mock import MockNetworkStream
from http1_core.response_writer import ResponseWriter
from http1_core.sinks import MemorySink, StreamSink


class BrokenStream(MockNetworkStream):
    """Mock stream whose writes fail like a reset socket."""

    async def write(self, data: bytes) -> None:
        raise ConnectionResetError("Connection reset by peer")


class TestMemorySink:
    """Test MemorySink behaviour."""

    @pytest.mark.asyncio
    async def test_records_writes(self) -> None:
        """Test writes are recorded individually and joined."""
        sink = MemorySink()

        await sink.write(b"hello")
        await sink.write(bytearray(b" world"))

        assert sink.writes == [b"hello", b" world"]
        assert sink.buffer == b"hello world"
        assert sink.got_end is False

    @pytest.mark.asyncio
    async def test_end(self) -> None:
        """Test end is recorded separately from writes."""
        sink = MemorySink()

        await sink.end()

        assert sink.got_end is True
        assert sink.buffer == b""

    @pytest.mark.asyncio
    async def test_write_after_end(self) -> None:
        """Test the sink refuses writes after end."""
        sink = MemorySink()
        await sink.end()

        with pytest.raises(SinkWriteFailure, match="write after end"):
            await sink.write(b"late")
        with pytest.raises(SinkWriteFailure, match="end after end"):
            await sink.end()


class TestStreamSink:
    """Test StreamSink forwarding onto a network stream."""

    @pytest.mark.asyncio
    async def test_forwards_writes(self) -> None:
        """Test bytes reach the stream in order and are counted."""
        stream = MockNetworkStream()
        sink = StreamSink(stream)

        await sink.write(b"HTTP/1.1 200 OK\r\n\r\n")
        await sink.write(b"body")

        assert stream.written_data == b"HTTP/1.1 200 OK\r\n\r\nbody"
        assert sink.bytes_sent == 23

    @pytest.mark.asyncio
    async def test_end_keeps_stream_open(self) -> None:
        """Test end marks the response finished without closing the stream."""
        stream = MockNetworkStream()
        sink = StreamSink(stream)

        await sink.end()

        assert sink.ended is True
        assert stream.is_closed is False
        with pytest.raises(SinkWriteFailure, match="write after end"):
            await sink.write(b"late")

    @pytest.mark.asyncio
    async def test_closed_stream(self) -> None:
        """Test writing to a closed stream fails."""
        stream = MockNetworkStream()
        await stream.aclose()
        sink = StreamSink(stream)

        with pytest.raises(SinkWriteFailure, match="stream is closed"):
            await sink.write(b"data")
        with pytest.raises(SinkWriteFailure, match="stream is closed"):
            await sink.end()

    @pytest.mark.asyncio
    async def test_stream_error_is_wrapped(self) -> None:
        """Test network errors surface as SinkWriteFailure with the cause."""
        sink = StreamSink(BrokenStream())

        with pytest.raises(SinkWriteFailure) as exc_info:
            await sink.write(b"data")

        assert isinstance(exc_info.value.cause, ConnectionResetError)
        assert sink.bytes_sent == 0

    @pytest.mark.asyncio
    async def test_writer_over_stream_sink(self) -> None:
        """Test a writer frames a complete response onto a stream."""
        stream = MockNetworkStream()
        request = ServerRequest.create(http_version="1.0")
        writer = ResponseWriter(StreamSink(stream), request, True)

        await writer.write_headers("200 OK", {"Content-Length": "2"})
        await writer.write_body(b"hi")
        await writer.end()

        assert stream.written_data == (
            b"HTTP/1.0 200 OK\r\nContent-Length: 2\r\nConnection: keep-alive\r\n\r\nhi"
        )
        assert writer.keep_alive is True
