"""
Tests for network stream implementations.
"""

import asyncio

import pytest

from http1_core.network import AsyncioNetworkStream, MockNetworkStream, NetworkStream


class TestMockNetworkStream:
    """Test cases for MockNetworkStream."""

    @pytest.mark.asyncio
    async def test_read_write_basic(self):
        """Test basic read and write operations."""
        stream = MockNetworkStream()

        await stream.write(b"hello world")
        assert stream.written_data == b"hello world"

        stream.add_data(b"hello world")

        data = await stream.read(5)
        assert data == b"hello"

        data = await stream.read()
        assert data == b" world"

    @pytest.mark.asyncio
    async def test_read_empty_stream(self):
        """Test reading from an exhausted stream returns EOF."""
        stream = MockNetworkStream()

        assert await stream.read() == b""
        assert await stream.read(10) == b""

    @pytest.mark.asyncio
    async def test_close(self):
        """Test closing the stream."""
        stream = MockNetworkStream(b"data")
        assert not stream.is_closed

        await stream.aclose()
        assert stream.is_closed

        with pytest.raises(RuntimeError, match="Stream is closed"):
            await stream.read()
        with pytest.raises(RuntimeError, match="Stream is closed"):
            await stream.write(b"data")

    def test_extra_info(self):
        """Test extra info storage."""
        stream = MockNetworkStream()
        stream.set_extra_info("peername", ("127.0.0.1", 5000))

        assert stream.get_extra_info("peername") == ("127.0.0.1", 5000)
        assert stream.get_extra_info("missing") is None

    def test_is_network_stream(self):
        assert isinstance(MockNetworkStream(), NetworkStream)


class TestAsyncioNetworkStream:
    """Test cases for AsyncioNetworkStream over a real loopback socket."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        """Test reading and writing through asyncio streams."""
        received = asyncio.get_running_loop().create_future()

        async def on_client(reader, writer):
            stream = AsyncioNetworkStream(reader, writer)
            data = await stream.read()
            await stream.write(data.upper())
            received.set_result(stream.get_extra_info("sockname"))
            await stream.aclose()

        server = await asyncio.start_server(on_client, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"ping")
            await writer.drain()

            assert await reader.read() == b"PING"
            assert (await received)[1] == port

            writer.close()
            await writer.wait_closed()
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_closed_stream(self):
        """Test a closed adapter refuses I/O and can be closed twice."""
        done = asyncio.get_running_loop().create_future()

        async def on_client(reader, writer):
            stream = AsyncioNetworkStream(reader, writer)
            await stream.aclose()
            await stream.aclose()
            with pytest.raises(RuntimeError):
                await stream.write(b"x")
            done.set_result(stream.is_closed)

        server = await asyncio.start_server(on_client, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            assert await done is True
            writer.close()
            await writer.wait_closed()
        finally:
            server.close()
            await server.wait_closed()
