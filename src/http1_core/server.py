"""
HTTP/1.x server connection for http1_core.

This module implements the ServerConnection class that serves
request/response exchanges over a single accepted NetworkStream,
parsing requests with h11 and framing responses with a ResponseWriter.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import h11

from .exceptions import (
    ConnectionError,
    HTTPCoreError,
    ProtocolError,
    TimeoutError,
)
from .http_primitives import HeaderMap, ServerRequest
from .network.aio import AsyncioNetworkStream
from .network.stream import NetworkStream
from .response_writer import ResponseWriter, WriterState
from .sinks import StreamSink

logger = logging.getLogger(__name__)


Handler = Callable[[ServerRequest, ResponseWriter], Awaitable[None]]


class ServerResponseWriter(ResponseWriter):
    """
    ResponseWriter used by ServerConnection.

    When the server will not keep an HTTP/1.1 connection open and the
    handler did not say so itself, ``Connection: close`` is added so the
    client does not try to reuse the socket.
    """

    def _prepare_headers(self, headers: HeaderMap) -> None:
        if self.server_keep_alive or self.http_version.is_http10:
            return
        if "Connection" not in headers:
            headers.add("Connection", "close")


class ConnectionState(Enum):
    """States of a server-side HTTP/1.x connection."""
    NEW = "new"           # Accepted, no request read yet
    ACTIVE = "active"     # Handling a request
    IDLE = "idle"         # Waiting for the next request on a kept-alive connection
    CLOSED = "closed"     # Closed, cannot serve further requests


class ServerConnection:
    """
    Server side of one HTTP/1.x connection.

    Each exchange gets its own ServerResponseWriter. The connection stays open
    for another request only when the writer resolved keep-alive; the
    server's own preference passed to the writer already accounts for
    what the client asked for and for the per-connection request limit.
    """

    # Default configuration
    DEFAULT_KEEP_ALIVE = True
    DEFAULT_READ_TIMEOUT = 30.0  # 30 seconds
    DEFAULT_MAX_REQUESTS = 100  # Maximum requests per connection
    DEFAULT_READ_SIZE = 65536  # 64KB chunks

    def __init__(
        self,
        stream: NetworkStream,
        handler: Handler,
        keep_alive: Optional[bool] = None,
        read_timeout: Optional[float] = None,
        max_requests: Optional[int] = None,
    ):
        """
        Initialize the server connection.

        Args:
            stream: The accepted NetworkStream
            handler: Coroutine called as handler(request, writer) per exchange
            keep_alive: Whether the server is willing to keep connections open
            read_timeout: Timeout for waiting on request bytes in seconds
            max_requests: Maximum number of requests served on this connection
        """
        self._stream = stream
        self._handler = handler
        self._state = ConnectionState.NEW
        self._leftover = b""

        # Configuration
        self._keep_alive = self.DEFAULT_KEEP_ALIVE if keep_alive is None else keep_alive
        self._read_timeout = read_timeout or self.DEFAULT_READ_TIMEOUT
        self._max_requests = max_requests or self.DEFAULT_MAX_REQUESTS

        # Metrics
        self._request_count = 0
        self._bytes_sent = 0
        self._bytes_received = 0
        self._errors_count = 0
        self._total_request_time = 0.0

        logger.debug(f"Server connection accepted from {stream.get_extra_info('peername')}")

    async def serve(self) -> None:
        """Serve exchanges until the connection is closed."""
        while await self.handle_exchange():
            pass

    async def handle_exchange(self) -> bool:
        """
        Read one request, run the handler and finish its response.

        Returns:
            True if the connection was kept alive for another request

        Raises:
            ConnectionError: If the connection is already closed
            ProtocolError: If the request is malformed
            TimeoutError: If the request does not arrive in time
            Exception: Whatever the handler raised, after the connection
                       has been closed
        """
        if self._state == ConnectionState.CLOSED:
            raise ConnectionError("Connection is closed")

        request = await self._receive_request()
        if request is None:
            logger.debug(f"Client closed connection after {self._request_count} requests")
            await self.close()
            return False

        self._state = ConnectionState.ACTIVE
        self._request_count += 1
        start_time = time.time()

        server_keep_alive = (
            self._keep_alive
            and request.keep_alive_requested
            and self._request_count < self._max_requests
        )
        sink = StreamSink(self._stream)
        writer = ServerResponseWriter(sink, request, server_keep_alive)

        try:
            await self._handler(request, writer)

            if not writer.ended:
                logger.warning(
                    f"Handler returned without ending response to "
                    f"{request.method} {request.target}"
                )
                await writer.end()

        except Exception as e:
            duration = time.time() - start_time
            self._errors_count += 1
            logger.error(
                f"Request {self._request_count}: {request.method} {request.target} "
                f"failed: {e} ({duration:.3f}s)"
            )
            try:
                if writer.state is WriterState.CREATED:
                    await writer.write_headers(
                        "500 Internal Server Error",
                        [("Content-Length", "0"), ("Connection", "close")],
                    )
                    await writer.end()
            except HTTPCoreError as send_error:
                logger.error(f"Could not send 500 response: {send_error}")
            finally:
                self._bytes_sent += sink.bytes_sent
                await self.close()
            raise

        duration = time.time() - start_time
        self._total_request_time += duration
        self._bytes_sent += sink.bytes_sent

        logger.debug(
            f"Request {self._request_count}: {request.method} {request.target} "
            f"-> {writer.status} keep-alive={writer.keep_alive} ({duration:.3f}s)"
        )

        if writer.keep_alive:
            self._state = ConnectionState.IDLE
            return True

        await self.close()
        return False

    async def _receive_request(self) -> Optional[ServerRequest]:
        """
        Parse one complete request, body included.

        Bytes read past the end of the request are kept for the next
        exchange.

        Returns:
            The request, or None if the client closed an idle connection
        """
        h11_connection = h11.Connection(h11.SERVER)
        if self._leftover:
            h11_connection.receive_data(self._leftover)
            self._leftover = b""

        request_event: Optional[h11.Request] = None
        body: List[bytes] = []

        while True:
            try:
                event = h11_connection.next_event()
            except h11.RemoteProtocolError as e:
                self._errors_count += 1
                await self.close()
                raise ProtocolError(f"Invalid request: {e}", cause=e) from e

            if event is h11.NEED_DATA:
                h11_connection.receive_data(await self._read())
                continue

            if isinstance(event, h11.Request):
                request_event = event
                continue

            if isinstance(event, h11.Data):
                body.append(bytes(event.data))
                continue

            if isinstance(event, h11.EndOfMessage):
                self._leftover = h11_connection.trailing_data[0]
                return ServerRequest.from_h11(request_event, body)

            if isinstance(event, h11.ConnectionClosed):
                return None

    async def _read(self) -> bytes:
        try:
            data = await asyncio.wait_for(
                self._stream.read(self.DEFAULT_READ_SIZE),
                timeout=self._read_timeout,
            )
        except asyncio.TimeoutError as e:
            self._errors_count += 1
            await self.close()
            raise TimeoutError("Timed out waiting for request", timeout=self._read_timeout) from e
        except (OSError, RuntimeError) as e:
            self._errors_count += 1
            await self.close()
            raise ConnectionError(f"Read failed: {e}", cause=e) from e

        self._bytes_received += len(data)
        return data

    async def close(self) -> None:
        """Close the connection and cleanup resources."""
        if self._state != ConnectionState.CLOSED:
            self._state = ConnectionState.CLOSED
            await self._stream.aclose()
            logger.debug(f"Connection closed after {self._request_count} requests")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        """Check if connection is closed."""
        return self._state == ConnectionState.CLOSED

    @property
    def is_idle(self) -> bool:
        """Check if connection is waiting for another request."""
        return self._state == ConnectionState.IDLE

    @property
    def metrics(self) -> Dict[str, Any]:
        """
        Get connection metrics.

        Returns:
            Dictionary with connection metrics
        """
        return {
            "request_count": self._request_count,
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
            "errors_count": self._errors_count,
            "total_request_time": self._total_request_time,
            "state": self._state.value,
        }


async def start_server(
    handler: Handler,
    host: str = "127.0.0.1",
    port: int = 8000,
    **connection_options: Any,
) -> asyncio.AbstractServer:
    """
    Listen for HTTP/1.x clients and serve each one with a ServerConnection.

    Args:
        handler: Coroutine called as handler(request, writer) per exchange
        host: Interface to bind
        port: Port to bind
        **connection_options: keep_alive, read_timeout and max_requests,
                              passed to every ServerConnection

    Returns:
        The asyncio server, already listening
    """
    async def on_client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        connection = ServerConnection(
            AsyncioNetworkStream(reader, writer), handler, **connection_options
        )
        try:
            await connection.serve()
        except HTTPCoreError as e:
            logger.info(f"Connection from {writer.get_extra_info('peername')} dropped: {e}")
        except Exception:
            logger.exception("Unhandled error while serving connection")
        finally:
            await connection.close()

    server = await asyncio.start_server(on_client, host, port)
    logger.info(f"Listening on {host}:{port}")
    return server
