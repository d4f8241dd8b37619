"""
HTTP/1.x response writer for http1_core.

This module implements the ResponseWriter class, a single-use state
machine that frames one response (status line, headers, body, end)
onto a ResponseSink and decides whether the connection underneath
may carry another exchange.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Union

from typing_extensions import Protocol

from .exceptions import ProtocolViolation, SinkWriteFailure
from .http_primitives import HeaderMap, HeadersInput, HTTPVersion, header_tokens
from .sinks import ResponseSink

logger = logging.getLogger(__name__)


class HasHTTPVersion(Protocol):
    """Anything carrying the negotiated version of a request."""

    @property
    def http_version(self) -> Tuple[int, int]:
        ...


class WriterState(Enum):
    """States of a ResponseWriter."""
    CREATED = "created"                   # Nothing written yet
    HEADERS_WRITTEN = "headers_written"   # Head emitted, body may follow
    ENDED = "ended"                       # Response finished, writer is spent


class ResponseWriter:
    """
    Writer for a single HTTP/1.0 or HTTP/1.1 response.

    The writer is driven in a fixed order: write_headers() at most once,
    write_body() any number of times, then end() exactly once. Bytes are
    handed to the sink as each call is made. The keep-alive decision is
    taken when the headers are written, or at end() when they never were,
    and stays fixed afterwards.

    One writer serves one exchange and one caller; it is not locked.
    """

    def __init__(
        self,
        sink: ResponseSink,
        request: HasHTTPVersion,
        server_keep_alive: bool = False,
    ) -> None:
        """
        Initialize the writer. Nothing is written here.

        Args:
            sink: The sink this response is written to; owned by the writer
                  until end()
            request: The inbound request; only its http_version is read
            server_keep_alive: Server preference for persistence when the
                  response headers do not decide it
        """
        self._sink = sink
        self._http_version = HTTPVersion(*request.http_version)
        self._server_keep_alive = bool(server_keep_alive)
        self._state = WriterState.CREATED
        self._keep_alive = False
        self._status: Optional[str] = None

    async def write_headers(self, status: str, headers: Optional[HeadersInput] = None) -> None:
        """
        Write the status line and headers and resolve keep-alive.

        Args:
            status: Status code and reason, e.g. "200 OK", written verbatim
                    after the protocol tag
            headers: Mapping or (name, value) pairs in emission order

        Raises:
            ProtocolViolation: If headers were already written, the response
                               has ended, or the head contains CR/LF or
                               characters outside ISO-8859-1, or a header
                               name or value is not str or bytes
            SinkWriteFailure: If the sink fails to accept the head
        """
        if self._state is WriterState.ENDED:
            raise ProtocolViolation("headers written after end")
        if self._state is WriterState.HEADERS_WRITTEN:
            raise ProtocolViolation("headers already written")

        try:
            header_map = HeaderMap(headers)
        except ValueError as e:
            raise ProtocolViolation(f"invalid response headers: {e}", cause=e) from e

        self._prepare_headers(header_map)
        keep_alive, advertise = self._resolve_keep_alive(header_map)
        if advertise:
            header_map.add("Connection", "keep-alive")

        head = self._render_head(status, header_map)
        await self._call_sink(self._sink.write, head)

        self._status = status
        self._keep_alive = keep_alive
        self._state = WriterState.HEADERS_WRITTEN

        logger.debug(
            f"HTTP/{self._http_version} {status}: "
            f"keep-alive={keep_alive} ({len(head)} header bytes)"
        )

    async def write_body(self, data: Union[bytes, bytearray, memoryview]) -> None:
        """
        Forward body bytes to the sink unchanged.

        Zero-length data is accepted and ignored.

        Raises:
            ProtocolViolation: If the response has ended or no headers
                               were written
            SinkWriteFailure: If the sink fails to accept the bytes
        """
        if self._state is WriterState.ENDED:
            raise ProtocolViolation("body written after end")
        if self._state is WriterState.CREATED:
            raise ProtocolViolation("body written before headers")

        if len(data) == 0:
            return

        await self._call_sink(self._sink.write, bytes(data))

    async def end(self) -> None:
        """
        Finish the response and signal end to the sink.

        When no headers were written, nothing is emitted and the exchange
        is resolved as non-persistent on every protocol version.

        Raises:
            ProtocolViolation: If end() was already called
            SinkWriteFailure: If the sink fails to accept the end signal
        """
        if self._state is WriterState.ENDED:
            raise ProtocolViolation("end called twice")

        if self._state is WriterState.CREATED:
            self._keep_alive = False
            logger.debug(
                f"HTTP/{self._http_version} response ended without headers: keep-alive=False"
            )

        await self._call_sink(self._sink.end)
        self._state = WriterState.ENDED

    def _prepare_headers(self, headers: HeaderMap) -> None:
        """Hook for subclasses to amend the head before keep-alive is resolved."""

    def _resolve_keep_alive(self, headers: HeaderMap) -> Tuple[bool, bool]:
        """
        Decide persistence from the response headers.

        Returns:
            (keep_alive, advertise) where advertise means a
            ``Connection: keep-alive`` header must be appended
        """
        values = headers.get_all("Connection")

        if not values:
            if self._http_version.is_http10:
                # 1.0 clients assume close unless told otherwise
                return self._server_keep_alive, self._server_keep_alive
            return self._server_keep_alive, False

        tokens = header_tokens(", ".join(values))
        if "close" in tokens:
            return False, False
        if "keep-alive" in tokens:
            return True, False

        # Some other Connection option; persistence was not advertised to 1.0
        if self._http_version.is_http10:
            return False, False
        return self._server_keep_alive, False

    def _render_head(self, status: str, headers: HeaderMap) -> bytes:
        lines = [f"HTTP/{self._http_version} {status}"]
        lines.extend(f"{name}: {value}" for name, value in headers.raw_items())

        for line in lines:
            if "\r" in line or "\n" in line:
                raise ProtocolViolation(f"line break in response head: {line!r}")

        try:
            return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
        except UnicodeEncodeError as e:
            raise ProtocolViolation(f"response head is not ISO-8859-1: {e}", cause=e) from e

    async def _call_sink(self, operation: Callable[..., Awaitable[None]], *args: bytes) -> None:
        try:
            await operation(*args)
        except SinkWriteFailure:
            raise
        except OSError as e:
            raise SinkWriteFailure(str(e), cause=e) from e

    @property
    def keep_alive(self) -> bool:
        """Resolved keep-alive decision; False until headers are resolved."""
        return self._keep_alive

    @property
    def http_version(self) -> HTTPVersion:
        return self._http_version

    @property
    def server_keep_alive(self) -> bool:
        return self._server_keep_alive

    @property
    def status(self) -> Optional[str]:
        """Status text written, or None if no headers were written."""
        return self._status

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def headers_written(self) -> bool:
        """True once headers were resolved, explicitly or at end()."""
        return self._state is not WriterState.CREATED

    @property
    def ended(self) -> bool:
        return self._state is WriterState.ENDED
