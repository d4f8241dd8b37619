"""
Request body streams for http1_core.

The server connection reads a request body off the wire before the
handler runs and hands it over as a RequestStream, so handlers consume
bodies the same way whether they arrived in one piece or several.
"""

from typing import AsyncIterator, List, Optional, Union

from .exceptions import StreamError


class RequestStream:
    """
    Async-iterable body of an inbound HTTP request.

    Wraps the chunks received for one request. Empty chunks are skipped
    and a closed stream refuses further iteration.
    """

    def __init__(self, data: Union[bytes, List[bytes]] = b"") -> None:
        """
        Initialize RequestStream.

        Args:
            data: The body, either as a single bytes object or as the
                  list of chunks in the order they were received
        """
        if isinstance(data, (bytes, bytearray)):
            chunks = [bytes(data)]
        elif isinstance(data, list):
            chunks = [bytes(chunk) for chunk in data]
        else:
            raise ValueError("data must be bytes or a list of bytes")

        self._chunks = [chunk for chunk in chunks if chunk]
        self._content_length = sum(len(chunk) for chunk in self._chunks)
        self._position = 0
        self._closed = False

    def __aiter__(self) -> "RequestStream":
        """Return self as async iterator."""
        if self._closed:
            raise StreamError("Cannot iterate over closed stream")
        return self

    async def __anext__(self) -> bytes:
        """Get next chunk of data."""
        if self._closed:
            raise StreamError("Cannot read from closed stream")

        if self._position >= len(self._chunks):
            raise StopAsyncIteration

        chunk = self._chunks[self._position]
        self._position += 1
        return chunk

    async def aread(self) -> bytes:
        """Read the rest of the stream and return it as bytes."""
        if self._closed:
            raise StreamError("Cannot read from closed stream")

        chunks = []
        async for chunk in self:
            chunks.append(chunk)

        return b"".join(chunks)

    async def aclose(self) -> None:
        """Close the stream and drop any unread chunks."""
        self._closed = True
        self._chunks = []

    @property
    def content_length(self) -> int:
        """Total number of body bytes received."""
        return self._content_length

    @property
    def closed(self) -> bool:
        """Get whether the stream is closed."""
        return self._closed


async def read_stream_to_bytes(stream: AsyncIterator[bytes]) -> bytes:
    """
    Read an entire async stream into bytes.

    Args:
        stream: Async iterable of byte chunks

    Returns:
        All chunks joined together
    """
    chunks = []
    async for chunk in stream:
        chunks.append(chunk)
    return b"".join(chunks)


def create_request_stream(data: Optional[Union[bytes, List[bytes]]] = None) -> RequestStream:
    """
    Create a RequestStream, treating None as an empty body.

    Args:
        data: Body bytes or list of chunks

    Returns:
        New RequestStream instance
    """
    return RequestStream(data if data is not None else b"")
