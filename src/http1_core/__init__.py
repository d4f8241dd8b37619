"""
http1_core - HTTP/1.x response framing and keep-alive policy

A small asyncio HTTP/1.0 and HTTP/1.1 server core built around a
single-use ResponseWriter that frames responses onto a byte sink and
decides whether the connection may be reused.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .http_primitives import HTTPVersion, HTTP_10, HTTP_11, HeaderMap, ServerRequest
from .response_writer import ResponseWriter, WriterState
from .sinks import ResponseSink, MemorySink, StreamSink
from .server import ServerConnection, ServerResponseWriter, ConnectionState, start_server
from .streams import RequestStream, create_request_stream, read_stream_to_bytes
from .exceptions import (
    HTTPCoreError,
    ProtocolViolation,
    SinkWriteFailure,
    ConnectionError,
    ProtocolError,
    TimeoutError,
    StreamError,
)

__all__ = [
    "HTTPVersion",
    "HTTP_10",
    "HTTP_11",
    "HeaderMap",
    "ServerRequest",
    "ResponseWriter",
    "WriterState",
    "ResponseSink",
    "MemorySink",
    "StreamSink",
    "ServerConnection",
    "ServerResponseWriter",
    "ConnectionState",
    "start_server",
    "RequestStream",
    "create_request_stream",
    "read_stream_to_bytes",
    "HTTPCoreError",
    "ProtocolViolation",
    "SinkWriteFailure",
    "ConnectionError",
    "ProtocolError",
    "TimeoutError",
    "StreamError",
]
