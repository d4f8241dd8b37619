"""
HTTP primitives for http1_core.

This module defines the core data structures shared by the server
connection and the response writer: protocol versions, an ordered
case-insensitive header map and the inbound request head.
"""

from typing import (
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)
from dataclasses import dataclass, field

import h11

from .streams import RequestStream


# Type aliases for better readability
HeaderValue = Union[str, bytes]
HeaderPairs = Iterable[Tuple[HeaderValue, HeaderValue]]
HeadersInput = Union["HeaderMap", Mapping[str, str], HeaderPairs]


class HTTPVersion(NamedTuple):
    """Immutable HTTP major.minor version pair."""
    major: int
    minor: int

    @classmethod
    def parse(cls, value: Union[str, bytes]) -> "HTTPVersion":
        """
        Parse a version such as ``"1.1"`` or ``b"1.0"``.

        Raises:
            ValueError: If the value is not a major.minor pair of integers
        """
        if isinstance(value, bytes):
            value = value.decode("ascii")

        major, sep, minor = value.partition(".")
        if not sep or not major.isdigit() or not minor.isdigit():
            raise ValueError(f"invalid HTTP version: {value!r}")

        return cls(int(major), int(minor))

    @property
    def is_http10(self) -> bool:
        """True for HTTP/1.0, whose connections are not persistent by default."""
        return self.major == 1 and self.minor == 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


HTTP_10 = HTTPVersion(1, 0)
HTTP_11 = HTTPVersion(1, 1)


def _to_str(value: HeaderValue) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    if isinstance(value, str):
        return value
    raise ValueError("header names and values must be str or bytes")


def header_tokens(value: Optional[str]) -> List[str]:
    """Split a comma separated header value into lowercased tokens."""
    if not value:
        return []
    return [token.strip().lower() for token in value.split(",") if token.strip()]


class HeaderMap(MutableMapping[str, str]):
    """
    Ordered header mapping with case-insensitive names.

    Lookups ignore the case of the header name while iteration and
    raw_items() keep insertion order and the original spelling, which
    is the order headers are emitted on the wire. Duplicate names are
    only created through add().
    """

    def __init__(self, headers: Optional[HeadersInput] = None) -> None:
        self._items: List[Tuple[str, str]] = []

        if headers is None:
            return

        if isinstance(headers, HeaderMap):
            pairs: Iterable[Tuple[HeaderValue, HeaderValue]] = headers.raw_items()
        elif isinstance(headers, Mapping):
            pairs = headers.items()
        else:
            pairs = headers

        for name, value in pairs:
            self.add(name, value)

    def add(self, name: HeaderValue, value: HeaderValue) -> None:
        """Append a header, keeping any existing headers of the same name."""
        self._items.append((_to_str(name), _to_str(value)))

    def get_all(self, name: str) -> List[str]:
        """Get every value for a header name (case-insensitive)."""
        name_lower = name.lower()
        return [v for n, v in self._items if n.lower() == name_lower]

    def raw_items(self) -> List[Tuple[str, str]]:
        """All (name, value) pairs in emission order, duplicates included."""
        return list(self._items)

    def copy(self) -> "HeaderMap":
        return HeaderMap(self)

    def __getitem__(self, name: str) -> str:
        name_lower = name.lower()
        for header_name, header_value in self._items:
            if header_name.lower() == name_lower:
                return header_value
        raise KeyError(name)

    def __setitem__(self, name: str, value: HeaderValue) -> None:
        name = _to_str(name)
        value = _to_str(value)
        name_lower = name.lower()

        replaced = False
        items = []
        for header_name, header_value in self._items:
            if header_name.lower() == name_lower:
                if not replaced:
                    items.append((header_name, value))
                    replaced = True
                continue
            items.append((header_name, header_value))

        if not replaced:
            items.append((name, value))
        self._items = items

    def __delitem__(self, name: str) -> None:
        name_lower = name.lower()
        items = [(n, v) for n, v in self._items if n.lower() != name_lower]
        if len(items) == len(self._items):
            raise KeyError(name)
        self._items = items

    def __iter__(self) -> Iterator[str]:
        seen = set()
        for name, _ in self._items:
            if name.lower() not in seen:
                seen.add(name.lower())
                yield name

    def __len__(self) -> int:
        return len({name.lower() for name, _ in self._items})

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return [(n.lower(), v) for n, v in self._items] == [
                (n.lower(), v) for n, v in other._items
            ]
        if isinstance(other, Mapping):
            return {n.lower(): v for n, v in self.items()} == {
                str(n).lower(): v for n, v in other.items()
            }
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"


@dataclass(frozen=True)
class ServerRequest:
    """
    Immutable head of an inbound HTTP request, plus its body stream.

    The response writer only reads http_version; the server connection
    also uses the headers to learn whether the client wants the
    connection kept open.
    """

    method: str
    target: str
    http_version: HTTPVersion
    headers: HeaderMap = field(default_factory=HeaderMap)
    stream: RequestStream = field(default_factory=RequestStream)

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        if not isinstance(self.method, str):
            raise ValueError("method must be str")

        if not isinstance(self.target, str):
            raise ValueError("target must be str")

        if not isinstance(self.http_version, HTTPVersion):
            raise ValueError("http_version must be an HTTPVersion")

        if not isinstance(self.headers, HeaderMap):
            raise ValueError("headers must be a HeaderMap")

    @classmethod
    def create(
        cls,
        method: Union[str, bytes] = "GET",
        target: Union[str, bytes] = "/",
        http_version: Union[str, bytes, Tuple[int, int]] = HTTP_11,
        headers: Optional[HeadersInput] = None,
        body: Optional[Union[bytes, List[bytes]]] = None,
    ) -> "ServerRequest":
        """
        Create a ServerRequest with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            target: Request target as sent on the request line
            http_version: Version string, bytes or (major, minor) pair
            headers: Optional mapping or list of (name, value) pairs
            body: Optional body bytes or list of chunks

        Returns:
            New ServerRequest instance
        """
        if isinstance(method, bytes):
            method = method.decode("ascii")

        if isinstance(target, bytes):
            target = target.decode("ascii")

        if isinstance(http_version, (str, bytes)):
            http_version = HTTPVersion.parse(http_version)
        else:
            http_version = HTTPVersion(*http_version)

        return cls(
            method=method,
            target=target,
            http_version=http_version,
            headers=HeaderMap(headers),
            stream=RequestStream(body if body is not None else b""),
        )

    @classmethod
    def from_h11(cls, event: h11.Request, body: Optional[List[bytes]] = None) -> "ServerRequest":
        """
        Build a ServerRequest from a parsed h11 request event.

        Args:
            event: The h11.Request event
            body: Body chunks received for this request

        Returns:
            New ServerRequest instance
        """
        return cls(
            method=event.method.decode("ascii"),
            target=event.target.decode("ascii"),
            http_version=HTTPVersion.parse(event.http_version),
            headers=HeaderMap(event.headers.raw_items()),
            stream=RequestStream(body or []),
        )

    @property
    def keep_alive_requested(self) -> bool:
        """
        Whether the client is willing to reuse the connection.

        HTTP/1.0 clients must ask with ``Connection: keep-alive``;
        HTTP/1.1 clients are persistent unless they send ``close``.
        """
        tokens = header_tokens(", ".join(self.headers.get_all("Connection")))
        if "close" in tokens:
            return False
        if self.http_version.is_http10:
            return "keep-alive" in tokens
        return True
