"""
Transport-facing request and response objects over ASGI 3.

The dispatch core needs very little from the transport:
- Request: ``method``, ``path``, ``url`` and headers
- Response: ``set_status``, ``set_header`` and an awaitable ``send(body)``

Both can be built without an ASGI server (``send=None``) which keeps the
body on the object; that is what the test suite relies on.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qs, quote, unquote

Send = Callable[[dict], Awaitable[None]]
Receive = Callable[[], Awaitable[dict]]

# RFC 3986 pchar sub-delims plus "/"
PATH_SAFE = "/:@!$&'()*+,;="


class Request:
    """
    HTTP request built from an ASGI scope.

    Attributes:
        scope: Raw ASGI scope
        state: Per-request scratch space for middleware
    """

    __slots__ = ("scope", "_receive", "_headers", "_query", "_body", "state")

    def __init__(self, scope: dict, receive: Optional[Receive] = None):
        self.scope = scope
        self._receive = receive
        self._headers: Optional[Dict[str, str]] = None
        self._query: Optional[Dict[str, List[str]]] = None
        self._body: Optional[bytes] = None
        self.state: Dict[str, Any] = {}

    @classmethod
    def build(
        cls,
        method: str = "GET",
        path: str = "/",
        *,
        query_string: str = "",
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> "Request":
        """Build a request without a server, mostly for tests and tooling.

        ``path`` is taken as sent on the wire, percent-encoding included.
        """
        scope = {
            "type": "http",
            "method": method,
            "path": unquote(path),
            "raw_path": path.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "headers": [
                (k.lower().encode("latin-1"), v.encode("latin-1"))
                for k, v in (headers or {}).items()
            ],
        }
        sent = False

        async def receive() -> dict:
            nonlocal sent
            if sent:
                return {"type": "http.disconnect"}
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}

        return cls(scope, receive)

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path, still percent-encoded as received."""
        raw = self.scope.get("raw_path")
        if raw:
            return raw.decode("latin-1").split("?", 1)[0]
        # Servers without raw_path hand over a decoded path
        return quote(self.scope.get("path", "/"), safe=PATH_SAFE)

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent them."""
        qs = self.query_string
        return f"{self.path}?{qs}" if qs else self.path

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lowercased names; repeated headers are comma-joined."""
        if self._headers is None:
            headers: Dict[str, str] = {}
            for name, value in self.scope.get("headers", ()):
                key = name.decode("latin-1").lower()
                text = value.decode("latin-1")
                headers[key] = f"{headers[key]}, {text}" if key in headers else text
            self._headers = headers
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def query(self) -> Dict[str, List[str]]:
        if self._query is None:
            self._query = parse_qs(self.query_string, keep_blank_values=True)
        return self._query

    def query_param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query.get(key)
        return values[0] if values else default

    async def body(self) -> bytes:
        """Read the whole request body."""
        if self._body is None:
            chunks: List[bytes] = []
            if self._receive is not None:
                while True:
                    message = await self._receive()
                    if message["type"] != "http.request":
                        break
                    chunks.append(message.get("body", b""))
                    if not message.get("more_body", False):
                        break
            self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        body = await self.body()
        return json.loads(body) if body else None

    def __repr__(self) -> str:
        return f"Request({self.method} {self.url})"


class Response:
    """
    HTTP response written once through ``send``.

    Header names are stored lowercased.
    """

    __slots__ = ("_send", "status", "_headers", "body", "sent")

    def __init__(self, send: Optional[Send] = None):
        self._send = send
        self.status = 200
        self._headers: Dict[str, str] = {}
        self.body: Optional[bytes] = None
        self.sent = False

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    def set_status(self, status: int) -> None:
        self.status = status

    def set_header(self, name: str, value: Union[str, int]) -> None:
        self._headers[name.lower()] = str(value)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._headers.get(name.lower(), default)

    async def send(self, content: Union[str, bytes, None] = None) -> None:
        """
        Send status, headers and body.

        Raises:
            RuntimeError: If the response was already sent.
        """
        if self.sent:
            raise RuntimeError("Response already sent")

        if content is None:
            body = b""
        elif isinstance(content, str):
            body = content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray)):
            body = bytes(content)
        else:
            raise TypeError(f"Response body must be str or bytes, got {type(content).__name__}")

        self._headers.setdefault("content-length", str(len(body)))
        self.sent = True
        self.body = body

        if self._send is None:
            return

        await self._send({
            "type": "http.response.start",
            "status": self.status,
            "headers": [
                (k.encode("latin-1"), v.encode("latin-1")) for k, v in self._headers.items()
            ],
        })
        await self._send({"type": "http.response.body", "body": body, "more_body": False})

    def __repr__(self) -> str:
        return f"Response(status={self.status}, sent={self.sent})"
