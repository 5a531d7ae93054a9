"""
Outbound request model - the mutable copy of an inbound request that the
handlers and the forwarder rewrite before it is proxied.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from fastapi import Request


def _raw_path(request: Request) -> str:
    """The request path as sent by the client, percent-escapes intact."""
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.split(b"?", 1)[0].decode("latin-1")


@dataclass
class ProxyRequest:
    """A request on its way to the upstream target."""
    method: str
    # Still percent-encoded, so %2F and %3F survive forwarding
    path: str
    query: str
    headers: httpx.Headers
    # Value of the inbound Host header until the forwarder points it upstream
    host: str = ""
    scheme: str = ""
    url_host: str = ""
    content: Optional[AsyncIterator[bytes]] = None
    client_host: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> ProxyRequest:
        """
        Copy method, path, query and headers from a Starlette request.

        The body is not read here. When the request announces one, `content`
        is the request's byte stream, which replays the cached body if a
        handler has already consumed it.
        """
        has_body = "content-length" in request.headers or "transfer-encoding" in request.headers
        return cls(
            method=request.method,
            path=_raw_path(request),
            query=request.scope.get("query_string", b"").decode("latin-1"),
            headers=httpx.Headers(request.headers.raw),
            host=request.headers.get("host", ""),
            content=request.stream() if has_body else None,
            client_host=request.client.host if request.client else None,
        )

    def strip_prefix(self, prefix: str) -> None:
        """Remove one leading occurrence of `prefix` from the path."""
        self.path = self.path.removeprefix(prefix)
